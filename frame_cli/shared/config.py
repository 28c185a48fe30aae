"""Configuration loading for frame-cli.

Values are layered: built-in defaults, then the YAML config file, then
``FRAMECLI_*`` environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from . import paths
from .exceptions import ConfigurationError

VARIANTS = ("ADB", "default")


@dataclass(frozen=True, slots=True)
class DeploymentSettings:
    """Which telemetry package the generated range/label queries call."""

    variant: str  # "ADB" or "default"


@dataclass(frozen=True, slots=True)
class QuerySettings:
    """Defaults applied when a query payload omits a value."""

    step_seconds: int
    prefetch_rows: int
    label_lookback_seconds: int


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    deployment: DeploymentSettings
    query: QuerySettings

    def with_deployment_variant(self, variant: str) -> AppConfig:
        """Return a copy targeting a different deployment variant."""
        return replace(self, deployment=replace(self.deployment, variant=variant))


DEFAULTS: dict[str, dict[str, Any]] = {
    "deployment": {"variant": "default"},
    "query": {
        "step_seconds": 10,
        "prefetch_rows": 100,
        "label_lookback_seconds": 3600,
    },
}

# env var -> (section, key, coercion)
ENV_OVERRIDE_SPEC: dict[str, tuple[str, str, type]] = {
    "FRAMECLI_DEPLOYMENT_VARIANT": ("deployment", "variant", str),
    "FRAMECLI_QUERY_STEP": ("query", "step_seconds", int),
    "FRAMECLI_QUERY_PREFETCH": ("query", "prefetch_rows", int),
    "FRAMECLI_LABEL_LOOKBACK": ("query", "label_lookback_seconds", int),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(os.environ if env is None else env)
    source_path = paths.config_file_path(config_path, env=env)
    sections = {name: dict(values) for name, values in DEFAULTS.items()}
    _merge_file(sections, _read_yaml(source_path), source_path)
    _merge_env(sections, env)
    return _build_config(sections, source_path)


def _read_yaml(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
    return data


def _merge_file(sections: dict[str, dict[str, Any]], data: Mapping[str, Any], path: Path) -> None:
    for name, values in data.items():
        if name not in sections:
            # Unknown sections are ignored.
            continue
        if not isinstance(values, Mapping):
            raise ConfigurationError(
                f"Invalid configuration structure: section '{name}' in {path} must be a mapping."
            )
        sections[name].update(values)


def _merge_env(sections: dict[str, dict[str, Any]], env: Mapping[str, str]) -> None:
    for env_key, (section, key, coerce) in ENV_OVERRIDE_SPEC.items():
        raw_value = env.get(env_key)
        if raw_value is None:
            continue
        try:
            sections[section][key] = coerce(raw_value.strip())
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc


def _build_config(sections: Mapping[str, Mapping[str, Any]], source_path: Path) -> AppConfig:
    deployment_cfg = sections["deployment"]
    query_cfg = sections["query"]
    try:
        deployment = DeploymentSettings(variant=str(deployment_cfg["variant"]))
        query = QuerySettings(
            step_seconds=int(query_cfg["step_seconds"]),
            prefetch_rows=int(query_cfg["prefetch_rows"]),
            label_lookback_seconds=int(query_cfg["label_lookback_seconds"]),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if deployment.variant not in VARIANTS:
        raise ConfigurationError(
            f"deployment.variant must be one of {', '.join(VARIANTS)}; got '{deployment.variant}'."
        )
    if query.step_seconds <= 0:
        raise ConfigurationError("query.step_seconds must be a positive integer.")
    if query.prefetch_rows <= 0:
        raise ConfigurationError("query.prefetch_rows must be a positive integer.")
    if query.label_lookback_seconds <= 0:
        raise ConfigurationError("query.label_lookback_seconds must be a positive integer.")

    return AppConfig(source_path=source_path, deployment=deployment, query=query)
