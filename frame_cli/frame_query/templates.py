"""Telemetry query templates keyed by template kind and deployment variant."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from .types import DeploymentVariant


class TemplateKind(Enum):
    RANGE = "range"
    LABEL_NAMES = "label_names"
    ADHOC_KEYS = "adhoc_keys"
    ADHOC_VALUES = "adhoc_values"
    SERIES = "series"


_PACKAGES: dict[DeploymentVariant, str] = {
    DeploymentVariant.ADB: "DBMS_CLOUD_TELEMETRY_QUERY",
    DeploymentVariant.DEFAULT: "DBMS_TELEMETRY_QUERY",
}

_BODIES: dict[TemplateKind, str] = {
    TemplateKind.RANGE: "promql_range('{expression}',{start},{end},{step})",
    TemplateKind.LABEL_NAMES: "promql_label('__name__',{start},{end})",
    TemplateKind.ADHOC_KEYS: "promql_label(' ',0,0)",
    TemplateKind.ADHOC_VALUES: "promql_label('{label}',0,0)",
    TemplateKind.SERIES: "promql_series('{metric}',{start},{end})",
}

TEMPLATE_TABLE: dict[tuple[TemplateKind, DeploymentVariant], str] = {
    (kind, variant): f"select {package}.{body} from dual"
    for kind, body in _BODIES.items()
    for variant, package in _PACKAGES.items()
}

AMBIGUOUS_SCHEMA_MESSAGE = (
    "Invalid SQL query.\n"
    "To plot time series data, the query must return:\n"
    "\u2022 exactly one time column\n"
    "\u2022 one or more numeric columns\n"
    "\u2022 at least one character column (used as series labels)"
)


def quote_literal(text: str) -> str:
    """Escape single quotes for embedding inside a SQL string literal."""
    return text.replace("'", "''")


@dataclass(frozen=True, slots=True)
class QueryTemplates:
    """Templates for one deployment variant, resolved once per request."""

    variant: DeploymentVariant
    range: str
    label_names: str
    adhoc_keys: str
    adhoc_values: str
    series: str

    def render_range(self, expression: str, start: int, end: int, step: int) -> str:
        return self.range.format(expression=quote_literal(expression), start=start, end=end, step=step)

    def render_label_names(self, start: int, end: int) -> str:
        return self.label_names.format(start=start, end=end)

    def render_adhoc_keys(self) -> str:
        return self.adhoc_keys

    def render_adhoc_values(self, label: str) -> str:
        return self.adhoc_values.format(label=quote_literal(label))

    def render_series(self, metric: str, start: str, end: str) -> str:
        return self.series.format(metric=quote_literal(metric), start=start, end=end)


@lru_cache(maxsize=None)
def templates_for(variant: DeploymentVariant) -> QueryTemplates:
    return QueryTemplates(
        variant=variant,
        range=TEMPLATE_TABLE[(TemplateKind.RANGE, variant)],
        label_names=TEMPLATE_TABLE[(TemplateKind.LABEL_NAMES, variant)],
        adhoc_keys=TEMPLATE_TABLE[(TemplateKind.ADHOC_KEYS, variant)],
        adhoc_values=TEMPLATE_TABLE[(TemplateKind.ADHOC_VALUES, variant)],
        series=TEMPLATE_TABLE[(TemplateKind.SERIES, variant)],
    )
