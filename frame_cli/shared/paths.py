"""Config file location lookup."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

DEFAULT_CONFIG_DIR = "~/.framecli"
DEFAULT_CONFIG_FILE = "config.yaml"

CONFIG_DIR_ENV = "FRAMECLI_CONFIG_DIR"
CONFIG_FILE_ENV = "FRAMECLI_CONFIG_PATH"


def resolve_path(path_str: str | Path) -> Path:
    """Expand ``~`` and ``$VARS`` in a user-supplied path."""
    return Path(os.path.expandvars(str(path_str))).expanduser()


def config_file_path(explicit: str | Path | None = None, env: Mapping[str, str] | None = None) -> Path:
    """Locate the config file.

    Lookup order: ``explicit`` (the --config flag), then ``FRAMECLI_CONFIG_PATH``,
    then ``config.yaml`` inside ``FRAMECLI_CONFIG_DIR`` (default ``~/.framecli``).
    The file is not required to exist.
    """
    if explicit:
        return resolve_path(explicit)
    env = env if env is not None else os.environ
    file_override = env.get(CONFIG_FILE_ENV)
    if file_override:
        return resolve_path(file_override)
    return resolve_path(env.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR)) / DEFAULT_CONFIG_FILE
