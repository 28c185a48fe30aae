"""Rich-based logging helpers shared across the toolkit.

Log chatter always goes to stderr so that stdout only carries query text and
rendered frames, which keeps ``frame-query ... --format json | jq`` usable.
"""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.theme import Theme

LEVEL_STYLES: dict[str, str] = {
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "debug": "dim",
}

# Highlighting stays off so numbers inside SQL text are not wrapped in ANSI styles.
_stderr_console = Console(stderr=True, theme=Theme(LEVEL_STYLES), highlight=False)


@dataclass(slots=True)
class Logger:
    """Lightweight logger facade backed by a Rich console."""

    verbose: bool = False

    def _emit(self, level: str, message: str) -> None:
        _stderr_console.print(message, style=level, markup=False)

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def debug(self, message: str) -> None:
        if self.verbose:
            self._emit("debug", message)


def get_logger(verbose: bool = False) -> Logger:
    """Return a configured Logger instance."""
    return Logger(verbose=verbose)
