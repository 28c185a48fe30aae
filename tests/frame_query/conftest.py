"""Shared fixtures for frame-query tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from frame_cli.frame_query.types import TimeRange

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class StubLogger:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def debug(self, message: str) -> None:
        self.messages.append(("debug", message))

    def levels(self) -> list[str]:
        return [level for level, _ in self.messages]


@pytest.fixture()
def stub_logger() -> StubLogger:
    return StubLogger()


@pytest.fixture()
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture()
def epoch_range() -> Callable[[int, int], TimeRange]:
    """Build a TimeRange from Unix seconds."""

    def build(start: int, end: int) -> TimeRange:
        return TimeRange(
            start=datetime.fromtimestamp(start, tz=timezone.utc),
            end=datetime.fromtimestamp(end, tz=timezone.utc),
        )

    return build
