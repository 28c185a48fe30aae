"""Scalar helpers shared by the row and range-vector assemblers."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

from frame_cli.shared.exceptions import InvalidNumericValue

Clock = Callable[[], datetime]

# Raw token used for a NULL time or number.
NULL_TOKEN = "0"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_number(raw: str, column: str) -> float:
    """Parse a numeric token, rejecting padding and digit separators."""

    if not raw or raw != raw.strip() or "_" in raw:
        raise InvalidNumericValue(raw, column)
    try:
        return float(raw)
    except ValueError as exc:
        raise InvalidNumericValue(raw, column) from exc
