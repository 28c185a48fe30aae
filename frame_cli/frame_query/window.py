"""Parse --from/--to/--last flags into a concrete query window."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from frame_cli.shared.exceptions import QuerySpecError

from .types import TimeRange

DEFAULT_LOOKBACK = "1h"

_EPOCH = re.compile(r"^[0-9]+(?:\.[0-9]+)?$")
_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_instant_option(value: str, *, option: str) -> datetime:
    """Accept epoch seconds or an ISO-8601 timestamp; naive values are UTC."""

    text = value.strip()
    if _EPOCH.match(text):
        return datetime.fromtimestamp(float(text), tz=timezone.utc)
    try:
        parsed = date_parser.isoparse(text)
    except ValueError as exc:
        raise QuerySpecError(f"Invalid {option} value '{value}'. Use epoch seconds or ISO-8601.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_lookback(value: str) -> relativedelta:
    normalized = value.strip().lower()
    unit = normalized[-1:] if normalized else ""
    if unit not in _UNITS:
        raise QuerySpecError(f"Unsupported lookback '{value}'. Use suffix s, m, h, d, or w (e.g., 15m, 6h).")
    try:
        magnitude = int(normalized[:-1])
    except ValueError as exc:
        raise QuerySpecError(f"Invalid lookback magnitude in '{value}'. Expected integer before unit.") from exc
    if magnitude <= 0:
        raise QuerySpecError("Lookback magnitude must be positive.")
    return relativedelta(**{_UNITS[unit]: magnitude})


def resolve_time_range(
    *,
    start: str | None,
    end: str | None,
    last: str | None = None,
    now: datetime | None = None,
) -> TimeRange:
    """Resolve CLI window flags; without --from the window ends at --to (or now)."""

    if start and last:
        raise QuerySpecError("Use only one of --from or --last.")
    end_at = parse_instant_option(end, option="--to") if end else (now or datetime.now(timezone.utc))
    if start:
        start_at = parse_instant_option(start, option="--from")
    else:
        start_at = end_at - parse_lookback(last or DEFAULT_LOOKBACK)
    if start_at >= end_at:
        raise QuerySpecError("The query window must start before it ends.")
    return TimeRange(start=start_at, end=end_at)
