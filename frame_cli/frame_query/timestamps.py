"""Lenient timestamp parsing for result tokens.

Two grammars are accepted, tried in order:

* strict RFC 3339 calendar timestamps (``2024-01-02T00:00:00Z``, optional
  fractional seconds, ``Z`` or ``+HH:MM`` offset);
* epoch seconds with an optional fraction (``1700000010``, ``123.456``,
  ``123.000000789``).

Instants are returned as UTC ``pandas.Timestamp`` values so nanosecond
fractions survive.
"""

from __future__ import annotations

import re

import pandas as pd

from frame_cli.shared.exceptions import MalformedTimestamp

EPOCH_SENTINEL = (-1, -1)
NANOS_PER_SECOND = 1_000_000_000

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_RFC3339 = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})$"
)
_SIGNED_INT = re.compile(r"^[+-]?[0-9]+$")
_FRACTION = re.compile(r"^[0-9]*$")


def parse_epoch(token: str) -> tuple[int, int]:
    """Split ``seconds[.fraction]`` into ``(seconds, nanoseconds)``.

    The fraction is read as a duration of ``0.<fraction>`` seconds, so
    ``123.456`` yields 456000000 ns and ``123.000000789`` yields 789 ns.
    Digits past nanosecond precision are dropped.
    """

    parts = token.split(".")
    if len(parts) > 2:
        raise MalformedTimestamp(token, "more than one '.' separator")

    seconds = _parse_seconds(parts[0], token)
    if len(parts) == 1:
        return seconds, 0

    fraction = parts[1]
    if not _FRACTION.match(fraction):
        raise MalformedTimestamp(token, f"invalid fractional seconds '{fraction}'")
    nanos = int((fraction + "0" * 9)[:9]) if fraction else 0
    return seconds, nanos


def split_epoch(token: str) -> tuple[int, int]:
    """Like :func:`parse_epoch` but returns ``EPOCH_SENTINEL`` instead of raising."""

    try:
        return parse_epoch(token)
    except MalformedTimestamp:
        return EPOCH_SENTINEL


def parse_calendar(token: str) -> pd.Timestamp | None:
    """Return the instant for an RFC 3339 token, or None when the token is not one."""

    if not _RFC3339.match(token):
        return None
    try:
        parsed = pd.Timestamp(token)
    except ValueError:
        return None
    return parsed.tz_convert("UTC")


def instant_from_epoch(seconds: int, nanos: int, *, token: str = "") -> pd.Timestamp:
    try:
        return pd.Timestamp(seconds * NANOS_PER_SECOND + nanos, unit="ns", tz="UTC")
    except (OverflowError, ValueError) as exc:
        raise MalformedTimestamp(token or f"{seconds}.{nanos:09d}", "outside the representable range") from exc


def parse_instant(token: str) -> pd.Timestamp:
    """Parse a time token as RFC 3339, falling back to epoch seconds."""

    calendar = parse_calendar(token)
    if calendar is not None:
        return calendar
    seconds, nanos = parse_epoch(token)
    return instant_from_epoch(seconds, nanos, token=token)


def format_instant(instant: pd.Timestamp) -> str:
    """Render an instant as RFC 3339 in UTC, keeping sub-second digits when present."""

    text = instant.tz_convert("UTC").isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def _parse_seconds(text: str, token: str) -> int:
    if not _SIGNED_INT.match(text):
        raise MalformedTimestamp(token, f"invalid seconds '{text}'")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise MalformedTimestamp(token, "seconds out of range")
    return value
