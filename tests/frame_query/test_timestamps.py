from __future__ import annotations

import pandas as pd
import pytest

from frame_cli.frame_query.timestamps import (
    EPOCH_SENTINEL,
    format_instant,
    parse_calendar,
    parse_epoch,
    parse_instant,
    split_epoch,
)
from frame_cli.shared.exceptions import MalformedTimestamp


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("123", (123, 0)),
        ("123.456", (123, 456_000_000)),
        ("123.000000789", (123, 789)),
        ("123.", (123, 0)),
        ("-5", (-5, 0)),
        ("1.1234567891", (1, 123_456_789)),
    ],
)
def test_parse_epoch_splits_seconds_and_nanoseconds(token: str, expected: tuple[int, int]) -> None:
    assert parse_epoch(token) == expected


@pytest.mark.parametrize("token", ["1.2.3", "abc", "", ".", "12a", "1.-5", "99999999999999999999"])
def test_split_epoch_returns_sentinel_on_failure(token: str) -> None:
    assert split_epoch(token) == EPOCH_SENTINEL == (-1, -1)


def test_parse_epoch_error_carries_token() -> None:
    with pytest.raises(MalformedTimestamp) as excinfo:
        parse_epoch("not-a-time")
    assert excinfo.value.token == "not-a-time"
    assert "not-a-time" in str(excinfo.value)


def test_parse_instant_prefers_calendar_format() -> None:
    assert parse_instant("2024-01-02T00:00:00Z") == pd.Timestamp("2024-01-02T00:00:00Z")
    assert parse_instant("2024-01-02T01:00:00+01:00") == pd.Timestamp("2024-01-02T00:00:00Z")


def test_parse_instant_falls_back_to_epoch_seconds() -> None:
    assert parse_instant("1700000010") == pd.Timestamp("2023-11-14T22:13:30Z")
    assert parse_instant("123.000000789").value == 123 * 1_000_000_000 + 789


def test_parse_instant_rejects_non_rfc3339_calendar_text() -> None:
    assert parse_calendar("2024-01-02 00:00:00") is None
    with pytest.raises(MalformedTimestamp):
        parse_instant("2024-01-02 00:00:00")


def test_parse_instant_returns_utc() -> None:
    instant = parse_instant("0")
    assert str(instant.tz) == "UTC"
    assert instant == pd.Timestamp("1970-01-01T00:00:00Z")


def test_format_instant_uses_z_suffix() -> None:
    assert format_instant(pd.Timestamp("2024-01-02T00:00:00Z")) == "2024-01-02T00:00:00Z"
