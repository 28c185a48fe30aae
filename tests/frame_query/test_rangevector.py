from __future__ import annotations

import json

import pandas as pd
import pytest

from frame_cli.frame_query.cursor import RecordedCursor
from frame_cli.frame_query.rangevector import decode_range_vector, frames_from_cursor, parse_range_vector
from frame_cli.frame_query.types import ColumnDescriptor
from frame_cli.shared.exceptions import InvalidNumericValue, PayloadDecodeError, ScanError

PAYLOAD = {
    "status": "success",
    "data": {
        "resultType": "matrix",
        "result": [
            {
                "metric": {"__name__": "up", "instance": "localhost:9100", "job": "node"},
                "values": [[1700000000, "1"], [1700000060, "2"]],
            }
        ],
    },
}


def _cursor(payload: str | None) -> RecordedCursor:
    return RecordedCursor(columns=[ColumnDescriptor("RESULT", "CLOB")], rows=[(payload,)])


def test_decode_range_vector_with_legend() -> None:
    result = decode_range_vector(json.dumps(PAYLOAD), legend="{{instance}}")

    assert result.rows_processed == 2
    (frame,) = result.frames
    assert frame.name == "response"
    time_field, value_field = frame.fields
    assert time_field.name == "METRIC_TIME"
    assert time_field.values == [pd.Timestamp("2023-11-14T22:13:20Z"), pd.Timestamp("2023-11-14T22:14:20Z")]
    assert value_field.display_name == "localhost:9100"
    assert value_field.values == [1.0, 2.0]
    assert value_field.labels == {"__name__": "up", "instance": "localhost:9100", "job": "node"}


def test_metric_name_used_without_legend() -> None:
    result = decode_range_vector(json.dumps(PAYLOAD))
    assert result.frames[0].fields[1].name == "up"
    assert result.frames[0].fields[1].display_name is None


def test_points_keep_payload_order() -> None:
    payload = {"data": {"result": [{"metric": {"__name__": "x"}, "values": [[200, "2"], [100, "1"]]}]}}
    result = decode_range_vector(json.dumps(payload))
    assert result.frames[0].fields[1].values == [2.0, 1.0]


def test_fractional_epochs_truncate() -> None:
    payload = {"data": {"result": [{"metric": {}, "values": [[1700000000.9, "1"]]}]}}
    result = decode_range_vector(json.dumps(payload))
    assert result.frames[0].fields[0].values == [pd.Timestamp("2023-11-14T22:13:20Z")]


def test_missing_sections_yield_no_frames() -> None:
    assert decode_range_vector('{"status": "success"}').frames == ()
    assert parse_range_vector('{"data": {"resultType": "matrix"}}').result == []


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[1, 2]",
        '{"data": []}',
        '{"data": {"result": [{"metric": {"a": 1}}]}}',
        '{"data": {"result": [{"values": [[1, 2]]}]}}',
        '{"data": {"result": [{"values": [["1", "2"]]}]}}',
        '{"data": {"result": [{"values": [[1]]}]}}',
        '{"data": {"result": [{"values": [[NaN, "1"]]}]}}',
    ],
)
def test_malformed_payloads_raise(text: str) -> None:
    with pytest.raises(PayloadDecodeError):
        decode_range_vector(text)


def test_bad_value_raises_invalid_numeric() -> None:
    payload = {"data": {"result": [{"metric": {"__name__": "up"}, "values": [[1, "oops"]]}]}}
    with pytest.raises(InvalidNumericValue, match="oops"):
        decode_range_vector(json.dumps(payload))


def test_cursor_without_rows_is_a_scan_error() -> None:
    cursor = RecordedCursor(columns=[ColumnDescriptor("RESULT", "CLOB")], rows=[])
    with pytest.raises(ScanError):
        frames_from_cursor(cursor)


def test_null_payload_row_is_a_decode_error() -> None:
    with pytest.raises(PayloadDecodeError, match="NULL"):
        frames_from_cursor(_cursor(None))


def test_frames_from_cursor_stamps_clock(fixed_clock) -> None:
    result = frames_from_cursor(_cursor(json.dumps(PAYLOAD)), clock=fixed_clock)
    assert result.after_query_at == fixed_clock()
    assert result.rows_processed == 2


def test_deeply_nested_payload_is_a_decode_error() -> None:
    with pytest.raises(PayloadDecodeError):
        parse_range_vector("[" * 200_000 + "]" * 200_000)
