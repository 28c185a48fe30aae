"""Decode range-vector JSON documents into time-series frames.

The document shape is fixed::

    {"status": "...",
     "data": {"resultType": "...",
              "result": [{"metric": {"k": "v"}, "values": [[<epoch>, "<value>"], ...]}]}}

Points keep the order they have in the ``values`` array.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any

from frame_cli.shared.exceptions import PayloadDecodeError, ScanError
from frame_cli.shared.logging import Logger

from .cursor import RowCursor, iter_rows
from .legend import expand_legend
from .timestamps import instant_from_epoch
from .types import RESPONSE_FRAME_NAME, TIME_FIELD_NAME, Field, FieldType, Frame, FrameSet
from .values import Clock, parse_number, utc_now

METRIC_NAME_LABEL = "__name__"


@dataclass(frozen=True, slots=True)
class RangeVectorSeries:
    metric: dict[str, str] = field(default_factory=dict)
    values: list[tuple[float, str]] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RangeVector:
    status: str = ""
    result_type: str = ""
    result: list[RangeVectorSeries] = field(default_factory=list)


def _reject_constant(name: str) -> Any:
    raise PayloadDecodeError(f"range-vector payload contains non-standard number {name}")


def _expect(value: Any, expected: type | tuple[type, ...], where: str) -> Any:
    if not isinstance(value, expected):
        raise PayloadDecodeError(f"range-vector payload field {where} has unexpected type {type(value).__name__}")
    return value


def _field(container: dict, key: str, expected: type, default: Any, where: str) -> Any:
    value = container.get(key)
    if value is None:
        return default
    return _expect(value, expected, where)


def _parse_series(item: Any, index: int) -> RangeVectorSeries:
    where = f"data.result[{index}]"
    _expect(item, dict, where)

    metric = _field(item, "metric", dict, {}, f"{where}.metric")
    for key, value in metric.items():
        _expect(value, str, f"{where}.metric.{key}")

    values: list[tuple[float, str]] = []
    for position, pair in enumerate(_field(item, "values", list, [], f"{where}.values")):
        pair_where = f"{where}.values[{position}]"
        _expect(pair, list, pair_where)
        if len(pair) != 2:
            raise PayloadDecodeError(f"range-vector payload field {pair_where} must hold [time, value]")
        epoch, raw_value = pair
        if isinstance(epoch, bool):
            raise PayloadDecodeError(f"range-vector payload field {pair_where}[0] has unexpected type bool")
        _expect(epoch, (int, float), f"{pair_where}[0]")
        if isinstance(epoch, float) and not math.isfinite(epoch):
            raise PayloadDecodeError(f"range-vector payload field {pair_where}[0] is not a finite number")
        _expect(raw_value, str, f"{pair_where}[1]")
        values.append((epoch, raw_value))

    return RangeVectorSeries(metric=dict(metric), values=values)


def parse_range_vector(text: str) -> RangeVector:
    """Parse and validate a range-vector document.

    Missing keys read as empty; keys present with the wrong JSON type raise
    :class:`PayloadDecodeError`.
    """

    try:
        document = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:
        raise PayloadDecodeError(f"range-vector payload is not valid JSON: {exc}") from exc

    _expect(document, dict, "<root>")
    status = _field(document, "status", str, "", "status")
    data = _field(document, "data", dict, {}, "data")
    result_type = _field(data, "resultType", str, "", "data.resultType")
    items = _field(data, "result", list, [], "data.result")
    return RangeVector(
        status=status,
        result_type=result_type,
        result=[_parse_series(item, index) for index, item in enumerate(items)],
    )


def frames_from_range_vector(vector: RangeVector, *, legend: str = "") -> tuple[list[Frame], int]:
    """Build one frame per series and return the frames with the point count."""

    frames: list[Frame] = []
    points = 0
    for series in vector.result:
        labels = dict(series.metric)
        if legend:
            value_name = expand_legend(legend, labels)
            display_name: str | None = value_name
        else:
            value_name = labels.get(METRIC_NAME_LABEL, "")
            display_name = None

        frame = Frame(
            name=RESPONSE_FRAME_NAME,
            fields=[
                Field(name=TIME_FIELD_NAME, type=FieldType.TIME),
                Field(
                    name=value_name,
                    type=FieldType.NUMBER,
                    display_name=display_name,
                    labels=labels,
                ),
            ],
        )
        for epoch, raw_value in series.values:
            # Fractional epoch seconds are truncated toward zero.
            timestamp = instant_from_epoch(int(epoch), 0, token=str(epoch))
            frame.append_row(timestamp, parse_number(raw_value, value_name))
            points += 1
        frames.append(frame)
    return frames, points


def decode_range_vector(text: str, *, legend: str = "", clock: Clock | None = None) -> FrameSet:
    """Decode a range-vector document held in memory."""

    vector = parse_range_vector(text)
    after_query_at = (clock or utc_now)()
    frames, points = frames_from_range_vector(vector, legend=legend)
    return FrameSet(frames=tuple(frames), rows_processed=points, after_query_at=after_query_at)


def frames_from_cursor(
    cursor: RowCursor,
    *,
    legend: str = "",
    clock: Clock | None = None,
    logger: Logger | None = None,
) -> FrameSet:
    """Read the single payload row of ``cursor`` and decode it."""

    rows = iter_rows(cursor)
    row = next(rows, None)
    if row is None or not row:
        raise ScanError("range-vector query returned no payload row")
    payload = row[0]
    if payload is None:
        raise PayloadDecodeError("range-vector payload is NULL")
    after_query_at = (clock or utc_now)()
    if logger is not None:
        logger.debug(f"Decoding range-vector payload of {len(payload)} characters.")

    frames, points = frames_from_range_vector(parse_range_vector(payload), legend=legend)
    return FrameSet(frames=tuple(frames), rows_processed=points, after_query_at=after_query_at)
