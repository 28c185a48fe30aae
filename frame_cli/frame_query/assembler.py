"""Turn result cursors into frames.

Four assembly modes are supported:

* tabular passthrough, one frame with one field per column;
* canonical time series, grouped by the ``METRIC_NAME`` / ``METRIC_TAGS`` pair;
* derived time series, grouped by the concatenated character columns;
* range-vector JSON, delegated to :mod:`frame_cli.frame_query.rangevector`.

Every function either consumes the whole cursor and returns complete frames
or raises a :class:`~frame_cli.shared.exceptions.FrameAssemblyError`.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from frame_cli.shared.exceptions import AmbiguousSchema, ScanError
from frame_cli.shared.logging import Logger

from .columns import classify_all, count_kinds, is_number, is_time
from .cursor import RowCursor, iter_rows
from .legend import expand_legend
from .rangevector import frames_from_cursor
from .templates import AMBIGUOUS_SCHEMA_MESSAGE
from .timestamps import parse_instant
from .types import (
    RESPONSE_FRAME_NAME,
    TIME_FIELD_NAME,
    ColumnDescriptor,
    Field,
    FieldType,
    Frame,
    FrameSet,
    SemanticKind,
    TimeValuePoint,
)
from .values import NULL_TOKEN, Clock, parse_number, utc_now

TIME_EPOCH_COLUMN = "METRIC_TIME_EPOCH"
VALUE_COLUMN = "METRIC_VALUE"
NAME_COLUMN = "METRIC_NAME"
TAGS_COLUMN = "METRIC_TAGS"
CANONICAL_COLUMNS = frozenset({TIME_EPOCH_COLUMN, VALUE_COLUMN, NAME_COLUMN, TAGS_COLUMN})


def assemble_frames(
    cursor: RowCursor,
    *,
    promql: bool = False,
    convert_to_time_series: bool = False,
    legend: str = "",
    query_text: str = "",
    clock: Clock | None = None,
    logger: Logger | None = None,
) -> FrameSet:
    """Dispatch ``cursor`` to the assembly mode selected by the flags."""

    clock = clock or utc_now
    if promql:
        return frames_from_cursor(cursor, legend=legend, clock=clock, logger=logger)

    columns = list(cursor.columns)
    if not convert_to_time_series:
        return _assemble_tabular(cursor, columns, legend, query_text, clock)
    if CANONICAL_COLUMNS.issubset(column.name for column in columns):
        return _assemble_canonical(cursor, columns, legend, query_text, clock, logger)
    return _assemble_derived(cursor, columns, legend, clock, logger)


# ----- Tabular passthrough ----


def _assemble_tabular(
    cursor: RowCursor,
    columns: Sequence[ColumnDescriptor],
    legend: str,
    query_text: str,
    clock: Clock,
) -> FrameSet:
    after_query_at = clock()
    field_types: list[FieldType] = []
    frame = Frame(name=query_text)
    for column in columns:
        if is_time(column.declared_type, column.name):
            field_type = FieldType.TIME
            display_name = None
        else:
            field_type = FieldType.NUMBER if is_number(column.declared_type) else FieldType.STRING
            display_name = legend or column.name
        field_types.append(field_type)
        frame.fields.append(Field(name=column.name, type=field_type, display_name=display_name))

    rows = 0
    for row in iter_rows(cursor):
        values: list[object] = []
        for column, field_type, raw in zip(columns, field_types, row):
            if field_type is FieldType.TIME:
                values.append(parse_instant(NULL_TOKEN if raw is None else raw))
            elif field_type is FieldType.NUMBER:
                values.append(parse_number(NULL_TOKEN if raw is None else raw, column.name))
            else:
                values.append("" if raw is None else raw)
        frame.append_row(*values)
        rows += 1

    return FrameSet(frames=(frame,), rows_processed=rows, after_query_at=after_query_at)


# ----- Time-series helpers ----


def _series_frame(
    name: str,
    value_name: str,
    points: list[TimeValuePoint],
    labels: dict[str, str] | None = None,
) -> Frame:
    ordered = sorted(points, key=lambda point: point.timestamp)
    return Frame(
        name=name,
        fields=[
            Field(name=TIME_FIELD_NAME, type=FieldType.TIME, values=[point.timestamp for point in ordered]),
            Field(
                name=value_name,
                type=FieldType.NUMBER,
                values=[point.value for point in ordered],
                display_name=value_name,
                labels=labels,
            ),
        ],
    )


def _decode_tags(raw: str, logger: Logger | None) -> dict[str, str] | None:
    if not raw:
        return None
    try:
        decoded = json.loads(raw)
    except ValueError as exc:
        if logger is not None:
            logger.debug(f"Ignoring undecodable {TAGS_COLUMN} value {raw!r}: {exc}")
        return None
    if not isinstance(decoded, dict) or not all(isinstance(value, str) for value in decoded.values()):
        if logger is not None:
            logger.debug(f"Ignoring {TAGS_COLUMN} value that is not a string map: {raw!r}")
        return None
    return decoded


# ----- Canonical time series ----


def _assemble_canonical(
    cursor: RowCursor,
    columns: Sequence[ColumnDescriptor],
    legend: str,
    query_text: str,
    clock: Clock,
    logger: Logger | None,
) -> FrameSet:
    after_query_at = clock()
    positions = {column.name: index for index, column in enumerate(columns)}
    time_at = positions[TIME_EPOCH_COLUMN]
    value_at = positions[VALUE_COLUMN]
    name_at = positions[NAME_COLUMN]
    tags_at = positions[TAGS_COLUMN]

    groups: dict[tuple[str, str], list[TimeValuePoint]] = {}
    rows = 0
    for row in iter_rows(cursor):
        value = parse_number(row[value_at] if row[value_at] is not None else NULL_TOKEN, VALUE_COLUMN)
        timestamp = parse_instant(row[time_at] if row[time_at] is not None else NULL_TOKEN)
        key = (row[name_at] or "", row[tags_at] or "")
        groups.setdefault(key, []).append(TimeValuePoint(timestamp=timestamp, value=value))
        rows += 1

    frames: list[Frame] = []
    for (metric_name, tags_json), points in groups.items():
        labels = _decode_tags(tags_json, logger)
        value_name = expand_legend(legend, labels, default=metric_name + tags_json)
        frames.append(_series_frame(query_text, value_name, points, labels))

    if logger is not None:
        logger.debug(f"Grouped {rows} rows into {len(frames)} canonical series.")
    return FrameSet(frames=tuple(frames), rows_processed=rows, after_query_at=after_query_at)


# ----- Derived time series ----


def _assemble_derived(
    cursor: RowCursor,
    columns: Sequence[ColumnDescriptor],
    legend: str,
    clock: Clock,
    logger: Logger | None,
) -> FrameSet:
    kinds = classify_all(columns)
    counts = count_kinds(kinds)
    time_count = counts[SemanticKind.TIME]
    number_count = counts[SemanticKind.NUMBER]
    text_count = counts[SemanticKind.TEXT]
    if logger is not None:
        logger.debug(
            f"Derived grouping over {time_count} time, {number_count} numeric, "
            f"{text_count} character and {counts[SemanticKind.OTHER]} other columns."
        )
    if time_count != 1 or number_count < 1 or text_count < 1:
        raise AmbiguousSchema(AMBIGUOUS_SCHEMA_MESSAGE)

    # A single numeric column keeps the bare label key; several numeric
    # columns each become their own series keyed by label key plus column name.
    qualify_key = number_count > 1
    after_query_at = clock()
    time_at = kinds.index(SemanticKind.TIME)
    text_positions = [index for index, kind in enumerate(kinds) if kind is SemanticKind.TEXT]
    number_positions = [index for index, kind in enumerate(kinds) if kind is SemanticKind.NUMBER]

    groups: dict[str, list[TimeValuePoint]] = {}
    for row in iter_rows(cursor):
        raw_time = row[time_at]
        timestamp = parse_instant(NULL_TOKEN if raw_time is None else raw_time)
        label_key = "".join(row[index] or "" for index in text_positions)
        for index in number_positions:
            column = columns[index].name
            raw = row[index]
            value = 0.0 if raw is None else parse_number(raw, column)
            key = label_key + column if qualify_key else label_key
            groups.setdefault(key, []).append(TimeValuePoint(timestamp=timestamp, value=value))

    frames = [_series_frame(RESPONSE_FRAME_NAME, legend or key, points) for key, points in groups.items()]
    points_emitted = sum(len(points) for points in groups.values())
    return FrameSet(frames=tuple(frames), rows_processed=points_emitted, after_query_at=after_query_at)


# ----- Single-column listings ----


def extract_single_column(
    cursor: RowCursor,
    *,
    clock: Clock | None = None,
) -> FrameSet:
    """Collect the first column of every row into a single string field."""

    columns = list(cursor.columns)
    if not columns:
        raise ScanError("result has no columns to extract")
    after_query_at = (clock or utc_now)()
    values = [row[0] if row[0] is not None else "" for row in iter_rows(cursor)]
    frame = Frame(
        name=RESPONSE_FRAME_NAME,
        fields=[Field(name=columns[0].name, type=FieldType.STRING, values=values)],
    )
    return FrameSet(frames=(frame,), rows_processed=len(values), after_query_at=after_query_at)

