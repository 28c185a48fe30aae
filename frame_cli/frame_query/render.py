"""Output rendering helpers for frame-query."""

from __future__ import annotations

import csv
import json
import math
import sys
from typing import IO, Any

import pandas as pd
from rich import box
from rich.console import Console
from rich.table import Table

from frame_cli.shared.logging import Logger

from .timestamps import format_instant
from .types import FieldType, Frame, FrameSet

OUTPUT_FORMAT_CHOICES = ("table", "tsv", "csv", "json")


def render_frame_set(
    frame_set: FrameSet,
    *,
    output_format: str,
    logger: Logger,
    stream: IO[str] | None = None,
) -> None:
    """Render every frame of a frame set to the desired format."""
    output_stream = stream or sys.stdout
    fmt = (output_format or "table").lower()

    if fmt == "json":
        _render_json(frame_set, stream=output_stream)
    elif fmt in ("csv", "tsv"):
        delimiter = "," if fmt == "csv" else "\t"
        for frame in frame_set.frames:
            _render_delimited(frame, stream=output_stream, delimiter=delimiter)
    elif fmt == "table":
        for frame in frame_set.frames:
            _render_table(frame, stream=output_stream)
    else:  # pragma: no cover - Click validation should prevent this
        raise ValueError(f"Unsupported output format '{output_format}'.")

    if not frame_set.frames:
        logger.info("Query produced no frames.")
    else:
        logger.info(f"{len(frame_set.frames)} frame(s), {frame_set.rows_processed} rows processed.")


def render_query_text(query_text: str, *, stream: IO[str] | None = None) -> None:
    output_stream = stream or sys.stdout
    output_stream.write(query_text)
    output_stream.write("\n")


def _column_headers(frame: Frame) -> list[str]:
    return [item.display_name or item.name for item in frame.fields]


def _render_table(frame: Frame, *, stream: IO[str]) -> None:
    console = Console(file=stream, highlight=False, force_terminal=False)
    console.print(frame.name, style="bold", markup=False)
    table = Table(box=box.SIMPLE_HEAVY, show_header=bool(frame.fields), header_style="bold")
    for header in _column_headers(frame):
        table.add_column(header, overflow="fold")
    for row in _rows(frame):
        table.add_row(*row)
    console.print(table)


def _render_delimited(frame: Frame, *, stream: IO[str], delimiter: str) -> None:
    writer = csv.writer(stream, delimiter=delimiter, lineterminator="\n")
    writer.writerow(_column_headers(frame))
    writer.writerows(_rows(frame))


def _rows(frame: Frame) -> list[list[str]]:
    columns = [[_stringify(value, item.type) for value in item.values] for item in frame.fields]
    return [list(row) for row in zip(*columns)]


def _render_json(frame_set: FrameSet, *, stream: IO[str]) -> None:
    payload = {
        "rows_processed": frame_set.rows_processed,
        "frames": [
            {
                "name": frame.name,
                "fields": [
                    {
                        "name": item.name,
                        "type": item.type.value,
                        "display_name": item.display_name,
                        "labels": item.labels,
                        "values": [_convert_json_value(value, item.type) for value in item.values],
                    }
                    for item in frame.fields
                ],
            }
            for frame in frame_set.frames
        ],
    }
    json.dump(payload, stream, indent=2, allow_nan=False)
    stream.write("\n")


def _stringify(value: Any, field_type: FieldType) -> str:
    if value is None:
        return ""
    if field_type is FieldType.TIME and isinstance(value, pd.Timestamp):
        return format_instant(value)
    return str(value)


def _convert_json_value(value: Any, field_type: FieldType) -> Any:
    if field_type is FieldType.TIME and isinstance(value, pd.Timestamp):
        return format_instant(value)
    if isinstance(value, float) and not math.isfinite(value):
        # NaN and Inf have no JSON spelling.
        return None
    return value
