"""Plain-text descriptions of engine objects for verbose logging."""

from __future__ import annotations

from collections.abc import Sequence

from .columns import classify
from .timestamps import format_instant
from .types import ColumnDescriptor, FieldType, Frame, FrameSet, QuerySpec

_PREVIEW_VALUES = 3


def describe_query_spec(spec: QuerySpec) -> str:
    parts = [
        f"ref_id={spec.ref_id or '-'}",
        f"kind={spec.kind.value}",
        f"language={spec.language.value}",
        f"variant={spec.deployment_variant.value}",
        f"step={spec.step_seconds}s",
        f"prefetch={spec.prefetch_rows}",
        f"convert={'yes' if spec.convert_to_time_series else 'no'}",
    ]
    if spec.legend:
        parts.append(f"legend={spec.legend!r}")
    if spec.time_from_ms is not None or spec.time_to_ms is not None:
        parts.append(f"window_ms={spec.time_from_ms}..{spec.time_to_ms}")
    if spec.raw_query_text:
        parts.append(f"raw={spec.raw_query_text!r}")
    parts.append(f"expression={spec.expression!r}")
    return "QuerySpec(" + ", ".join(parts) + ")"


def describe_columns(columns: Sequence[ColumnDescriptor]) -> str:
    if not columns:
        return "no columns"
    return ", ".join(f"{column.name}:{column.declared_type}->{classify(column).value}" for column in columns)


def _preview(values: list[object], field_type: FieldType) -> str:
    shown = values[:_PREVIEW_VALUES]
    if field_type is FieldType.TIME:
        rendered = [format_instant(value) for value in shown]
    else:
        rendered = [repr(value) for value in shown]
    suffix = ", ..." if len(values) > _PREVIEW_VALUES else ""
    return "[" + ", ".join(rendered) + suffix + "]"


def describe_frame(frame: Frame) -> str:
    """One header line for the frame, then one line per field."""

    lines = [f"Frame {frame.name!r}: {len(frame.fields)} fields x {frame.row_count} rows"]
    for item in frame.fields:
        line = f"  {item.name} ({item.type.value})"
        if item.display_name and item.display_name != item.name:
            line += f" display={item.display_name!r}"
        if item.labels:
            labels = ",".join(f"{key}={value}" for key, value in sorted(item.labels.items()))
            line += f" labels={{{labels}}}"
        line += f" values={_preview(item.values, item.type)}"
        lines.append(line)
    return "\n".join(lines)


def describe_frame_set(frame_set: FrameSet) -> str:
    header = f"{len(frame_set.frames)} frame(s), {frame_set.rows_processed} rows processed"
    if frame_set.after_query_at is not None:
        header += f", after query at {frame_set.after_query_at.isoformat()}"
    return "\n".join([header, *(describe_frame(frame) for frame in frame_set.frames)])
