"""Row cursors consumed by the frame assembler.

A cursor exposes its column metadata up front and yields rows whose values are
nullable text. Native driver values are converted to text at this edge so the
assembler only ever sees ``str | None``.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Protocol, runtime_checkable

from frame_cli.shared.exceptions import FrameAgentError, ScanError

from .types import ColumnDescriptor

Row = tuple[str | None, ...]


@runtime_checkable
class RowCursor(Protocol):
    """Anything that can describe its columns and iterate text rows."""

    @property
    def columns(self) -> Sequence[ColumnDescriptor]: ...

    def __iter__(self) -> Iterator[Row]: ...


def to_text(value: Any) -> str | None:
    """Convert a native value into the nullable text form cursors yield."""

    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    if isinstance(value, date):
        return f"{value.isoformat()}T00:00:00Z"
    if isinstance(value, (Mapping, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


@dataclass(slots=True)
class RecordedCursor:
    """In-memory cursor over pre-fetched rows.

    ``fail_after`` makes iteration raise ``ConnectionError`` once that many
    rows were produced, which is how a dropped connection looks mid-scan.
    """

    columns: list[ColumnDescriptor]
    rows: list[Row] = field(default_factory=list)
    fail_after: int | None = None
    closed: bool = False

    def __iter__(self) -> Iterator[Row]:
        for index, row in enumerate(self.rows):
            if self.fail_after is not None and index >= self.fail_after:
                raise ConnectionError("connection lost while fetching rows")
            yield row

    def close(self) -> None:
        self.closed = True

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> RecordedCursor:
        """Build a cursor from ``{"columns": [{name, type}], "rows": [[...]]}``."""

        if not isinstance(payload, Mapping):
            raise ValueError("Recorded result must be a mapping with 'columns' and 'rows'.")
        raw_columns = payload.get("columns")
        if not isinstance(raw_columns, list) or not raw_columns:
            raise ValueError("Recorded result must define a non-empty 'columns' list.")

        columns: list[ColumnDescriptor] = []
        for entry in raw_columns:
            if not isinstance(entry, Mapping) or "name" not in entry:
                raise ValueError(f"Column entries need a 'name' and a 'type': {entry!r}")
            columns.append(ColumnDescriptor(name=str(entry["name"]), declared_type=str(entry.get("type", ""))))

        raw_rows = payload.get("rows") or []
        if not isinstance(raw_rows, list):
            raise ValueError("Recorded result 'rows' must be a list.")
        rows: list[Row] = []
        for row in raw_rows:
            if not isinstance(row, list):
                raise ValueError(f"Each recorded row must be a list of values: {row!r}")
            rows.append(tuple(to_text(value) for value in row))
        return cls(columns=columns, rows=rows)


# Type names reported by python-oracledb, mapped onto declared SQL type names.
DRIVER_TYPE_NAMES: dict[str, str] = {
    "DB_TYPE_NUMBER": "NUMBER",
    "DB_TYPE_BINARY_DOUBLE": "DOUBLE",
    "DB_TYPE_BINARY_FLOAT": "FLOAT",
    "DB_TYPE_BINARY_INTEGER": "NUMBER",
    "DB_TYPE_LONG": "LONG",
    "DB_TYPE_DATE": "DATE",
    "DB_TYPE_TIMESTAMP": "TIMESTAMP",
    "DB_TYPE_TIMESTAMP_TZ": "TIMESTAMP WITH TIME ZONE",
    "DB_TYPE_TIMESTAMP_LTZ": "TIMESTAMP WITH LOCAL TIME ZONE",
    "DB_TYPE_VARCHAR": "VARCHAR2",
    "DB_TYPE_CHAR": "CHAR",
    "DB_TYPE_NVARCHAR": "NVARCHAR2",
    "DB_TYPE_NCHAR": "NCHAR",
}


def declared_type_name(type_code: Any) -> str:
    name = getattr(type_code, "name", None) or str(type_code)
    return DRIVER_TYPE_NAMES.get(name, name)


class DBAPICursor:
    """Adapter presenting a PEP 249 cursor as a :class:`RowCursor`."""

    def __init__(self, cursor: Any, *, arraysize: int | None = None) -> None:
        self._cursor = cursor
        if arraysize:
            cursor.arraysize = arraysize
        self.columns = [
            ColumnDescriptor(name=str(item[0]), declared_type=declared_type_name(item[1]))
            for item in (cursor.description or ())
        ]

    def __iter__(self) -> Iterator[Row]:
        while True:
            batch = self._cursor.fetchmany()
            if not batch:
                return
            for row in batch:
                yield tuple(to_text(value) for value in row)

    def close(self) -> None:
        self._cursor.close()


def iter_rows(cursor: RowCursor) -> Iterator[Row]:
    """Iterate ``cursor`` converting driver failures into :class:`ScanError`."""

    width = len(cursor.columns)
    iterator: Iterator[Row] = iter(cursor)
    index = 0
    while True:
        try:
            row = next(iterator)
        except StopIteration:
            return
        except FrameAgentError:
            raise
        except Exception as exc:
            raise ScanError(f"failed to read row {index + 1}: {exc}") from exc
        if len(row) != width:
            raise ScanError(f"row {index + 1} has {len(row)} values but the cursor describes {width} columns")
        yield tuple(row)
        index += 1


def close_cursor(cursor: object) -> None:
    close = getattr(cursor, "close", None)
    if callable(close):
        close()
