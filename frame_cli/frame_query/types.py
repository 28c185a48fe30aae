"""Data structures shared across frame-query modules."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import pandas as pd

from frame_cli.shared.exceptions import QueryError

TIME_FIELD_NAME = "METRIC_TIME"
RESPONSE_FRAME_NAME = "response"


class SemanticKind(Enum):
    """What a result column means to the assembler."""

    TIME = "time"
    NUMBER = "number"
    TEXT = "text"
    OTHER = "other"


class FieldType(Enum):
    """Element type held by a frame field."""

    TIME = "time"
    NUMBER = "number"
    STRING = "string"


class QueryLanguage(Enum):
    SQL = "sql"
    PROMQL = "promql"


class QueryKind(Enum):
    """Routing selected by a query's reference id."""

    DATA = "data"
    LABEL_NAMES = "fetchLabels"
    METRIC_SERIES = "metricFindQuery"
    ADHOC_KEYS = "getKeysForAdHocFilter"
    ADHOC_VALUES = "getValueforKeyAdHocFilter"

    @classmethod
    def from_ref_id(cls, ref_id: str) -> QueryKind:
        for kind in cls:
            if kind is not cls.DATA and kind.value == ref_id:
                return kind
        return cls.DATA


class DeploymentVariant(Enum):
    """Telemetry package flavour targeted by generated queries."""

    ADB = "ADB"
    DEFAULT = "default"

    @classmethod
    def from_setting(cls, value: str | None) -> DeploymentVariant:
        # Anything other than the autonomous flavour talks to the on-premises package.
        return cls.ADB if value == cls.ADB.value else cls.DEFAULT


@dataclass(frozen=True, slots=True)
class ColumnDescriptor:
    """Name and engine-specific declared type of one result column."""

    name: str
    declared_type: str


@dataclass(frozen=True, slots=True)
class TimeValuePoint:
    timestamp: pd.Timestamp
    value: float


@dataclass(slots=True)
class Field:
    """A named, typed column of frame values."""

    name: str
    type: FieldType
    values: list[Any] = field(default_factory=list)
    display_name: str | None = None
    labels: dict[str, str] | None = None

    def __len__(self) -> int:
        return len(self.values)


@dataclass(slots=True)
class Frame:
    """Equal-length set of fields representing one series or one table."""

    name: str
    fields: list[Field] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.fields[0]) if self.fields else 0

    def field_names(self) -> list[str]:
        return [item.name for item in self.fields]

    def append_row(self, *values: Any) -> None:
        """Append one value to every field, keeping field lengths equal."""

        if len(values) != len(self.fields):
            raise ValueError(
                f"Frame '{self.name}' has {len(self.fields)} fields but received {len(values)} values."
            )
        for target, value in zip(self.fields, values):
            target.values.append(value)

    def to_dataframe(self) -> pd.DataFrame:
        """Return the frame as a pandas DataFrame, one column per field."""

        headers = [item.display_name or item.name for item in self.fields]
        # Shared display names (a legend over several columns) fall back to field names.
        repeated = {header for header in headers if headers.count(header) > 1}
        data: dict[str, pd.Series] = {}
        for item, header in zip(self.fields, headers):
            column = item.name if header in repeated else header
            if item.type is FieldType.TIME:
                series = pd.Series(pd.to_datetime(item.values, utc=True), dtype="datetime64[ns, UTC]")
            elif item.type is FieldType.NUMBER:
                series = pd.Series(item.values, dtype="float64")
            else:
                series = pd.Series(item.values, dtype="object")
            data[column] = series
        return pd.DataFrame(data)


@dataclass(frozen=True, slots=True)
class FrameSet:
    """Frames produced for one query plus the statistics reported to the caller."""

    frames: tuple[Frame, ...]
    rows_processed: int = 0
    after_query_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class TimeRange:
    """Requested query window."""

    start: datetime
    end: datetime

    @property
    def start_epoch(self) -> int:
        return math.floor(self.start.timestamp())

    @property
    def end_epoch(self) -> int:
        return math.floor(self.end.timestamp())


@dataclass(frozen=True, slots=True)
class QuerySpec:
    """Validated description of one query submitted by the visualization host."""

    ref_id: str
    kind: QueryKind
    language: QueryLanguage
    expression: str
    legend: str
    step_seconds: int
    prefetch_rows: int
    convert_to_time_series: bool
    deployment_variant: DeploymentVariant
    time_from_ms: int | None = None
    time_to_ms: int | None = None
    raw_query_text: str = ""


@dataclass(frozen=True, slots=True)
class QueryResponse:
    """Outcome of one query: frames on success, an error otherwise."""

    ref_id: str
    frames: tuple[Frame, ...] = ()
    error: QueryError | None = None
    query_text: str = ""
    rows_processed: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

