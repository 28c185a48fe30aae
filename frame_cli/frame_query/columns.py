"""Classify result columns by their declared database type."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from .types import ColumnDescriptor, SemanticKind

NUMBER_TYPES = frozenset({"NUMBER", "DOUBLE", "FLOAT", "LONG"})
TIME_TYPES = frozenset(
    {
        "DATE",
        "TIMESTAMP",
        "TIMESTAMP WITH TIME ZONE",
        "TIMESTAMP WITH LOCAL TIME ZONE",
    }
)
# Queries alias numeric epoch columns with these names to mark the time axis.
TIME_COLUMN_NAMES = frozenset({"METRIC_TIME", "METRIC_TIME_EPOCH", "TIME"})
CHAR_TYPES = frozenset({"VARCHAR2", "CHAR", "NVARCHAR2", "NCHAR"})


def is_number(declared_type: str) -> bool:
    return declared_type in NUMBER_TYPES


def is_time(declared_type: str, name: str) -> bool:
    return declared_type in TIME_TYPES or name in TIME_COLUMN_NAMES


def is_char(declared_type: str) -> bool:
    return declared_type in CHAR_TYPES


def classify(column: ColumnDescriptor) -> SemanticKind:
    """Return the semantic kind; the time check wins over the type-only checks."""

    if is_time(column.declared_type, column.name):
        return SemanticKind.TIME
    if is_number(column.declared_type):
        return SemanticKind.NUMBER
    if is_char(column.declared_type):
        return SemanticKind.TEXT
    return SemanticKind.OTHER


def classify_all(columns: Iterable[ColumnDescriptor]) -> list[SemanticKind]:
    return [classify(column) for column in columns]


def count_kinds(kinds: Iterable[SemanticKind]) -> Counter[SemanticKind]:
    return Counter(kinds)
