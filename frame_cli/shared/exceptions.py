"""Project-wide custom exceptions."""

from __future__ import annotations


class FrameAgentError(Exception):
    """Base exception for the frame toolkit."""


class ConfigurationError(FrameAgentError):
    """Raised when configuration loading or validation fails."""


class QueryError(FrameAgentError):
    """Raised when translating or assembling a single query fails."""


class QuerySpecError(QueryError):
    """Raised when a raw query payload cannot be decoded into a QuerySpec."""


class MalformedQueryMacro(QueryError):
    """Raised when a macro in the SQL text is missing its closing bracket or arguments."""


class FrameAssemblyError(QueryError):
    """Base class for failures while turning result rows into frames."""


class MalformedTimestamp(FrameAssemblyError):
    """Raised when a time token is neither RFC 3339 nor epoch seconds."""

    def __init__(self, token: str, reason: str | None = None) -> None:
        message = f"unable to parse time value '{token}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.token = token


class InvalidNumericValue(FrameAssemblyError):
    """Raised when a numeric column holds text that is not a float."""

    def __init__(self, raw: str, column: str) -> None:
        super().__init__(f"invalid numeric value '{raw}' in column {column}")
        self.raw = raw
        self.column = column


class AmbiguousSchema(FrameAssemblyError):
    """Raised when no time-series grouping can be derived from the projected columns."""


class PayloadDecodeError(FrameAssemblyError):
    """Raised when a range-vector document is not valid JSON of the expected shape."""


class ScanError(FrameAssemblyError):
    """Raised when the underlying cursor fails while rows are being read."""


class QueryExecutionError(QueryError):
    """Raised when the query runner fails before any rows are available."""
