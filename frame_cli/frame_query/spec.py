"""Decode raw query payloads into validated :class:`QuerySpec` objects.

Payload keys follow the query editor's JSON model (``queryLang``, ``exprSql``,
``stepTextProm`` ...). Lenient fields fall back to configured defaults; fields
whose type makes the query meaningless raise :class:`QuerySpecError`.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from frame_cli.shared.config import QuerySettings
from frame_cli.shared.exceptions import QuerySpecError

from .types import DeploymentVariant, QueryKind, QueryLanguage, QuerySpec

SQL_LANGUAGE = "sql"

_INTEGER_TEXT = re.compile(r"^[+-]?[0-9]+$")

_LANGUAGE_KEYS: dict[QueryLanguage, tuple[str, str, str]] = {
    # expression, legend, step
    QueryLanguage.SQL: ("exprSql", "legendFormatSql", "stepTextSql"),
    QueryLanguage.PROMQL: ("exprProm", "legendFormatProm", "stepTextProm"),
}


def _integer(value: Any) -> int | None:
    """Return ``value`` as an int when it is an integer or integer text."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER_TEXT.match(value.strip()):
        return int(value.strip())
    return None


def _optional_text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else ""


def _required_text(payload: Mapping[str, Any], key: str, ref_id: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise QuerySpecError(f"Query '{ref_id}' needs a string '{key}', got {type(value).__name__}.")
    return value


def _epoch_millis(payload: Mapping[str, Any], key: str, ref_id: str) -> int | None:
    value = payload.get(key)
    if value is None:
        return None
    millis = _integer(value)
    if millis is None:
        raise QuerySpecError(f"Query '{ref_id}' has an invalid '{key}' value {value!r}.")
    return millis


def decode_query_spec(
    payload: Mapping[str, Any],
    *,
    settings: QuerySettings,
    variant: DeploymentVariant = DeploymentVariant.DEFAULT,
) -> QuerySpec:
    """Validate one query payload."""

    if not isinstance(payload, Mapping):
        raise QuerySpecError(f"Query payload must be an object, got {type(payload).__name__}.")

    ref_id = _optional_text(payload, "refId")
    kind = QueryKind.from_ref_id(ref_id)
    language = QueryLanguage.SQL if payload.get("queryLang") == SQL_LANGUAGE else QueryLanguage.PROMQL
    expression_key, legend_key, step_key = _LANGUAGE_KEYS[language]

    if kind is QueryKind.DATA:
        expression = _required_text(payload, expression_key, ref_id)
    elif kind is QueryKind.METRIC_SERIES:
        expression = _required_text(payload, "expr", ref_id)
    else:
        expression = _optional_text(payload, expression_key)

    raw_query_text = (
        _required_text(payload, "rawQueryText", ref_id)
        if kind is QueryKind.ADHOC_VALUES
        else _optional_text(payload, "rawQueryText")
    )

    step = _integer(payload.get(step_key))
    step_seconds = settings.step_seconds if step is None else step
    if step_seconds <= 0:
        raise QuerySpecError(f"Query '{ref_id}' has a non-positive step of {step_seconds} seconds.")

    prefetch_rows = settings.prefetch_rows
    convert = True
    if language is QueryLanguage.SQL:
        prefetch = _integer(payload.get("prefetchCountText"))
        if prefetch is not None:
            prefetch_rows = prefetch
        if prefetch_rows <= 0:
            raise QuerySpecError(f"Query '{ref_id}' has a non-positive prefetch count of {prefetch_rows}.")

        raw_convert = payload.get("convertSqlResults")
        if raw_convert is None:
            raw_convert = True
        if not isinstance(raw_convert, bool):
            raise QuerySpecError(f"Query '{ref_id}' has a non-boolean 'convertSqlResults' value {raw_convert!r}.")
        convert = raw_convert

    return QuerySpec(
        ref_id=ref_id,
        kind=kind,
        language=language,
        expression=expression,
        legend=_optional_text(payload, legend_key),
        step_seconds=step_seconds,
        prefetch_rows=prefetch_rows,
        convert_to_time_series=convert,
        deployment_variant=variant,
        time_from_ms=_epoch_millis(payload, "timeFrom", ref_id),
        time_to_ms=_epoch_millis(payload, "timeTo", ref_id),
        raw_query_text=raw_query_text,
    )
