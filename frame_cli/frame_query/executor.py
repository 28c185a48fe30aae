"""Run decoded queries against a caller-supplied runner.

The runner is the database boundary: it receives the final SQL text and a
prefetch row count and returns a :class:`RowCursor`. Failures of one query are
captured in its :class:`QueryResponse` and never affect the rest of a batch.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterable
from datetime import datetime

from frame_cli.shared.exceptions import FrameAgentError, MalformedQueryMacro, QueryError, QueryExecutionError
from frame_cli.shared.logging import Logger

from .assembler import assemble_frames, extract_single_column
from .cursor import RowCursor, close_cursor
from .macros import expand_macros, promql_to_sql
from .templates import templates_for
from .types import FrameSet, QueryKind, QueryLanguage, QueryResponse, QuerySpec, TimeRange
from .values import Clock, utc_now

Runner = Callable[[str, int], RowCursor]

DEFAULT_LABEL_LOOKBACK_SECONDS = 3600

_SERIES_EXPRESSION = re.compile(r"^(?P<metric>.*?)&start=(?P<start>[0-9]+)&end=(?P<end>[0-9]+)")

_QUERY_LABELS: dict[QueryKind, str] = {
    QueryKind.DATA: "Query",
    QueryKind.LABEL_NAMES: "Query to fetch labels",
    QueryKind.METRIC_SERIES: "Query to fetch tags",
    QueryKind.ADHOC_KEYS: "Query to fetch keys for adhoc filter",
    QueryKind.ADHOC_VALUES: "Query to fetch values for adhoc filter key",
}


def parse_series_expression(expression: str) -> tuple[str, str, str]:
    """Split ``metric&start=<secs>&end=<secs>`` into its three parts."""

    match = _SERIES_EXPRESSION.match(expression)
    if match is None:
        raise MalformedQueryMacro(f"Series lookup '{expression}' must look like 'metric&start=<secs>&end=<secs>'.")
    return match.group("metric"), match.group("start"), match.group("end")


def build_query_text(
    spec: QuerySpec,
    time_range: TimeRange,
    *,
    label_lookback_seconds: int = DEFAULT_LABEL_LOOKBACK_SECONDS,
    clock: Clock | None = None,
    logger: Logger | None = None,
) -> str:
    """Return the SQL text to execute for ``spec``."""

    templates = templates_for(spec.deployment_variant)
    if spec.kind is QueryKind.LABEL_NAMES:
        if spec.time_from_ms is not None and spec.time_to_ms is not None:
            return templates.render_label_names(spec.time_from_ms // 1000, spec.time_to_ms // 1000)
        now = math.floor((clock or utc_now)().timestamp())
        return templates.render_label_names(now - label_lookback_seconds, now)
    if spec.kind is QueryKind.METRIC_SERIES:
        return templates.render_series(*parse_series_expression(spec.expression))
    if spec.kind is QueryKind.ADHOC_KEYS:
        return templates.render_adhoc_keys()
    if spec.kind is QueryKind.ADHOC_VALUES:
        return templates.render_adhoc_values(spec.raw_query_text)
    if spec.language is QueryLanguage.PROMQL:
        return promql_to_sql(spec.expression, time_range, spec.step_seconds, templates, logger=logger)
    return expand_macros(spec.expression, time_range, spec.step_seconds, logger=logger)


def _open_cursor(runner: Runner, query_text: str, prefetch_rows: int) -> RowCursor:
    try:
        return runner(query_text, prefetch_rows)
    except FrameAgentError:
        raise
    except Exception as exc:
        raise QueryExecutionError(f"query execution failed: {exc}") from exc


def _assemble(spec: QuerySpec, cursor: RowCursor, query_text: str, clock: Clock, logger: Logger | None) -> FrameSet:
    if spec.kind is not QueryKind.DATA:
        return extract_single_column(cursor, clock=clock)
    return assemble_frames(
        cursor,
        promql=spec.language is QueryLanguage.PROMQL,
        convert_to_time_series=spec.convert_to_time_series,
        legend=spec.legend,
        query_text=query_text,
        clock=clock,
        logger=logger,
    )


def _log_stats(
    logger: Logger,
    label: str,
    query_text: str,
    rows: int,
    before: datetime,
    after_query: datetime | None,
    finished: datetime,
) -> None:
    round_trip = ((after_query or finished) - before).total_seconds() * 1000
    process = (finished - before).total_seconds() * 1000
    logger.debug(
        f"{label} finished: rows={rows} round_trip={round_trip:.1f}ms "
        f"process={process:.1f}ms query={query_text}"
    )


def run_query(
    spec: QuerySpec,
    time_range: TimeRange,
    runner: Runner,
    *,
    label_lookback_seconds: int = DEFAULT_LABEL_LOOKBACK_SECONDS,
    clock: Clock | None = None,
    logger: Logger | None = None,
) -> QueryResponse:
    """Translate, execute and assemble one query."""

    clock = clock or utc_now
    label = _QUERY_LABELS[spec.kind]
    before = clock()
    query_text = ""
    try:
        query_text = build_query_text(
            spec,
            time_range,
            label_lookback_seconds=label_lookback_seconds,
            clock=clock,
            logger=logger,
        )
        if logger is not None:
            logger.debug(f"{label} [{spec.ref_id}]: {query_text}")
        cursor = _open_cursor(runner, query_text, spec.prefetch_rows)
        try:
            frame_set = _assemble(spec, cursor, query_text, clock, logger)
        finally:
            close_cursor(cursor)
    except QueryError as exc:
        if logger is not None:
            logger.error(f"{label} [{spec.ref_id}] failed: {exc}")
        return QueryResponse(ref_id=spec.ref_id, error=exc, query_text=query_text)

    if logger is not None:
        _log_stats(logger, label, query_text, frame_set.rows_processed, before, frame_set.after_query_at, clock())
    return QueryResponse(
        ref_id=spec.ref_id,
        frames=frame_set.frames,
        query_text=query_text,
        rows_processed=frame_set.rows_processed,
    )


def run_queries(
    specs: Iterable[QuerySpec],
    time_range: TimeRange,
    runner: Runner,
    *,
    label_lookback_seconds: int = DEFAULT_LABEL_LOOKBACK_SECONDS,
    clock: Clock | None = None,
    logger: Logger | None = None,
) -> dict[str, QueryResponse]:
    """Run each query independently and key the responses by reference id."""

    responses: dict[str, QueryResponse] = {}
    for spec in specs:
        responses[spec.ref_id] = run_query(
            spec,
            time_range,
            runner,
            label_lookback_seconds=label_lookback_seconds,
            clock=clock,
            logger=logger,
        )
    return responses
