"""SQL macro expansion and PromQL range-window planning.

Macro expansion is a textual substitution engine: each marker is located
literally and its argument list ends at the first following ``)``. The
generated SQL matches the date arithmetic used by existing dashboards, so the
replacement text must stay exactly as written here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from frame_cli.shared.exceptions import MalformedQueryMacro, QuerySpecError
from frame_cli.shared.logging import Logger

from .templates import QueryTemplates
from .types import TimeRange

MAX_DATA_POINTS = 720

START_PLACEHOLDER = ":start_time"
END_PLACEHOLDER = ":end_time"

TIME_FILTER = "$__timeFilter("
UNIX_EPOCH_FILTER = "$__unixEpochFilter("
TIME_GROUP = "$__timeGroup("
TIME_ALIAS = "$__time("
INTERVAL_VARIABLE = "$__interval"

_INTERVAL_UNITS = {"s": 1, "m": 60, "h": 3600}
_DIGITS = re.compile(r"^[0-9]+$")


# ----- Range planning ----


def normalize_step(span_seconds: int, step_seconds: int) -> int:
    """Return a step that keeps the window at or below ``MAX_DATA_POINTS`` samples."""

    if step_seconds <= 0:
        raise QuerySpecError(f"Step must be a positive number of seconds, got {step_seconds}.")
    if span_seconds <= MAX_DATA_POINTS * step_seconds:
        return step_seconds
    quotient, remainder = divmod(span_seconds, MAX_DATA_POINTS)
    return quotient if remainder == 0 else quotient + 1


def align_start(start_seconds: int, step_seconds: int) -> int:
    """Floor ``start_seconds`` to a multiple of ``step_seconds``."""
    return start_seconds - start_seconds % step_seconds


@dataclass(frozen=True, slots=True)
class RangeWindow:
    """Aligned window and effective step for a range query."""

    start: int
    end: int
    step: int
    requested_step: int

    @property
    def data_points(self) -> int:
        return (self.end - self.start) // self.step

    @property
    def downsampled(self) -> bool:
        return self.step != self.requested_step


def plan_range(start_seconds: int, end_seconds: int, step_seconds: int) -> RangeWindow:
    step = normalize_step(end_seconds - start_seconds, step_seconds)
    return RangeWindow(
        start=align_start(start_seconds, step),
        end=end_seconds,
        step=step,
        requested_step=step_seconds,
    )


def promql_to_sql(
    expression: str,
    time_range: TimeRange,
    step_seconds: int,
    templates: QueryTemplates,
    *,
    logger: Logger | None = None,
) -> str:
    """Render the range-query template for ``expression`` over ``time_range``."""

    window = plan_range(time_range.start_epoch, time_range.end_epoch, step_seconds)
    if logger is not None and window.downsampled:
        logger.debug(
            f"Step raised from {window.requested_step}s to {window.step}s "
            f"to stay within {MAX_DATA_POINTS} points."
        )
    return templates.render_range(expression, window.start, window.end, window.step)


# ----- Macro expansion ----


def _time_filter(column: str) -> str:
    return (
        " "
        + column
        + ">= to_date('19700101', 'YYYYMMDD') + ( 1 / 24 / 60 / 60 ) * :start_time and "
        + column
        + "<= to_date('19700101', 'YYYYMMDD') + ( 1 / 24 / 60 / 60 ) * :end_time "
    )


def _unix_epoch_filter(column: str) -> str:
    return " " + column + ">= :start_time*1000 and " + column + "<= :end_time*1000 "


def _time_alias(column: str) -> str:
    return " " + column + " as time "


def _interval_seconds(raw: str, step_seconds: int) -> str:
    if raw == INTERVAL_VARIABLE:
        return str(step_seconds)
    digits, multiplier = raw, 1
    if raw and raw[-1] in _INTERVAL_UNITS:
        digits, multiplier = raw[:-1], _INTERVAL_UNITS[raw[-1]]
    if not _DIGITS.match(digits):
        raise MalformedQueryMacro(f"Invalid $__timeGroup interval '{raw}'.")
    return str(int(digits) * multiplier) if multiplier != 1 else digits


def _time_group_factory(step_seconds: int) -> Callable[[str], str]:
    def render(arguments: str) -> str:
        parts = arguments.split(",")
        if len(parts) < 2:
            raise MalformedQueryMacro(f"$__timeGroup requires a column and an interval, got '{arguments}'.")
        column = parts[0].strip()
        interval = _interval_seconds(parts[1].strip(), step_seconds)
        # No trailing space: the text after the macro follows the expression directly.
        return (
            " TO_DATE('19700101', 'YYYYMMDD') + ( 1 / 24 / 60 / 60 / 1000) * FLOOR(("
            + column
            + " - TO_TIMESTAMP('1970-01-01 00:00:00','yyyy-mm-dd hh24:mi:ss') + "
            + "TO_DATE ('1970-01-01 00:00:00', 'YYYY-mm-dd HH24:MI:SS') "
            + "- TO_DATE ('1970-01-01 00:00:00', 'YYYY-mm-dd HH24:MI:SS'))*24*60*60*1000/"
            + interval
            + "/1000)*"
            + interval
            + "*1000"
        )

    return render


def replace_macro(text: str, marker: str, render: Callable[[str], str]) -> str:
    """Replace every ``marker...)`` occurrence in ``text`` using ``render``.

    Scanning resumes after each replacement, so generated text is never
    re-expanded.
    """

    pieces: list[str] = []
    position = 0
    while True:
        opening = text.find(marker, position)
        if opening < 0:
            break
        arguments_start = opening + len(marker)
        closing = text.find(")", arguments_start)
        if closing < 0:
            raise MalformedQueryMacro(f"Macro '{marker}' at offset {opening} is missing its closing ')'.")
        pieces.append(text[position:opening])
        pieces.append(render(text[arguments_start:closing]))
        position = closing + 1
    pieces.append(text[position:])
    return "".join(pieces)


def bind_time_range(text: str, time_range: TimeRange) -> str:
    """Substitute ``:start_time`` and ``:end_time`` with integer Unix seconds."""

    text = text.replace(START_PLACEHOLDER, str(time_range.start_epoch))
    return text.replace(END_PLACEHOLDER, str(time_range.end_epoch))


def expand_macros(
    sql: str,
    time_range: TimeRange,
    step_seconds: int,
    *,
    logger: Logger | None = None,
) -> str:
    """Expand time macros in ``sql`` and bind the window placeholders."""

    if step_seconds <= 0:
        raise QuerySpecError(f"Step must be a positive number of seconds, got {step_seconds}.")
    expansions: tuple[tuple[str, Callable[[str], str]], ...] = (
        (TIME_FILTER, _time_filter),
        (UNIX_EPOCH_FILTER, _unix_epoch_filter),
        (TIME_GROUP, _time_group_factory(step_seconds)),
        (TIME_ALIAS, _time_alias),
    )
    text = sql
    for marker, render in expansions:
        if marker not in text:
            continue
        text = replace_macro(text, marker, render)
        if logger is not None:
            logger.debug(f"Expanded {marker}...) macro: {text}")
    return bind_time_range(text, time_range)
