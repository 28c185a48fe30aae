from __future__ import annotations

import math

import pytest

from frame_cli.frame_query.macros import (
    MAX_DATA_POINTS,
    align_start,
    expand_macros,
    normalize_step,
    plan_range,
    promql_to_sql,
)
from frame_cli.frame_query.templates import templates_for
from frame_cli.frame_query.types import DeploymentVariant
from frame_cli.shared.exceptions import MalformedQueryMacro, QuerySpecError

TIME_FILTER_SQL = (
    " ts>= to_date('19700101', 'YYYYMMDD') + ( 1 / 24 / 60 / 60 ) * 1000 and "
    "ts<= to_date('19700101', 'YYYYMMDD') + ( 1 / 24 / 60 / 60 ) * 2000 "
)


def _time_group_sql(column: str, interval: str) -> str:
    return (
        " TO_DATE('19700101', 'YYYYMMDD') + ( 1 / 24 / 60 / 60 / 1000) * FLOOR(("
        f"{column} - TO_TIMESTAMP('1970-01-01 00:00:00','yyyy-mm-dd hh24:mi:ss') + "
        "TO_DATE ('1970-01-01 00:00:00', 'YYYY-mm-dd HH24:MI:SS') "
        "- TO_DATE ('1970-01-01 00:00:00', 'YYYY-mm-dd HH24:MI:SS'))*24*60*60*1000/"
        f"{interval}/1000)*{interval}*1000"
    )


# ----- Step normalization ----


@pytest.mark.parametrize(
    ("span", "step", "expected"),
    [
        (7200, 1, 10),
        (7201, 1, 11),
        (720, 1, 1),
        (7200, 10, 10),
        (86400, 15, 120),
    ],
)
def test_normalize_step(span: int, step: int, expected: int) -> None:
    assert normalize_step(span, step) == expected


@pytest.mark.parametrize("span", [1, 719, 720, 721, 3600, 7201, 86399, 604800])
@pytest.mark.parametrize("step", [1, 5, 60])
def test_normalized_step_bounds_point_count(span: int, step: int) -> None:
    emitted = normalize_step(span, step)
    if span / step <= MAX_DATA_POINTS:
        assert emitted == step
    else:
        assert emitted == math.ceil(span / MAX_DATA_POINTS)
        assert span / emitted <= MAX_DATA_POINTS


def test_non_positive_step_rejected() -> None:
    with pytest.raises(QuerySpecError):
        normalize_step(100, 0)


def test_plan_range_aligns_start_to_step() -> None:
    window = plan_range(105, 825, 10)
    assert (window.start, window.end, window.step) == (100, 825, 10)
    assert window.downsampled is False


def test_plan_range_aligns_with_downsampled_step() -> None:
    window = plan_range(1005, 8205, 1)
    assert window.step == 10
    assert window.start == 1000
    assert window.start % window.step == 0
    assert window.downsampled is True


def test_align_start_floors_negative_values() -> None:
    assert align_start(-5, 10) == -10


def test_promql_to_sql_renders_range_template(epoch_range, stub_logger) -> None:
    sql = promql_to_sql(
        "up",
        epoch_range(0, 7200),
        1,
        templates_for(DeploymentVariant.DEFAULT),
        logger=stub_logger,
    )
    assert sql == "select DBMS_TELEMETRY_QUERY.promql_range('up',0,7200,10) from dual"
    assert stub_logger.levels() == ["debug"]


# ----- Macro expansion ----


def test_time_filter_expansion(epoch_range) -> None:
    sql = expand_macros("select * from t where $__timeFilter(ts) order by ts", epoch_range(1000, 2000), 10)
    assert sql == "select * from t where " + TIME_FILTER_SQL + " order by ts"


def test_unix_epoch_filter_expansion(epoch_range) -> None:
    sql = expand_macros("select * from t where $__unixEpochFilter(ts)", epoch_range(1000, 2000), 10)
    assert sql == "select * from t where  ts>= 1000*1000 and ts<= 2000*1000 "


def test_time_group_expands_every_occurrence(epoch_range) -> None:
    sql = expand_macros(
        "select $__timeGroup(ts, 5m) t, avg(v) from m group by $__timeGroup(ts, 5m)",
        epoch_range(1000, 2000),
        10,
    )
    group = _time_group_sql("ts", "300")
    assert sql == "select " + group + " t, avg(v) from m group by " + group
    assert "$__timeGroup" not in sql


@pytest.mark.parametrize(
    ("interval", "expected"),
    [("$__interval", "15"), ("30s", "30"), ("2h", "7200"), ("45", "45")],
)
def test_time_group_interval_units(epoch_range, interval: str, expected: str) -> None:
    sql = expand_macros(f"select $__timeGroup(ts,{interval}) from m", epoch_range(0, 60), 15)
    assert sql == "select " + _time_group_sql("ts", expected) + " from m"


def test_time_alias_expansion(epoch_range) -> None:
    sql = expand_macros("select $__time(ts), v from t", epoch_range(0, 60), 10)
    assert sql == "select  ts as time , v from t"


def test_placeholders_are_bound_independently(epoch_range) -> None:
    assert expand_macros("where a > :start_time", epoch_range(1000, 2000), 10) == "where a > 1000"
    assert expand_macros("where a < :end_time", epoch_range(1000, 2000), 10) == "where a < 2000"
    assert (
        expand_macros("where a between :start_time and :end_time or b = :start_time", epoch_range(1, 2), 10)
        == "where a between 1 and 2 or b = 1"
    )


def test_repeated_time_filters_are_all_expanded(epoch_range) -> None:
    sql = expand_macros("$__timeFilter(a) and $__timeFilter(b)", epoch_range(1000, 2000), 10)
    assert "$__timeFilter" not in sql
    assert sql.count("to_date('19700101', 'YYYYMMDD')") == 4


def test_query_without_macros_is_unchanged(epoch_range) -> None:
    assert expand_macros("select 1 from dual", epoch_range(0, 60), 10) == "select 1 from dual"


@pytest.mark.parametrize(
    "sql",
    [
        "select * from t where $__timeFilter(ts",
        "select $__timeGroup(ts) from t",
        "select $__timeGroup(ts, 5x) from t",
        "select $__time(ts from t",
    ],
)
def test_malformed_macros_raise(epoch_range, sql: str) -> None:
    with pytest.raises(MalformedQueryMacro):
        expand_macros(sql, epoch_range(0, 60), 10)


@pytest.mark.parametrize("step", [0, -10])
def test_expand_macros_rejects_non_positive_step(epoch_range, step: int) -> None:
    with pytest.raises(QuerySpecError):
        expand_macros("select $__timeGroup(t,$__interval) from x", epoch_range(0, 100), step)
