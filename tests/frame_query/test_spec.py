from __future__ import annotations

import pytest

from frame_cli.frame_query.spec import decode_query_spec
from frame_cli.frame_query.types import DeploymentVariant, QueryKind, QueryLanguage
from frame_cli.shared.config import QuerySettings
from frame_cli.shared.exceptions import QuerySpecError

SETTINGS = QuerySettings(step_seconds=10, prefetch_rows=100, label_lookback_seconds=3600)


def test_sql_payload() -> None:
    spec = decode_query_spec(
        {
            "refId": "A",
            "queryLang": "sql",
            "exprSql": "select 1 from dual",
            "legendFormatSql": "{{node}}",
            "stepTextSql": "30",
            "prefetchCountText": "500",
            "convertSqlResults": False,
            "exprProm": "ignored",
        },
        settings=SETTINGS,
        variant=DeploymentVariant.ADB,
    )

    assert spec.kind is QueryKind.DATA
    assert spec.language is QueryLanguage.SQL
    assert spec.expression == "select 1 from dual"
    assert spec.legend == "{{node}}"
    assert spec.step_seconds == 30
    assert spec.prefetch_rows == 500
    assert spec.convert_to_time_series is False
    assert spec.deployment_variant is DeploymentVariant.ADB


def test_promql_is_the_default_language() -> None:
    spec = decode_query_spec(
        {"refId": "B", "exprProm": "up", "legendFormatProm": "{{job}}", "stepTextProm": "60"},
        settings=SETTINGS,
    )

    assert spec.language is QueryLanguage.PROMQL
    assert spec.expression == "up"
    assert spec.legend == "{{job}}"
    assert spec.step_seconds == 60
    assert spec.deployment_variant is DeploymentVariant.DEFAULT


def test_defaults_when_optional_fields_are_missing_or_invalid() -> None:
    spec = decode_query_spec(
        {"queryLang": "sql", "exprSql": "select 1", "stepTextSql": "fast", "prefetchCountText": "many"},
        settings=SETTINGS,
    )

    assert spec.step_seconds == 10
    assert spec.prefetch_rows == 100
    assert spec.convert_to_time_series is True
    assert spec.legend == ""
    assert spec.ref_id == ""


@pytest.mark.parametrize(
    "payload",
    [
        {"queryLang": "sql", "exprSql": 42},
        {"exprProm": None},
        {"queryLang": "sql", "exprSql": "select 1", "convertSqlResults": "false"},
        {"exprProm": "up", "stepTextProm": "0"},
        {"queryLang": "sql", "exprSql": "select 1", "prefetchCountText": "-1"},
        {"exprProm": "up", "timeFrom": "yesterday"},
        {"refId": "metricFindQuery"},
        {"refId": "getValueforKeyAdHocFilter"},
    ],
)
def test_invalid_payloads_raise(payload: dict) -> None:
    with pytest.raises(QuerySpecError):
        decode_query_spec(payload, settings=SETTINGS)


def test_non_mapping_payload_raises() -> None:
    with pytest.raises(QuerySpecError):
        decode_query_spec(["not", "a", "dict"], settings=SETTINGS)  # type: ignore[arg-type]


def test_reference_ids_select_listing_queries() -> None:
    labels = decode_query_spec(
        {"refId": "fetchLabels", "timeFrom": "1700000000000", "timeTo": 1700003600000},
        settings=SETTINGS,
    )
    assert labels.kind is QueryKind.LABEL_NAMES
    assert (labels.time_from_ms, labels.time_to_ms) == (1700000000000, 1700003600000)

    series = decode_query_spec({"refId": "metricFindQuery", "expr": "up&start=1&end=2"}, settings=SETTINGS)
    assert series.kind is QueryKind.METRIC_SERIES
    assert series.expression == "up&start=1&end=2"

    values = decode_query_spec({"refId": "getValueforKeyAdHocFilter", "rawQueryText": "job"}, settings=SETTINGS)
    assert values.kind is QueryKind.ADHOC_VALUES
    assert values.raw_query_text == "job"

    keys = decode_query_spec({"refId": "getKeysForAdHocFilter"}, settings=SETTINGS)
    assert keys.kind is QueryKind.ADHOC_KEYS


def test_null_convert_flag_keeps_conversion_on() -> None:
    spec = decode_query_spec(
        {"queryLang": "sql", "exprSql": "select 1 from dual", "convertSqlResults": None},
        settings=SETTINGS,
    )
    assert spec.convert_to_time_series is True
