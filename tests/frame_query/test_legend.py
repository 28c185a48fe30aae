from __future__ import annotations

import pytest

from frame_cli.frame_query.legend import expand_legend


def test_empty_template_returns_default() -> None:
    assert expand_legend("", {"node": "a"}, default="caller-default") == "caller-default"


@pytest.mark.parametrize(
    ("template", "expected"),
    [
        ("lv{{node}}", "lva"),
        ("{{a}}-{{b}} x", "A-B x"),
        ("{{a}}{{b}}", "AB"),
        ("  plain legend  ", "plain legend"),
        ("{{missing}} tail", " tail"),
        ("only {{ open", "only {{ open"),
    ],
)
def test_expand_legend(template: str, expected: str) -> None:
    tags = {"node": "a", "a": "A", "b": "B"}
    assert expand_legend(template, tags) == expected


def test_expand_legend_without_tags() -> None:
    assert expand_legend("cpu {{node}}", None) == "cpu "
