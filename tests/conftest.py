"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from promdead.models import Rule, RuleGroup


def count_result(value: int) -> list[dict[str, Any]]:
    """A `count(...)` reply with a single row."""
    return [{"metric": {}, "value": [1700000000.0, str(value)]}]


class FakePrometheus:
    """Stand-in for PrometheusHttpClient.

    `series` maps a selector string to its series count; selectors not listed
    have none and yield an empty result like Prometheus does.
    """

    def __init__(self, groups: list[RuleGroup] | None = None, series: dict[str, int] | None = None) -> None:
        self.groups = groups or []
        self.series = series or {}
        self.queries: list[str] = []

    def get_rules(self) -> list[RuleGroup]:
        return self.groups

    def query(self, expr: str) -> list[dict[str, Any]]:
        self.queries.append(expr)
        assert expr.startswith("count(") and expr.endswith(")")
        selector = expr[len("count(") : -1]
        count = self.series.get(selector, 0)
        return count_result(count) if count else []


@pytest.fixture
def fake_prometheus() -> FakePrometheus:
    """Prometheus with `up` and two http_requests_total series."""
    groups = [
        RuleGroup(
            name="node",
            file="/etc/prometheus/rules/node.yml",
            rules=(
                Rule(name="InstanceDown", query='up{job="node"} == 0'),
                Rule(name="HighErrorRate", query='rate(http_requests_total{code=~"500|503"}[5m]) > 1'),
            ),
        ),
    ]
    series = {
        'up{job="node"}': 3,
        'http_requests_total{code=~"500"}': 2,
    }
    return FakePrometheus(groups, series)
