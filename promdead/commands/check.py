"""Check command implementation."""

from __future__ import annotations

import csv
import json
import sys
import time
from typing import Callable, TextIO

from rich.console import Console

from ..check import ExistenceChecker, RuleChecker
from ..config import CheckConfig
from ..models import CheckReport
from ..prometheus import PrometheusError, PrometheusHttpClient, PrometheusHttpConfig

CSV_HEADER = ("file", "group", "rule", "query", "selector")


def run_check(
    prometheus_url: str,
    config: CheckConfig,
    *,
    timeout_s: float = 30.0,
    headers: dict[str, str] | None = None,
    client: PrometheusHttpClient | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Check all rules of a Prometheus server for selectors without series.

    Args:
        prometheus_url: Prometheus base URL
        config: Check options (delay, regex expansion, ignore patterns, format)
        timeout_s: HTTP timeout per request
        headers: Extra HTTP headers sent with every request
        client: Client to use instead of one built from the URL
        sleep: Used for the delay between checks

    Returns:
        Exit code (0 = no findings, 1 = findings, 2 = Prometheus unusable)
    """
    console = Console(stderr=True)

    if client is None:
        client = PrometheusHttpClient(
            PrometheusHttpConfig(base_url=prometheus_url, timeout_s=timeout_s, headers=dict(headers or {}))
        )

    console.print(f"Fetching rules from {prometheus_url}...", style="dim", markup=False)
    try:
        groups = client.get_rules()
        checker = ExistenceChecker(client, delay_s=config.delay_s, sleep=sleep)
        report = RuleChecker(checker, config).check_groups(groups)
    except PrometheusError as e:
        console.print(str(e), style="bold red", markup=False)
        return 2

    render_report(report, config.output_format)

    return 1 if report.problems_found else 0


def render_report(report: CheckReport, fmt: str, stream: TextIO | None = None) -> None:
    """Write the report in the requested format ("human", "csv" or "json")."""
    stream = stream if stream is not None else sys.stdout
    if fmt == "json":
        _output_json(report, stream)
    elif fmt == "csv":
        _output_csv(report, stream)
    elif fmt == "human":
        _print_human_output(report, Console(file=stream, soft_wrap=True, highlight=False))
    else:
        raise ValueError(f"unknown output format: {fmt}")


def _output_json(report: CheckReport, stream: TextIO) -> None:
    output = {
        "findings": [f.to_dict() for f in report.findings],
        "warnings": [w.to_dict() for w in report.warnings],
        "summary": {
            "rules_checked": report.rules_checked,
            "selectors_checked": report.selectors_checked,
            "rules_with_findings": len(report.findings),
            "rules_unparseable": len(report.warnings),
        },
    }
    stream.write(json.dumps(output, indent=2) + "\n")


def _output_csv(report: CheckReport, stream: TextIO) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for finding in report.findings:
        for selector in finding.no_result_selectors:
            writer.writerow((finding.file, finding.group, finding.rule, finding.query, selector))


def _print_human_output(report: CheckReport, console: Console) -> None:
    for finding in report.findings:
        console.print(f"{finding.file} / {finding.group} / {finding.rule}", style="bold", markup=False)
        console.print(f"  query: {finding.query}", style="dim", markup=False)
        for selector in finding.no_result_selectors:
            console.print(f"  - {selector}", style="red", markup=False)
        console.print()

    console.print(
        f"Checked {report.rules_checked} rule(s), {report.selectors_checked} selector(s)",
        style="dim",
        markup=False,
    )
    if report.warnings:
        console.print(f"⚠️  {len(report.warnings)} rule(s) could not be parsed", style="yellow")
    if report.findings:
        console.print(f"❌ {len(report.findings)} rule(s) with selectors returning no series", style="bold red")
    else:
        console.print("✅ All selectors returned series", style="bold green")
