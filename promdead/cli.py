"""CLI entrypoint for promdead."""

import sys

import click

from . import __version__
from .config import OUTPUT_FORMATS, CheckConfig
from .logging_setup import configure_logging


def _validate_ignore(ctx: click.Context, param: click.Parameter, value: tuple[str, ...]) -> tuple[str, ...]:
    from .check import IgnoreFilter

    try:
        IgnoreFilter(value)
    except ValueError as e:
        raise click.BadParameter(str(e), ctx=ctx, param=param) from e
    return value


def _parse_headers(ctx: click.Context, param: click.Parameter, value: tuple[str, ...]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in value:
        name, sep, val = raw.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME:VALUE, got {raw!r}", ctx=ctx, param=param)
        headers[name.strip()] = val.strip()
    return headers


@click.group()
@click.version_option(__version__, prog_name="promdead")
@click.option("--verbose", "-v", is_flag=True, help="Verbose mode (debug logging)")
def cli(verbose: bool) -> None:
    """promdead - Find Prometheus rule selectors that match no series.

    A rule whose query selects a metric with no series usually references a
    renamed, removed or misspelled metric, and will never fire.
    """
    configure_logging(verbose)


@cli.command()
@click.option(
    "--prometheus.url",
    "--prometheus-url",
    "prometheus_url",
    envvar="PROMETHEUS_URL",
    required=True,
    help="Prometheus base URL (or set PROMETHEUS_URL)",
)
@click.option(
    "--delay",
    type=click.FloatRange(min=0),
    default=0.0,
    show_default=True,
    help="Seconds to wait before each series-count query",
)
@click.option(
    "--expand-regex/--no-expand-regex",
    default=True,
    show_default=True,
    help='Check each alternative of label=~"a|b|c" matchers separately',
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS),
    default="human",
    show_default=True,
    help="Output format",
)
@click.option(
    "--ignore",
    "ignore_patterns",
    multiple=True,
    metavar="PATTERN",
    callback=_validate_ignore,
    help="Regex; selectors matching it are left out of the report (repeatable)",
)
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=30.0, show_default=True, help="HTTP timeout in seconds")
@click.option(
    "--header",
    "headers",
    multiple=True,
    metavar="NAME:VALUE",
    callback=_parse_headers,
    help="Extra HTTP header for every request (repeatable)",
)
def check(
    prometheus_url: str,
    delay: float,
    expand_regex: bool,
    output_format: str,
    ignore_patterns: tuple[str, ...],
    timeout: float,
    headers: dict[str, str],
) -> None:
    """Check every rule query for selectors without series.

    Exits 1 if any rule references a selector with no series, 2 if
    Prometheus cannot be queried.

    Examples:

        promdead check --prometheus.url http://localhost:9090

        promdead check --prometheus.url http://prom:9090 --delay 0.2 --ignore 'job="batch"'
    """
    from .commands.check import run_check

    config = CheckConfig(
        delay_s=delay,
        expand_regex=expand_regex,
        ignore_patterns=ignore_patterns,
        output_format=output_format,
    )
    exit_code = run_check(prometheus_url, config, timeout_s=timeout, headers=headers)
    sys.exit(exit_code)


@cli.command()
@click.argument("query")
@click.option("--expand/--no-expand", default=True, show_default=True, help="Show regex alternation expansions")
@click.option("--tree", "show_tree", is_flag=True, help="Print the parsed expression tree")
def selectors(query: str, expand: bool, show_tree: bool) -> None:
    """Print the selectors QUERY references (no Prometheus access).

    Examples:

        promdead selectors 'rate(http_requests_total{code=~"5..|429"}[5m])'
    """
    from .commands.selectors import run_selectors

    sys.exit(run_selectors(query, expand=expand, show_tree=show_tree))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
