"""Offline selector inspection for a single query."""

from __future__ import annotations

from rich.console import Console

from ..check import expand_all, get_selectors, is_hard_ignored
from ..promql import PromQLParseError, format_selector, format_tree, parse_expr


def run_selectors(query: str, expand: bool = True, show_tree: bool = False) -> int:
    """Print the selectors a query references, without contacting Prometheus.

    Returns:
        Exit code (0 = parsed, 1 = parse error)
    """
    console = Console(soft_wrap=True, highlight=False)

    try:
        expr = parse_expr(query)
    except PromQLParseError as e:
        Console(stderr=True).print(f"Parse error: {e}", style="bold red", markup=False)
        return 1

    if show_tree:
        console.print(format_tree(expr), style="dim", markup=False)

    for matchers in get_selectors(expr):
        line = format_selector(matchers)
        if is_hard_ignored(matchers):
            line += "  (ignored)"
        console.print(line, markup=False)
        if not expand:
            continue
        expanded = expand_all(matchers)
        if len(expanded) > 1:
            for sel in expanded:
                console.print(f"  -> {format_selector(sel)}", style="dim", markup=False)

    return 0
