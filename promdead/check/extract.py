"""Collect the vector selectors referenced by a query."""

from __future__ import annotations

from ..promql import Selector, VectorSelector, parse_expr, walk
from ..promql.nodes import Expr


def get_selectors(expr: Expr) -> list[Selector]:
    """Return the matchers of every vector selector, in source order.

    Selectors nested in ranges, subqueries, function arguments and binary
    operands are all included; offsets and @ modifiers are not part of a
    selector's matchers.
    """
    return [node.matchers for node in walk(expr) if isinstance(node, VectorSelector)]


def extract_selectors(query: str) -> list[Selector]:
    """Parse `query` and return its selectors. Raises PromQLParseError."""
    return get_selectors(parse_expr(query))
