"""PromQL parsing: tokens, expression tree, label matchers."""

from .errors import PromQLParseError
from .matchers import METRIC_NAME_LABEL, Matcher, MatchType, Selector, format_selector, metric_name
from .nodes import VectorSelector, children, format_tree, walk
from .parser import parse_expr, parse_metric_selector

__all__ = [
    "PromQLParseError",
    "METRIC_NAME_LABEL",
    "Matcher",
    "MatchType",
    "Selector",
    "format_selector",
    "metric_name",
    "VectorSelector",
    "children",
    "format_tree",
    "walk",
    "parse_expr",
    "parse_metric_selector",
]
