"""Dead-selector detection for rule queries."""

from .engine import RuleChecker
from .existence import ExistenceChecker
from .expand import expand_all, expand_regex_matchers
from .extract import extract_selectors, get_selectors
from .ignore import HARD_IGNORED_METRICS, IgnoreFilter, is_hard_ignored

__all__ = [
    "RuleChecker",
    "ExistenceChecker",
    "expand_all",
    "expand_regex_matchers",
    "extract_selectors",
    "get_selectors",
    "HARD_IGNORED_METRICS",
    "IgnoreFilter",
    "is_hard_ignored",
]
