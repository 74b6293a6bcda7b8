"""Selectors that are skipped or left out of the report."""

from __future__ import annotations

import re
from typing import Iterable

from ..promql import METRIC_NAME_LABEL, Selector

# Series Prometheus itself writes while alerts fire; absent most of the time
HARD_IGNORED_METRICS = frozenset({"ALERTS", "ALERTS_FOR_STATE"})


def is_hard_ignored(matchers: Selector) -> bool:
    """True if the selector targets one of Prometheus' alert bookkeeping series."""
    return any(m.name == METRIC_NAME_LABEL and m.value in HARD_IGNORED_METRICS for m in matchers)


class IgnoreFilter:
    """User-supplied patterns for selectors to keep out of the report.

    Each pattern is a regular expression searched (unanchored) in the
    selector's canonical string.
    """

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self.patterns = tuple(patterns)
        try:
            self._compiled = [re.compile(p) for p in self.patterns]
        except re.error as e:
            raise ValueError(f"invalid ignore pattern {e.pattern!r}: {e}") from e

    def is_soft_ignored(self, selector: str) -> bool:
        return any(p.search(selector) for p in self._compiled)
