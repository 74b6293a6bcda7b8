"""Expansion of `label=~"a|b|c"` matchers into concrete selectors."""

from __future__ import annotations

from ..promql import MatchType, Selector

# Anything beyond plain alternation is left alone
_UNSAFE_CHARS = ("(", ")", "\\")


def _alternatives(value: str) -> list[str] | None:
    if any(ch in value for ch in _UNSAFE_CHARS):
        return None
    parts = value.split("|")
    if len(parts) < 2:
        return None
    return parts


def expand_regex_matchers(matchers: Selector) -> list[Selector]:
    """Expand the first alternation matcher of a selector.

    Returns one selector per alternative, with only that matcher's value
    replaced. Every other matcher, including later alternation matchers, is
    left as is; callers expand those by calling again on each result. An
    empty list means nothing can be expanded.
    """
    for i, matcher in enumerate(matchers):
        if matcher.type is not MatchType.REGEX_MATCH:
            continue
        parts = _alternatives(matcher.value)
        if parts is None:
            continue
        return [matchers[:i] + (matcher.with_value(part),) + matchers[i + 1 :] for part in parts]
    return []


def expand_all(matchers: Selector) -> list[Selector]:
    """Fully expand a selector, depth first, keeping alternative order."""
    expanded = expand_regex_matchers(matchers)
    if not expanded:
        return [matchers]
    result: list[Selector] = []
    for sel in expanded:
        result.extend(expand_all(sel))
    return result
