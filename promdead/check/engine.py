"""Rule evaluation: extract, expand, filter and check every selector."""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from ..config import CheckConfig
from ..models import CheckReport, Finding, RuleGroup, RuleWarning
from ..promql import PromQLParseError, Selector, format_selector
from .existence import ExistenceChecker
from .expand import expand_regex_matchers
from .extract import extract_selectors
from .ignore import IgnoreFilter, is_hard_ignored

logger = logging.getLogger(__name__)


class RuleChecker:
    """Checks rule queries for selectors that match no series."""

    def __init__(self, checker: ExistenceChecker, config: CheckConfig) -> None:
        self.checker = checker
        self.config = config
        self.ignore = IgnoreFilter(config.ignore_patterns)

    def check_groups(self, groups: Iterable[RuleGroup]) -> CheckReport:
        """Check every rule of every group, in order."""
        report = CheckReport()
        for group in groups:
            for rule in group.rules:
                logger.debug("Checking rule %s/%s: %s", group.name, rule.name, rule.query)
                report.rules_checked += 1
                try:
                    selectors = extract_selectors(rule.query)
                except PromQLParseError as e:
                    logger.warning(
                        "Potentially broken rule %r in group %r (%s): %s",
                        rule.name,
                        group.name,
                        group.file,
                        e,
                    )
                    report.warnings.append(
                        RuleWarning(file=group.file, group=group.name, rule=rule.name, query=rule.query, error=str(e))
                    )
                    continue

                no_results = self.check_selectors(selectors, report)
                if no_results:
                    report.findings.append(
                        Finding(
                            file=group.file,
                            group=group.name,
                            rule=rule.name,
                            query=rule.query,
                            no_result_selectors=no_results,
                        )
                    )
        return report

    def check_selectors(self, selectors: Iterable[Selector], report: CheckReport) -> list[str]:
        queue: deque[Selector] = deque(selectors)
        logger.debug("Found %d selectors", len(queue))
        no_results: list[str] = []

        while queue:
            matchers = queue.popleft()
            selector = format_selector(matchers)

            # Known quirk: the rest of the rule's selectors are skipped too
            if is_hard_ignored(matchers):
                logger.debug("Ignoring %s and remaining selectors of this rule", selector)
                break

            if self.config.expand_regex:
                expanded = expand_regex_matchers(matchers)
                if expanded:
                    logger.debug("Expanded %s into %d selectors", selector, len(expanded))
                    # Front of the queue, so checks stay in source order
                    queue.extendleft(reversed(expanded))
                    continue

            report.selectors_checked += 1
            if self.checker.count(selector) > 0:
                continue

            if self.ignore.is_soft_ignored(selector):
                logger.debug("No results for %s, ignored by pattern", selector)
                continue
            no_results.append(selector)

        return no_results
