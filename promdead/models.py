"""Data models for rule groups and check findings."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Rule:
    """One alerting or recording rule from a rule group."""

    name: str
    query: str


@dataclass(frozen=True)
class RuleGroup:
    """A named group of rules loaded from one rule file."""

    name: str
    file: str
    rules: tuple[Rule, ...] = ()


@dataclass
class Finding:
    """A rule whose query references selectors with no series."""

    file: str
    group: str
    rule: str
    query: str
    no_result_selectors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "file": self.file,
            "group": self.group,
            "rule": self.rule,
            "query": self.query,
            "no_result_selectors": list(self.no_result_selectors),
        }


@dataclass(frozen=True)
class RuleWarning:
    """A rule whose query could not be parsed."""

    file: str
    group: str
    rule: str
    query: str
    error: str

    def to_dict(self) -> dict:
        return {
            "file": self.file,
            "group": self.group,
            "rule": self.rule,
            "query": self.query,
            "error": self.error,
        }


@dataclass
class CheckReport:
    """Result of checking every rule of a run."""

    findings: list[Finding] = field(default_factory=list)
    warnings: list[RuleWarning] = field(default_factory=list)
    rules_checked: int = 0
    selectors_checked: int = 0

    @property
    def problems_found(self) -> bool:
        return bool(self.findings)
