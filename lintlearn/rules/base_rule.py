"""Lint issue model consumed from the rule engine, plus rule metadata enums."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from lintlearn.core.rule_generator import GeneratedRule

__all__ = ["LintSeverity", "LintIssue", "RuleSeverity", "RuleCategory", "RuleRegistry"]


class LintSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"

    @property
    def weight(self) -> float:
        """Relative importance used when ranking clusters."""
        return _SEVERITY_WEIGHTS[self]

    def to_rule_severity(self) -> RuleSeverity:
        if self is LintSeverity.ERROR:
            return RuleSeverity.ERROR
        if self is LintSeverity.WARNING:
            return RuleSeverity.WARNING
        return RuleSeverity.INFO


_SEVERITY_WEIGHTS: dict[LintSeverity, float] = {
    LintSeverity.ERROR: 1.0,
    LintSeverity.WARNING: 0.8,
    LintSeverity.INFO: 0.5,
    LintSeverity.HINT: 0.3,
}


class RuleSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class RuleCategory(str, Enum):
    CORRECTNESS = "correctness"
    SUSPICIOUS = "suspicious"
    PERFORMANCE = "performance"
    STYLE = "style"


@dataclass(frozen=True)
class LintIssue:
    """A single diagnostic emitted by the rule execution engine."""

    rule_name: str
    message: str
    line: int
    column: int
    severity: LintSeverity
    fix_available: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LintIssue:
        return cls(
            rule_name=str(data.get("rule_name", "unknown")),
            message=str(data["message"]),
            line=int(data.get("line", 0)),
            column=int(data.get("column", 0)),
            severity=LintSeverity(str(data.get("severity", "warning")).lower()),
            fix_available=bool(data.get("fix_available", False)),
        )


class RuleRegistry(Protocol):
    """Receives generated rules as additional entries of the rule catalog."""

    def register(self, rule: GeneratedRule) -> None:
        ...
