"""Heuristic quality scoring for generated rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from lintlearn.core.rule_generator import GeneratedTestCase

__all__ = [
    "DEFAULT_MARKER_WEIGHTS",
    "IMPLEMENTATION_WEIGHT",
    "TEST_WEIGHT",
    "COHESION_WEIGHT",
    "MarkerFinding",
    "QualityReport",
    "QualityScorer",
]

IMPLEMENTATION_WEIGHT = 0.4
TEST_WEIGHT = 0.3
COHESION_WEIGHT = 0.3

DEFAULT_MARKER_WEIGHTS: dict[str, float] = {
    "@lintlearn/rule-api": 0.2,
    "@oxc-project/types": 0.2,
    "Visitor": 0.2,
    "implements Visitor": 0.2,
    "LintIssue": 0.2,
}


@dataclass(frozen=True)
class MarkerFinding:
    marker: str
    weight: float
    present: bool


@dataclass
class QualityReport:
    implementation_quality: float = 0.0
    test_quality: float = 0.0
    cohesion_score: float = 0.0
    findings: list[MarkerFinding] = field(default_factory=list)

    @property
    def score(self) -> float:
        raw = (
            self.implementation_quality * IMPLEMENTATION_WEIGHT
            + self.test_quality * TEST_WEIGHT
            + self.cohesion_score * COHESION_WEIGHT
        )
        return round(min(raw, 1.0), 4)

    @property
    def missing_markers(self) -> list[str]:
        return [f.marker for f in self.findings if not f.present]

    def passes(self, threshold: float) -> bool:
        return self.score >= threshold


class QualityScorer:
    def __init__(self, marker_weights: dict[str, float] | None = None) -> None:
        self.marker_weights = dict(marker_weights if marker_weights is not None else DEFAULT_MARKER_WEIGHTS)

    def assess_implementation(self, implementation: str) -> tuple[float, list[MarkerFinding]]:
        findings = [
            MarkerFinding(marker=marker, weight=weight, present=marker in implementation)
            for marker, weight in self.marker_weights.items()
        ]
        total = sum(f.weight for f in findings if f.present)
        return min(total, 1.0), findings

    @staticmethod
    def assess_tests(test_cases: Sequence[GeneratedTestCase]) -> float:
        if not test_cases:
            return 0.0
        score = 0.0
        if any(tc.expected_violations for tc in test_cases):
            score += 0.5
        if any(not tc.expected_violations for tc in test_cases):
            score += 0.5
        return score

    def score(self, implementation: str, test_cases: Sequence[GeneratedTestCase], cohesion_score: float) -> QualityReport:
        implementation_quality, findings = self.assess_implementation(implementation)
        return QualityReport(
            implementation_quality=implementation_quality,
            test_quality=self.assess_tests(test_cases),
            cohesion_score=cohesion_score,
            findings=findings,
        )
