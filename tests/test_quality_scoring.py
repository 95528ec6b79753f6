"""Tests for heuristic rule quality scoring."""
from __future__ import annotations
import pytest
from lintlearn.core.quality_scoring import QualityReport, QualityScorer
from lintlearn.core.rule_generator import build_test_cases
from tests.conftest import GOOD_RULE_RESPONSE, make_cluster


class TestAssessImplementation:
    def test_all_markers(self) -> None:
        score, findings = QualityScorer().assess_implementation(GOOD_RULE_RESPONSE)
        assert score == pytest.approx(1.0) and all(f.present for f in findings)

    def test_partial(self) -> None:
        score, _ = QualityScorer().assess_implementation("class X implements Visitor {}")
        assert score == pytest.approx(0.4)

    def test_empty(self) -> None:
        assert QualityScorer().assess_implementation("")[0] == 0.0

    def test_custom_weights(self) -> None:
        assert QualityScorer({"Visitor": 1.0}).assess_implementation("Visitor")[0] == 1.0


class TestAssessTests:
    def test_positive_and_negative(self) -> None:
        assert QualityScorer.assess_tests(build_test_cases(make_cluster())) == 1.0

    def test_positive_only(self) -> None:
        assert QualityScorer.assess_tests(build_test_cases(make_cluster())[:1]) == 0.5

    def test_none(self) -> None:
        assert QualityScorer.assess_tests([]) == 0.0


class TestQualityReport:
    def test_threshold_inclusive(self) -> None:
        r = QualityReport(implementation_quality=1.0, test_quality=1.0, cohesion_score=0.5)
        assert r.score == 0.85 and r.passes(0.85)

    def test_below_threshold(self) -> None:
        r = QualityReport(implementation_quality=0.0, test_quality=1.0, cohesion_score=1.0)
        assert r.score == pytest.approx(0.6) and not r.passes(0.85)

    def test_missing_markers(self) -> None:
        r = QualityScorer().score("implements Visitor", [], 1.0)
        assert set(r.missing_markers) == {"@lintlearn/rule-api", "@oxc-project/types", "LintIssue"}
