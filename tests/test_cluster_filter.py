"""Tests for the rule-generation eligibility gate."""
from __future__ import annotations
import pytest
from lintlearn.core.cluster_filter import is_eligible, select_eligible_clusters
from tests.conftest import make_cluster


class TestIsEligible:
    def test_eligible(self) -> None:
        assert is_eligible(make_cluster(total_frequency=10, generation_priority=7, cohesion_score=0.8), 10)

    @pytest.mark.parametrize("overrides", [
        {"total_frequency": 9},
        {"generation_priority": 6},
        {"cohesion_score": 0.79},
    ])
    def test_each_clause_required(self, overrides: dict) -> None:
        assert not is_eligible(make_cluster(**overrides), 10)


class TestSelectEligibleClusters:
    def test_ranked_and_capped(self) -> None:
        clusters = [make_cluster(cluster_id=f"cluster-{p}", generation_priority=p) for p in (7, 9, 8)]
        assert [c.generation_priority for c in select_eligible_clusters(clusters, 10, 2)] == [9, 8]

    def test_frequency_breaks_ties(self) -> None:
        clusters = [make_cluster(cluster_id=f"cluster-{f}", total_frequency=f) for f in (10, 30, 20)]
        assert [c.total_frequency for c in select_eligible_clusters(clusters, 10, 5)] == [30, 20, 10]

    def test_ineligible_dropped(self) -> None:
        clusters = [make_cluster(), make_cluster(cluster_id="cluster-low", total_frequency=3)]
        assert [c.cluster_id for c in select_eligible_clusters(clusters, 10, 5)] == ["cluster-0123456789abcdef"]

    def test_zero_cap(self) -> None:
        assert select_eligible_clusters([make_cluster()], 10, 0) == []
