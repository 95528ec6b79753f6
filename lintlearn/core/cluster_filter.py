"""Eligibility gate and ranking for rule-generation candidates."""

from __future__ import annotations

from typing import Iterable

from lintlearn.core.pattern_tracker import PatternCluster

__all__ = ["MIN_GENERATION_PRIORITY", "MIN_COHESION_SCORE", "is_eligible", "select_eligible_clusters"]

MIN_GENERATION_PRIORITY = 7
MIN_COHESION_SCORE = 0.8


def is_eligible(cluster: PatternCluster, min_pattern_frequency_for_rules: int) -> bool:
    return (
        cluster.total_frequency >= min_pattern_frequency_for_rules
        and cluster.generation_priority >= MIN_GENERATION_PRIORITY
        and cluster.cohesion_score >= MIN_COHESION_SCORE
    )


def select_eligible_clusters(
    clusters: Iterable[PatternCluster],
    min_pattern_frequency_for_rules: int,
    max_rules_per_cycle: int,
) -> list[PatternCluster]:
    """Return eligible clusters, highest priority then frequency first, capped at *max_rules_per_cycle*."""
    eligible = [c for c in clusters if is_eligible(c, min_pattern_frequency_for_rules)]
    eligible.sort(key=lambda c: (-c.generation_priority, -c.total_frequency, c.cluster_id))
    return eligible[:max(max_rules_per_cycle, 0)]
