"""Orchestration engine: ties pattern tracking, clustering and rule generation together."""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from lintlearn.ai.capability import AICapability, AIRouter
from lintlearn.ai.training import PatternTrainer
from lintlearn.config.settings import LintLearnSettings, load_settings
from lintlearn.core.cluster_filter import select_eligible_clusters
from lintlearn.core.errors import LintLearnError
from lintlearn.core.pattern_tracker import PatternCluster, PatternFrequencyTracker, SimilarityFn
from lintlearn.core.rule_generator import CustomRuleGenerator, GeneratedRule
from lintlearn.rules.base_rule import LintIssue, RuleRegistry
from lintlearn.templates.library import RuleTemplateLibrary

__all__ = ["AnalysisCycle", "AdaptiveRuleSystemStats", "AdaptiveRuleSystem", "create_adaptive_rule_system"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisCycle:
    cycle_id: str
    timestamp: datetime
    patterns_analyzed: int
    clusters_formed: int
    rules_generated: int
    execution_time_ms: int
    cleaned_patterns: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle_id": self.cycle_id,
            "timestamp": self.timestamp.isoformat(),
            "patterns_analyzed": self.patterns_analyzed,
            "clusters_formed": self.clusters_formed,
            "rules_generated": self.rules_generated,
            "execution_time_ms": self.execution_time_ms,
            "cleaned_patterns": self.cleaned_patterns,
        }


@dataclass(frozen=True)
class AdaptiveRuleSystemStats:
    total_patterns_tracked: int
    patterns_eligible_for_rules: int
    total_rules_generated: int
    active_rules: int
    average_rule_quality: float
    last_analysis: datetime | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_patterns_tracked": self.total_patterns_tracked,
            "patterns_eligible_for_rules": self.patterns_eligible_for_rules,
            "total_rules_generated": self.total_rules_generated,
            "active_rules": self.active_rules,
            "average_rule_quality": self.average_rule_quality,
            "last_analysis": self.last_analysis.isoformat() if self.last_analysis else None,
        }


class AdaptiveRuleSystem:
    """Central orchestrator for the learning loop.

    Owns the tracker, the generator, the generated rules and the cycle
    history. Cycles run one at a time and clusters inside a cycle are
    processed sequentially, so at most one AI request is in flight.
    """

    def __init__(
        self,
        settings: LintLearnSettings | None = None,
        ai: AICapability | None = None,
        trainer: PatternTrainer | None = None,
        templates: RuleTemplateLibrary | None = None,
        registry: RuleRegistry | None = None,
        similarity: SimilarityFn | None = None,
    ) -> None:
        self.settings = settings or LintLearnSettings()
        self._ai = ai
        self._trainer = trainer
        self._templates = templates
        self._registry = registry
        self._similarity = similarity
        self._cycle_lock = asyncio.Lock()
        self._initialize()

    def _initialize(self) -> None:
        self.tracker = PatternFrequencyTracker(self.settings.pattern_tracking, similarity=self._similarity)
        self.generator = CustomRuleGenerator(
            self.settings.rule_generation,
            ai=self._ai,
            templates=self._templates,
            trainer=self._trainer,
        )
        self._generated_rules: list[GeneratedRule] = []
        self._active_rule_ids: set[str] = set()
        self._history: list[AnalysisCycle] = []

    @property
    def generated_rules(self) -> tuple[GeneratedRule, ...]:
        return tuple(self._generated_rules)

    @property
    def analysis_history(self) -> tuple[AnalysisCycle, ...]:
        return tuple(self._history)

    def process_lint_issues(self, issues: Iterable[LintIssue], file_path: str) -> None:
        self.tracker.process_lint_issues(issues, file_path)

    def eligible_clusters(self, clusters: Iterable[PatternCluster]) -> list[PatternCluster]:
        return select_eligible_clusters(
            clusters,
            self.settings.min_pattern_frequency_for_rules,
            self.settings.max_rules_per_cycle,
        )

    async def run_analysis_cycle(self) -> AnalysisCycle:
        async with self._cycle_lock:
            return await self._run_cycle()

    async def _run_cycle(self) -> AnalysisCycle:
        started = time.perf_counter()
        cycle_id = str(uuid.uuid4())

        clusters = self.tracker.perform_clustering_analysis()
        to_process = self.eligible_clusters(clusters)
        logger.info("Cycle %s: %d of %d cluster(s) eligible", cycle_id, len(to_process), len(clusters))

        rules_generated = 0
        for cluster in to_process:
            try:
                rule = await self.generator.generate_rule_from_cluster(cluster)
            except LintLearnError as exc:
                logger.warning("Failed to generate rule for cluster %s: %s", cluster.cluster_id, exc)
                continue
            except Exception:
                logger.warning("Unexpected failure generating rule for cluster %s", cluster.cluster_id, exc_info=True)
                continue
            self._accept_rule(rule)
            rules_generated += 1

        cleaned = self.tracker.cleanup_old_patterns()

        cycle = AnalysisCycle(
            cycle_id=cycle_id,
            timestamp=datetime.now(timezone.utc),
            patterns_analyzed=self.tracker.get_analysis_summary().total_patterns,
            clusters_formed=len(clusters),
            rules_generated=rules_generated,
            execution_time_ms=int((time.perf_counter() - started) * 1000),
            cleaned_patterns=cleaned,
        )
        self._history.append(cycle)
        logger.info(
            "Analysis cycle complete: %d patterns -> %d clusters -> %d rules (%dms)",
            cycle.patterns_analyzed, cycle.clusters_formed, cycle.rules_generated, cycle.execution_time_ms,
        )
        return cycle

    def _accept_rule(self, rule: GeneratedRule) -> None:
        self._generated_rules.append(rule)
        if self.settings.output_directory:
            try:
                self.generator.export_rule_to_file(rule, self.settings.output_directory)
            except OSError as exc:
                logger.warning("Could not export rule %s to %s: %s", rule.rule_id, self.settings.output_directory, exc)
        if self.settings.auto_apply_generated_rules:
            if self._registry is not None:
                self._registry.register(rule)
            self._active_rule_ids.add(rule.rule_id)
        logger.info("Generated rule '%s' from cluster '%s'", rule.rule_name, rule.source_cluster)

    def get_statistics(self) -> AdaptiveRuleSystemStats:
        summary = self.tracker.get_analysis_summary()
        rules = self._generated_rules
        return AdaptiveRuleSystemStats(
            total_patterns_tracked=summary.total_patterns,
            patterns_eligible_for_rules=len(self.tracker.get_patterns_for_rule_generation()),
            total_rules_generated=len(rules),
            active_rules=len(self._active_rule_ids),
            average_rule_quality=sum(r.quality_score for r in rules) / len(rules) if rules else 0.0,
            last_analysis=self._history[-1].timestamp if self._history else None,
        )

    def build_analysis_report(self) -> dict[str, Any]:
        return {
            "system_stats": self.get_statistics().to_dict(),
            "generated_rules": [r.summary() for r in self._generated_rules],
            "analysis_history": [c.to_dict() for c in self._history],
        }

    def export_analysis_report(self, file_path: str | Path) -> Path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.build_analysis_report(), indent=2), encoding="utf-8")
        return path

    def reset(self) -> None:
        """Discard all tracked patterns, rules and history."""
        self._initialize()

    def update_configuration(self, settings: LintLearnSettings) -> None:
        """Apply new settings to the running tracker and generator, keeping their data."""
        self.settings = settings
        self.tracker.reconfigure(settings.pattern_tracking)
        self.generator.config = settings.rule_generation


def create_adaptive_rule_system(
    config_path: Path | None = None,
    search_dir: Path | None = None,
    ai: AICapability | None = None,
    providers: Mapping[str, AICapability] | None = None,
    trainer: PatternTrainer | None = None,
    registry: RuleRegistry | None = None,
) -> AdaptiveRuleSystem:
    """Build a system from workspace settings.

    When *providers* is given they are wrapped in an :class:`AIRouter`, which
    honours the configured ``ai_provider`` preference; otherwise *ai* is used.
    """
    settings = load_settings(config_path=config_path, search_dir=search_dir)
    if providers:
        ai = AIRouter(providers)
    return AdaptiveRuleSystem(settings=settings, ai=ai, trainer=trainer, registry=registry)
