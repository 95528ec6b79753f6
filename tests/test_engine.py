"""Tests for the adaptive rule system orchestration engine."""
from __future__ import annotations
import asyncio
import json
from datetime import datetime, timedelta, timezone
import pytest
from lintlearn.ai.capability import AIRequest, AIResponse, AIRouter
from lintlearn.config.settings import LintLearnSettings, PatternTrackingConfig
from lintlearn.core.engine import AdaptiveRuleSystem, create_adaptive_rule_system
from lintlearn.core.errors import ProcessingError
from tests.conftest import GOOD_RULE_RESPONSE, STUB_RULE_RESPONSE, FailingAI, FakeAI, RecordingRegistry, make_issue

UNUSED_MESSAGES = [
    "Variable 'a' is unused",
    "Import 'b' is unused",
    "Parameter 'c' is unused",
    "Class 'D' is unused",
    "Function 'e' is unused",
]


def _feed(system: AdaptiveRuleSystem, message: str, files: int = 10) -> None:
    for i in range(files):
        system.process_lint_issues([make_issue(message)], f"test{i}.ts")


class SelectiveAI:
    """Answers with a complete rule except for import patterns."""

    async def execute(self, request: AIRequest) -> AIResponse:
        content = STUB_RULE_RESPONSE if "Import '<VAR>'" in request.prompt else GOOD_RULE_RESPONSE
        return AIResponse(content=content, provider_used="selective")


class TestAnalysisCycle:
    @pytest.mark.asyncio
    async def test_frequent_pattern_generates_rule(self, settings) -> None:
        system = AdaptiveRuleSystem(settings=settings)
        for i in range(10):
            system.process_lint_issues([make_issue(f"Variable 'var{i}' is unused")], f"test{i}.ts")
        cycle = await system.run_analysis_cycle()
        assert cycle.clusters_formed == 1 and cycle.rules_generated == 1
        (rule,) = system.generated_rules
        assert rule.generation_metadata.template_used == "unused-code" and rule.quality_score >= 0.85

    @pytest.mark.asyncio
    async def test_infrequent_pattern_ignored(self, settings) -> None:
        system = AdaptiveRuleSystem(settings=settings)
        _feed(system, "Variable 'x' is unused", files=3)
        assert (await system.run_analysis_cycle()).rules_generated == 0

    @pytest.mark.asyncio
    async def test_rejected_fallback_leaves_no_rule(self, settings) -> None:
        system = AdaptiveRuleSystem(settings=settings)
        _feed(system, "Unexpected any value in 'payload'")
        cycle = await system.run_analysis_cycle()
        assert cycle.rules_generated == 0 and system.generated_rules == () and len(system.analysis_history) == 1

    @pytest.mark.asyncio
    async def test_cycle_cap(self) -> None:
        system = AdaptiveRuleSystem(settings=LintLearnSettings(output_directory="", max_rules_per_cycle=2), ai=FakeAI())
        for message in UNUSED_MESSAGES:
            _feed(system, message)
        cycle = await system.run_analysis_cycle()
        assert cycle.clusters_formed == 5 and cycle.rules_generated == 2

    @pytest.mark.asyncio
    async def test_cluster_failure_does_not_abort_cycle(self, settings) -> None:
        system = AdaptiveRuleSystem(settings=settings, ai=SelectiveAI())
        _feed(system, UNUSED_MESSAGES[0])
        _feed(system, UNUSED_MESSAGES[1])
        assert (await system.run_analysis_cycle()).rules_generated == 1

    @pytest.mark.asyncio
    async def test_clustering_failure_is_fatal(self, settings) -> None:
        system = AdaptiveRuleSystem(settings=settings, similarity=lambda a, b: -1.0)
        _feed(system, UNUSED_MESSAGES[0])
        _feed(system, UNUSED_MESSAGES[1])
        with pytest.raises(ProcessingError):
            await system.run_analysis_cycle()
        assert system.analysis_history == ()

    @pytest.mark.asyncio
    async def test_cleanup_runs_each_cycle(self) -> None:
        settings = LintLearnSettings(output_directory="", pattern_tracking=PatternTrackingConfig(max_age_days=30))
        system = AdaptiveRuleSystem(settings=settings)
        _feed(system, "Prefer const over let", files=1)
        (freq,) = system.tracker.frequencies.values()
        freq.last_seen = datetime.now(timezone.utc) - timedelta(days=31)
        cycle = await system.run_analysis_cycle()
        assert cycle.cleaned_patterns == 1 and cycle.patterns_analyzed == 0

    @pytest.mark.asyncio
    async def test_cycles_serialized(self, settings, fake_ai) -> None:
        system = AdaptiveRuleSystem(settings=settings, ai=fake_ai)
        _feed(system, UNUSED_MESSAGES[0])
        first, second = await asyncio.gather(system.run_analysis_cycle(), system.run_analysis_cycle())
        assert first.cycle_id != second.cycle_id and len(system.analysis_history) == 2


class TestRuleAcceptance:
    @pytest.mark.asyncio
    async def test_export_to_output_directory(self, fake_ai, tmp_path) -> None:
        system = AdaptiveRuleSystem(settings=LintLearnSettings(output_directory=str(tmp_path / "rules")), ai=fake_ai)
        _feed(system, UNUSED_MESSAGES[0])
        await system.run_analysis_cycle()
        assert (tmp_path / "rules" / f"{system.generated_rules[0].file_stem}.ts").is_file()

    @pytest.mark.asyncio
    async def test_export_failure_keeps_rule(self, fake_ai, tmp_path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        system = AdaptiveRuleSystem(settings=LintLearnSettings(output_directory=str(blocker)), ai=fake_ai)
        _feed(system, UNUSED_MESSAGES[0])
        assert (await system.run_analysis_cycle()).rules_generated == 1

    @pytest.mark.asyncio
    async def test_auto_apply_registers_rule(self, fake_ai) -> None:
        registry = RecordingRegistry()
        settings = LintLearnSettings(output_directory="", auto_apply_generated_rules=True)
        system = AdaptiveRuleSystem(settings=settings, ai=fake_ai, registry=registry)
        _feed(system, UNUSED_MESSAGES[0])
        await system.run_analysis_cycle()
        assert registry.rules == list(system.generated_rules) and system.get_statistics().active_rules == 1

    @pytest.mark.asyncio
    async def test_rules_inactive_by_default(self, settings, fake_ai) -> None:
        registry = RecordingRegistry()
        system = AdaptiveRuleSystem(settings=settings, ai=fake_ai, registry=registry)
        _feed(system, UNUSED_MESSAGES[0])
        await system.run_analysis_cycle()
        assert registry.rules == [] and system.get_statistics().active_rules == 0


class TestStatisticsAndReport:
    def test_empty_statistics(self, settings) -> None:
        s = AdaptiveRuleSystem(settings=settings).get_statistics()
        assert s.total_patterns_tracked == 0 and s.average_rule_quality == 0.0 and s.last_analysis is None

    @pytest.mark.asyncio
    async def test_statistics_after_cycle(self, settings, fake_ai) -> None:
        system = AdaptiveRuleSystem(settings=settings, ai=fake_ai)
        _feed(system, UNUSED_MESSAGES[0])
        cycle = await system.run_analysis_cycle()
        s = system.get_statistics()
        assert s.total_patterns_tracked == 1 and s.patterns_eligible_for_rules == 1
        assert s.total_rules_generated == 1 and s.average_rule_quality == 1.0 and s.last_analysis == cycle.timestamp

    @pytest.mark.asyncio
    async def test_export_report(self, settings, fake_ai, tmp_path) -> None:
        system = AdaptiveRuleSystem(settings=settings, ai=fake_ai)
        _feed(system, UNUSED_MESSAGES[0])
        await system.run_analysis_cycle()
        data = json.loads(system.export_analysis_report(tmp_path / "reports" / "analysis.json").read_text())
        assert set(data) == {"system_stats", "generated_rules", "analysis_history"}
        assert data["generated_rules"][0]["rule_id"] == system.generated_rules[0].rule_id
        assert data["system_stats"]["total_rules_generated"] == 1 and len(data["analysis_history"]) == 1


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_reset(self, settings, fake_ai) -> None:
        system = AdaptiveRuleSystem(settings=settings, ai=fake_ai)
        _feed(system, UNUSED_MESSAGES[0])
        await system.run_analysis_cycle()
        system.reset()
        assert system.generated_rules == () and system.analysis_history == ()
        assert len(system.tracker.frequencies) == 0 and system.generator.ai is fake_ai

    @pytest.mark.asyncio
    async def test_update_configuration_keeps_data(self, settings, fake_ai) -> None:
        system = AdaptiveRuleSystem(settings=settings, ai=fake_ai)
        _feed(system, UNUSED_MESSAGES[0])
        updated = LintLearnSettings(output_directory="", max_rules_per_cycle=0,
                                    pattern_tracking=PatternTrackingConfig(min_frequency=20))
        system.update_configuration(updated)
        assert system.tracker.config.min_frequency == 20 and len(system.tracker.frequencies) == 1
        assert (await system.run_analysis_cycle()).rules_generated == 0

    def test_create_from_yaml(self, tmp_path) -> None:
        (tmp_path / "lintlearn.yaml").write_text("max_rules_per_cycle: 2\noutput_directory: ''\n")
        system = create_adaptive_rule_system(search_dir=tmp_path)
        assert system.settings.max_rules_per_cycle == 2 and system.settings.output_directory == ""

    @pytest.mark.asyncio
    async def test_create_with_providers_routes_requests(self, tmp_path) -> None:
        (tmp_path / "lintlearn.yaml").write_text("output_directory: ''\nrule_generation:\n  ai_provider: local\n")
        providers = {"remote": FailingAI(), "local": FakeAI(provider="local")}
        system = create_adaptive_rule_system(search_dir=tmp_path, providers=providers)
        _feed(system, UNUSED_MESSAGES[0])
        await system.run_analysis_cycle()
        assert isinstance(system.generator.ai, AIRouter) and providers["remote"].calls == 0
        assert system.generated_rules[0].generation_metadata.ai_provider_used == "local"
