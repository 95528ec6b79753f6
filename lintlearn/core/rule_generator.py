"""AI-assisted synthesis of lint rules from pattern clusters.

The generator asks the AI capability for a rule implementation, tests and
documentation. When the provider fails it renders the matching template
instead, so generation always reaches the quality gate; whether the result
is kept depends only on its score.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from lintlearn.ai.capability import AICapability, AIContext, AIContextKind, AIRequest, UnavailableAICapability
from lintlearn.ai.training import PatternTrainer
from lintlearn.config.settings import RuleGenerationConfig
from lintlearn.core.errors import ConfigError, LintLearnError, ProcessingError, ValidationError
from lintlearn.core.pattern_tracker import PatternCluster
from lintlearn.core.quality_scoring import QualityScorer
from lintlearn.rules.base_rule import LintSeverity, RuleCategory, RuleSeverity
from lintlearn.templates.library import RuleGenerationTemplate, RuleTemplateLibrary, TemplateKind, extract_theme

__all__ = [
    "ExpectedViolation",
    "GeneratedTestCase",
    "RuleGenerationMetadata",
    "GeneratedRule",
    "ParsedRuleResponse",
    "CustomRuleGenerator",
    "parse_ai_response",
    "build_rule_prompt",
    "build_test_cases",
    "FALLBACK_PROVIDER",
]

logger = logging.getLogger(__name__)

FALLBACK_PROVIDER = "template-fallback"
PROMPT_PREFIX = "Custom Rule Generation"
DEFAULT_INSTRUCTION = (
    "Generate a complete custom lint rule implementation based on the detected pattern. "
    "Write a TypeScript visitor against @lintlearn/rule-api using @oxc-project/types AST nodes, "
    "comprehensive test cases, and clear Markdown documentation."
)

_SECTION_MARKERS: dict[str, str] = {
    "IMPLEMENTATION:": "implementation",
    "TEST_CASES:": "tests",
    "DOCUMENTATION:": "documentation",
}

_CATEGORY_BY_THEME: dict[TemplateKind, RuleCategory] = {
    TemplateKind.UNUSED_CODE: RuleCategory.CORRECTNESS,
    TemplateKind.TYPE_SAFETY: RuleCategory.SUSPICIOUS,
    TemplateKind.ASYNC_PATTERNS: RuleCategory.PERFORMANCE,
}

_GOOD_EXAMPLES: dict[TemplateKind, str] = {
    TemplateKind.UNUSED_CODE: (
        "// GOOD PATTERN (follow this):\n// Variables are properly used\n"
        "const userData = fetchUserData();\nconsole.log('Processing:', userData);\nreturn processData(userData);"
    ),
    TemplateKind.TYPE_SAFETY: (
        "// GOOD PATTERN (follow this):\n// Proper TypeScript typing\n"
        "interface User {\n  id: number;\n  name: string;\n}\nconst user: User = { id: 1, name: 'John' };"
    ),
    TemplateKind.ASYNC_PATTERNS: (
        "// GOOD PATTERN (follow this):\n// Proper async/await usage\n"
        "try {\n  const result = await processAsync();\n  return result;\n} catch (error) {\n  handleError(error);\n}"
    ),
}

_GENERIC_GOOD_EXAMPLE = (
    "// GOOD PATTERN (follow this):\n// Clean, readable code\n"
    "const result = performOperation();\nif (result.success) {\n  handleSuccess(result.data);\n}"
)


@dataclass(frozen=True)
class ExpectedViolation:
    line: int
    column: int
    message_pattern: str
    severity: LintSeverity


@dataclass(frozen=True)
class GeneratedTestCase:
    name: str
    input_code: str
    expected_violations: tuple[ExpectedViolation, ...]
    description: str


@dataclass(frozen=True)
class RuleGenerationMetadata:
    generated_at: datetime
    ai_provider_used: str
    template_used: str
    source_frequency: int
    source_confidence: float
    generation_time_ms: int
    used_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "ai_provider_used": self.ai_provider_used,
            "template_used": self.template_used,
            "source_frequency": self.source_frequency,
            "source_confidence": self.source_confidence,
            "generation_time_ms": self.generation_time_ms,
            "used_fallback": self.used_fallback,
        }


@dataclass(frozen=True)
class GeneratedRule:
    rule_id: str
    rule_name: str
    description: str
    category: RuleCategory
    severity: RuleSeverity
    implementation_code: str
    test_cases: tuple[GeneratedTestCase, ...]
    documentation: str
    source_cluster: str
    quality_score: float
    generation_metadata: RuleGenerationMetadata
    test_code: str = ""

    @property
    def file_stem(self) -> str:
        return self.rule_id.replace("-", "_")

    def summary(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "description": self.description,
            "category": self.category.value,
            "severity": self.severity.value,
            "quality_score": self.quality_score,
            "source_cluster": self.source_cluster,
            "generation_metadata": self.generation_metadata.to_dict(),
        }


@dataclass(frozen=True)
class ParsedRuleResponse:
    implementation: str = ""
    tests: str = ""
    documentation: str = ""


def parse_ai_response(response: str) -> ParsedRuleResponse:
    """Split a response into its three sections; absent sections stay empty."""
    sections: dict[str, list[str]] = {name: [] for name in _SECTION_MARKERS.values()}
    current: str | None = None
    for line in response.splitlines():
        stripped = line.strip()
        marker = next((m for m in _SECTION_MARKERS if stripped.startswith(m)), None)
        if marker is not None:
            current = _SECTION_MARKERS[marker]
            rest = stripped[len(marker):].strip()
            if rest:
                sections[current].append(rest)
            continue
        if current is not None:
            sections[current].append(line)
    return ParsedRuleResponse(**{name: "".join(f"{l}\n" for l in lines) for name, lines in sections.items()})


def _class_name(rule_name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"[^A-Za-z0-9]+", rule_name) if part)


def _rule_id(cluster: PatternCluster) -> str:
    suffix = cluster.cluster_id.removeprefix("cluster-")[:8]
    return f"{cluster.suggested_rule_name}-{suffix}"


def _severity_label(severity: LintSeverity) -> str:
    return severity.to_rule_severity().value.capitalize()


def _template_values(cluster: PatternCluster) -> dict[str, str]:
    rule_id = _rule_id(cluster)
    primary = cluster.primary_pattern
    return {
        "rule_id": rule_id,
        "rule_name": cluster.suggested_rule_name,
        "class_name": _class_name(cluster.suggested_rule_name),
        "file_stem": rule_id.replace("-", "_"),
        "description": cluster.suggested_rule_description,
        "message_pattern": primary.message_pattern,
        "severity": primary.severity.to_rule_severity().value,
        "theme": extract_theme(primary.message_pattern).value,
    }


def build_rule_prompt(
    cluster: PatternCluster,
    template: RuleGenerationTemplate,
    instruction: str | None = None,
) -> str:
    primary = cluster.primary_pattern
    theme = extract_theme(primary.message_pattern)
    description = (
        f"Detects {theme.value} patterns with message pattern '{primary.message_pattern}' "
        f"occurring {cluster.total_frequency} times across {cluster.files_affected} files"
    )
    samples = "\n".join(sig.message_pattern for sig in cluster.members[:3])
    reference = template.render(_template_values(cluster)).implementation
    return "\n".join([
        PROMPT_PREFIX,
        instruction or DEFAULT_INSTRUCTION,
        "",
        f"Pattern description: {description}",
        f"Severity: {_severity_label(primary.severity)}",
        f"File types: {primary.file_type}",
        "Sample messages:",
        samples,
        "",
        f"Reference template ({template.template_id}):",
        reference,
        "Respond with three sections introduced by the lines IMPLEMENTATION:, TEST_CASES: and DOCUMENTATION:.",
    ])


def build_test_cases(cluster: PatternCluster) -> list[GeneratedTestCase]:
    primary = cluster.primary_pattern
    return [
        GeneratedTestCase(
            name="detects_violation",
            input_code="const unused = 42; console.log('hello');",
            expected_violations=(
                ExpectedViolation(line=1, column=7, message_pattern=primary.message_pattern, severity=primary.severity),
            ),
            description="Should detect the pattern violation",
        ),
        GeneratedTestCase(
            name="no_violation_when_used",
            input_code="const used = 42; console.log(used);",
            expected_violations=(),
            description="Should not trigger when code is correct",
        ),
    ]


class CustomRuleGenerator:
    """Turns eligible clusters into quality-gated :class:`GeneratedRule` objects."""

    def __init__(
        self,
        config: RuleGenerationConfig | None = None,
        ai: AICapability | None = None,
        templates: RuleTemplateLibrary | None = None,
        trainer: PatternTrainer | None = None,
        scorer: QualityScorer | None = None,
    ) -> None:
        self.config = config or RuleGenerationConfig()
        self.ai: AICapability = ai or UnavailableAICapability()
        self.templates = templates or RuleTemplateLibrary()
        self.trainer = trainer
        self.scorer = scorer or QualityScorer()
        self._rules: list[GeneratedRule] = []
        self._rules_per_cluster: Counter[str] = Counter()

    @property
    def generated_rules(self) -> tuple[GeneratedRule, ...]:
        return tuple(self._rules)

    def _preferred_providers(self) -> tuple[str, ...]:
        provider = self.config.ai_provider.strip()
        if provider and provider != "auto":
            return (provider,)
        return ()

    def build_fallback_response(self, cluster: PatternCluster, template: RuleGenerationTemplate) -> str:
        return template.render(_template_values(cluster)).as_response()

    async def _request_rule_text(
        self,
        prompt: str,
        cluster: PatternCluster,
        template: RuleGenerationTemplate,
    ) -> tuple[str, str, bool]:
        request = AIRequest(
            prompt=prompt,
            session_id=f"rulegen-{uuid.uuid4()}",
            context=AIContext(
                kind=AIContextKind.CODE_GENERATION,
                language="typescript",
                specification="Custom lint rule generation",
            ),
            preferred_providers=self._preferred_providers(),
            file_path=f"{_rule_id(cluster).replace('-', '_')}.ts",
        )
        try:
            response = await self.ai.execute(request)
        except Exception as exc:
            logger.warning(
                "AI rule generation failed for %s: %s. Falling back to template output.",
                cluster.cluster_id, exc,
            )
            return self.build_fallback_response(cluster, template), FALLBACK_PROVIDER, True
        return response.content, response.provider_used, False

    async def generate_rule_from_cluster(self, cluster: PatternCluster) -> GeneratedRule:
        started = time.perf_counter()

        if cluster.size < self.config.min_cluster_size_for_rules:
            raise ValidationError(
                "min_cluster_size_for_rules",
                f">= {self.config.min_cluster_size_for_rules}",
                str(cluster.size),
            )
        produced = self._rules_per_cluster[cluster.cluster_id]
        if produced >= self.config.max_rules_per_cluster:
            raise ValidationError(
                "max_rules_per_cluster",
                f"< {self.config.max_rules_per_cluster}",
                str(produced),
            )

        template = self.templates.select_template(cluster)
        prompt = build_rule_prompt(cluster, template, self.config.custom_instruction)
        content, provider, used_fallback = await self._request_rule_text(prompt, cluster, template)

        parsed = parse_ai_response(content)
        test_cases = build_test_cases(cluster)
        report = self.scorer.score(parsed.implementation, test_cases, cluster.cohesion_score)
        quality_score = report.score
        threshold = self.config.quality_threshold

        if not report.passes(threshold):
            logger.info(
                "Rejected rule for %s: quality %.4f < %.4f (missing markers: %s)",
                cluster.cluster_id, quality_score, threshold, ", ".join(report.missing_markers) or "none",
            )
            raise ConfigError(
                f"Generated rule quality score below threshold {threshold}",
                field="quality_threshold",
                value=f"{quality_score:.4f}",
            )

        primary = cluster.primary_pattern
        theme = extract_theme(primary.message_pattern)
        rule = GeneratedRule(
            rule_id=_rule_id(cluster),
            rule_name=cluster.suggested_rule_name,
            description=cluster.suggested_rule_description,
            category=_CATEGORY_BY_THEME.get(theme, RuleCategory.STYLE),
            severity=primary.severity.to_rule_severity(),
            implementation_code=parsed.implementation,
            test_cases=tuple(test_cases),
            test_code=parsed.tests,
            documentation=parsed.documentation,
            source_cluster=cluster.cluster_id,
            quality_score=quality_score,
            generation_metadata=RuleGenerationMetadata(
                generated_at=datetime.now(timezone.utc),
                ai_provider_used=provider,
                template_used=template.template_id,
                source_frequency=cluster.total_frequency,
                source_confidence=cluster.cohesion_score,
                generation_time_ms=int((time.perf_counter() - started) * 1000),
                used_fallback=used_fallback,
            ),
        )
        self._rules.append(rule)
        self._rules_per_cluster[cluster.cluster_id] += 1
        logger.info("Generated rule %s (quality %.4f, template %s)", rule.rule_id, quality_score, template.template_id)
        return rule

    async def generate_rules_for_clusters(self, clusters: Iterable[PatternCluster]) -> list[GeneratedRule]:
        """Generate a rule per cluster, then run the training side channel if enabled.

        Per-cluster failures are logged and skipped. Training failures raise
        :class:`ProcessingError` and discard the whole batch result.
        """
        clusters = list(clusters)
        rules: list[GeneratedRule] = []
        for cluster in clusters:
            try:
                rules.append(await self.generate_rule_from_cluster(cluster))
            except LintLearnError as exc:
                logger.warning("Failed to generate rule for cluster %s: %s", cluster.cluster_id, exc)
        if self.config.starcoder.enabled:
            await self.train_on_patterns(clusters)
        return rules

    def build_training_examples(self, clusters: Iterable[PatternCluster]) -> list[str]:
        settings = self.config.starcoder
        examples: list[str] = []
        for cluster in clusters:
            if cluster.total_frequency < settings.training_threshold:
                continue
            if settings.train_on_bad_patterns:
                examples.append(_bad_pattern_example(cluster))
            if settings.train_on_good_code:
                examples.append(_good_pattern_example(cluster))
        return examples[:settings.max_training_examples]

    async def train_on_patterns(self, clusters: Iterable[PatternCluster]) -> int:
        """Forward exemplars to the trainer once enough clusters qualify.

        Training runs only when at least ``training_threshold`` clusters each
        reached ``training_threshold`` occurrences.
        """
        clusters = list(clusters)
        threshold = self.config.starcoder.training_threshold
        qualifying = sum(1 for c in clusters if c.total_frequency >= threshold)
        examples = self.build_training_examples(clusters)
        if not examples or qualifying < threshold:
            logger.info(
                "Not enough patterns for training: %d cluster(s) with %d+ occurrences, need %d",
                qualifying, threshold, threshold,
            )
            return 0
        if self.trainer is None:
            logger.warning("Pattern training is enabled but no trainer is configured; %d exemplar(s) dropped", len(examples))
            return 0
        try:
            await self.trainer.add_training_examples(examples)
        except Exception as exc:
            raise ProcessingError(f"Failed to add training examples: {exc}") from exc
        try:
            await self.trainer.train_on_patterns()
        except Exception as exc:
            raise ProcessingError(f"Failed to trigger pattern training: {exc}") from exc
        logger.info("Trained on %d pattern exemplar(s)", len(examples))
        return len(examples)

    def export_rule_to_file(self, rule: GeneratedRule, output_dir: str | Path) -> Path:
        directory = Path(output_dir)
        directory.mkdir(parents=True, exist_ok=True)
        rule_path = directory / f"{rule.file_stem}.ts"
        header = (
            f"/**\n * {rule.rule_name}\n *\n * {rule.description}\n *\n"
            f" * Generated automatically from pattern analysis\n"
            f" * Source cluster: {rule.source_cluster}\n"
            f" * Quality score: {rule.quality_score:.2f}\n */\n\n"
        )
        rule_path.write_text(header + rule.implementation_code, encoding="utf-8")
        if rule.test_code.strip():
            (directory / f"{rule.file_stem}.test.ts").write_text(rule.test_code, encoding="utf-8")
        if rule.documentation.strip():
            (directory / f"{rule.file_stem}.md").write_text(rule.documentation, encoding="utf-8")
        logger.debug("Exported rule %s to %s", rule.rule_id, rule_path)
        return rule_path

    def get_generation_statistics(self) -> dict[str, Any]:
        total = len(self._rules)
        return {
            "total_rules_generated": total,
            "average_quality_score": sum(r.quality_score for r in self._rules) / total if total else 0.0,
            "rules_by_category": dict(Counter(r.category.value for r in self._rules)),
            "fallback_rules": sum(1 for r in self._rules if r.generation_metadata.used_fallback),
        }


def _bad_pattern_example(cluster: PatternCluster) -> str:
    samples = "\n".join(f"// x {sig.message_pattern}" for sig in cluster.members[:3])
    return (
        "// BAD PATTERN (avoid this):\n"
        f"// Pattern: {cluster.primary_pattern.message_pattern}\n"
        f"// Frequency: {cluster.total_frequency} violations\n"
        f"// Files affected: {cluster.files_affected}\n"
        "// Examples of what NOT to do:\n"
        f"{samples}"
    )


def _good_pattern_example(cluster: PatternCluster) -> str:
    theme = extract_theme(cluster.primary_pattern.message_pattern)
    return (
        f"{_GOOD_EXAMPLES.get(theme, _GENERIC_GOOD_EXAMPLE)}\n"
        f"// This pattern avoids: {cluster.primary_pattern.message_pattern}\n"
        f"// Frequency prevented: {cluster.total_frequency} potential violations"
    )
