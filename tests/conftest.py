"""Shared pytest fixtures for the lintlearn test suite."""

from __future__ import annotations

import textwrap
from datetime import datetime, timedelta, timezone

import pytest

from lintlearn.ai.capability import AIRequest, AIResponse
from lintlearn.config.settings import LintLearnSettings
from lintlearn.core.errors import AIExecutionError
from lintlearn.core.pattern_tracker import PatternCluster, PatternSignature
from lintlearn.rules.base_rule import LintIssue, LintSeverity

GOOD_RULE_RESPONSE = textwrap.dedent("""\
    IMPLEMENTATION:
    import type { LintIssue, RuleContext } from "@lintlearn/rule-api";
    import { Visitor } from "@lintlearn/rule-api";
    import type { VariableDeclarator } from "@oxc-project/types";

    export class NoUnusedVariables implements Visitor {
      constructor(private readonly context: RuleContext) {}
      visitVariableDeclarator(node: VariableDeclarator): void {}
      finish(): LintIssue[] { return []; }
    }

    TEST_CASES:
    it("detects unused", () => {});

    DOCUMENTATION:
    # lintlearn-unused-code

    Detects variables that are declared but never used.
""")

STUB_RULE_RESPONSE = textwrap.dedent("""\
    IMPLEMENTATION:
    // rule body goes here

    TEST_CASES:
    // tests

    DOCUMENTATION:
    # Stub
""")


class FakeAI:
    def __init__(self, content: str = GOOD_RULE_RESPONSE, provider: str = "fake") -> None:
        self.content = content
        self.provider = provider
        self.requests: list[AIRequest] = []

    async def execute(self, request: AIRequest) -> AIResponse:
        self.requests.append(request)
        return AIResponse(content=self.content, provider_used=self.provider)


class FailingAI:
    def __init__(self) -> None:
        self.calls = 0

    async def execute(self, request: AIRequest) -> AIResponse:
        self.calls += 1
        raise AIExecutionError("fake", "provider offline")


class RecordingTrainer:
    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.examples: list[str] = []
        self.training_runs = 0

    async def add_training_examples(self, examples: list[str]) -> None:
        if self.fail_on == "add":
            raise RuntimeError("trainer queue full")
        self.examples.extend(examples)

    async def train_on_patterns(self) -> None:
        if self.fail_on == "train":
            raise RuntimeError("model busy")
        self.training_runs += 1


class RecordingRegistry:
    def __init__(self) -> None:
        self.rules: list = []

    def register(self, rule) -> None:
        self.rules.append(rule)


class FrozenClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int) -> None:
        self.now += timedelta(days=days)


def make_issue(message: str, severity: LintSeverity = LintSeverity.WARNING, rule_name: str = "test-rule") -> LintIssue:
    return LintIssue(rule_name=rule_name, message=message, line=1, column=1, severity=severity)


def make_signature(
    message_pattern: str = "Variable '<VAR>' is unused",
    severity: LintSeverity = LintSeverity.WARNING,
    file_type: str = "ts",
    node_type: str | None = "Variable",
) -> PatternSignature:
    return PatternSignature(
        message_pattern=message_pattern, severity=severity,
        file_type=file_type, node_type=node_type, context_hash=123,
    )


def make_cluster(
    cluster_id: str = "cluster-0123456789abcdef",
    primary: PatternSignature | None = None,
    related: tuple[PatternSignature, ...] = (),
    total_frequency: int = 10,
    cohesion_score: float = 1.0,
    generation_priority: int = 9,
    suggested_rule_name: str = "lintlearn-unused-code",
) -> PatternCluster:
    return PatternCluster(
        cluster_id=cluster_id,
        primary_pattern=primary or make_signature(),
        related_patterns=related,
        total_frequency=total_frequency,
        cohesion_score=cohesion_score,
        suggested_rule_name=suggested_rule_name,
        suggested_rule_description="Detects unused variables",
        generation_priority=generation_priority,
        files_affected=total_frequency,
    )


@pytest.fixture
def settings() -> LintLearnSettings:
    return LintLearnSettings(output_directory="")


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def fake_ai() -> FakeAI:
    return FakeAI()


@pytest.fixture
def failing_ai() -> FailingAI:
    return FailingAI()


@pytest.fixture
def unused_cluster() -> PatternCluster:
    return make_cluster()


@pytest.fixture
def type_safety_cluster() -> PatternCluster:
    return make_cluster(
        cluster_id="cluster-fedcba9876543210",
        primary=make_signature("Unexpected any value in '<VAR>'", node_type=None),
        suggested_rule_name="lintlearn-type-safety",
    )
