"""Pydantic-based configuration model and YAML loader for lintlearn."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


__all__ = [
    "PatternTrackingConfig",
    "StarcoderConfig",
    "RuleGenerationConfig",
    "LintLearnSettings",
    "load_settings",
]

_CONFIG_FILE_NAMES: list[str] = [
    "lintlearn.yaml",
    "lintlearn.yml",
    ".lintlearn.yaml",
    ".lintlearn.yml",
]


class PatternTrackingConfig(BaseModel):
    """How diagnostics are fingerprinted, aged out and clustered."""

    min_frequency: int = Field(
        default=5,
        ge=1,
        description="Occurrences needed before a signature counts as a recurring pattern.",
    )
    min_files: int = Field(
        default=3,
        ge=1,
        description="Files a pattern must span to be considered widespread.",
    )
    max_age_days: int = Field(
        default=90,
        ge=0,
        description="Signatures not seen for this many days are dropped.",
    )
    similarity_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Minimum similarity for two signatures to share a cluster.",
    )
    min_confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Confidence score a pattern needs before it is offered for rule generation.",
    )


class StarcoderConfig(BaseModel):
    """Optional training side channel towards a local code model."""

    enabled: bool = Field(
        default=False,
        description="Forward pattern exemplars to the configured trainer.",
    )
    training_threshold: int = Field(
        default=10,
        ge=1,
        description="Cluster frequency needed before its exemplars are used for training.",
    )
    train_on_good_code: bool = Field(
        default=True,
        description="Also emit a corrected 'good pattern' exemplar per cluster.",
    )
    train_on_bad_patterns: bool = Field(
        default=True,
        description="Emit the violating 'bad pattern' exemplar per cluster.",
    )
    max_training_examples: int = Field(
        default=1000,
        ge=0,
        description="Cap on exemplars sent in one training batch.",
    )


class RuleGenerationConfig(BaseModel):
    """Rule synthesis and quality gating."""

    ai_provider: str = Field(
        default="auto",
        description="Preferred AI provider name, or 'auto' to let the router decide.",
    )
    quality_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Minimum quality score for a generated rule to be kept.",
    )
    min_cluster_size_for_rules: int = Field(
        default=1,
        ge=1,
        description="Signatures a cluster must hold before a rule is generated from it.",
    )
    max_rules_per_cluster: int = Field(
        default=3,
        ge=1,
        description="Rules that may be generated from the same cluster over the system lifetime.",
    )
    custom_instruction: str | None = Field(
        default=None,
        description="Replaces the default instruction line of the generation prompt.",
    )
    starcoder: StarcoderConfig = Field(
        default_factory=StarcoderConfig,
        description="Training side channel configuration.",
    )


class LintLearnSettings(BaseModel):
    """Top-level lintlearn configuration."""

    min_pattern_frequency_for_rules: int = Field(
        default=10,
        ge=1,
        description="Total cluster frequency needed before a rule is generated.",
    )
    max_rules_per_cycle: int = Field(
        default=5,
        ge=0,
        description="Upper bound on rules generated by one analysis cycle.",
    )
    auto_apply_generated_rules: bool = Field(
        default=False,
        description="Register generated rules with the rule registry immediately.",
    )
    output_directory: str = Field(
        default="generated_rules",
        description="Directory generated rules are exported to; empty disables export.",
    )
    pattern_tracking: PatternTrackingConfig = Field(
        default_factory=PatternTrackingConfig,
        description="Pattern tracking configuration.",
    )
    rule_generation: RuleGenerationConfig = Field(
        default_factory=RuleGenerationConfig,
        description="Rule generation configuration.",
    )


def _find_config_file(search_dir: Path) -> Path | None:
    """Walk up from *search_dir* looking for a config file."""
    current = search_dir.resolve()
    while True:
        for name in _CONFIG_FILE_NAMES:
            candidate = current / name
            if candidate.is_file():
                return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def load_settings(
    config_path: Path | None = None,
    search_dir: Path | None = None,
) -> LintLearnSettings:
    """Load settings from a YAML file, falling back to defaults."""
    raw: dict[str, Any] = {}

    if config_path is not None:
        resolved = Path(config_path).resolve()
        if resolved.is_file():
            raw = yaml.safe_load(resolved.read_text(encoding="utf-8")) or {}
    else:
        found = _find_config_file(search_dir or Path.cwd())
        if found is not None:
            raw = yaml.safe_load(found.read_text(encoding="utf-8")) or {}

    return LintLearnSettings(**raw)
