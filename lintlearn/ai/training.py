"""Boundary to the local-model training side channel."""

from __future__ import annotations

from typing import Protocol

__all__ = ["PatternTrainer"]


class PatternTrainer(Protocol):
    async def add_training_examples(self, examples: list[str]) -> None:
        """Queue exemplar text blocks for the next training run."""
        ...

    async def train_on_patterns(self) -> None:
        """Run incremental training on the queued exemplars."""
        ...
