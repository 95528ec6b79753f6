"""Boundary to the external AI text-generation service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Protocol

from lintlearn.core.errors import AIExecutionError

__all__ = [
    "AIContextKind",
    "AIContext",
    "AIRequest",
    "AIResponse",
    "AICapability",
    "AIRouter",
    "UnavailableAICapability",
]

logger = logging.getLogger(__name__)


class AIContextKind(str, Enum):
    CODE_GENERATION = "code_generation"


@dataclass(frozen=True)
class AIContext:
    kind: AIContextKind
    language: str
    specification: str


@dataclass(frozen=True)
class AIRequest:
    prompt: str
    session_id: str
    context: AIContext
    preferred_providers: tuple[str, ...] = ()
    file_path: str | None = None


@dataclass(frozen=True)
class AIResponse:
    content: str
    provider_used: str


class AICapability(Protocol):
    """Anything that turns a prompt into text, or raises."""

    async def execute(self, request: AIRequest) -> AIResponse:
        ...


class UnavailableAICapability:
    """Stand-in used when no provider is configured; every call fails."""

    name = "unavailable"

    async def execute(self, request: AIRequest) -> AIResponse:
        raise AIExecutionError(self.name, "no AI provider configured")


class AIRouter:
    """Tries providers in preference order and returns the first answer.

    Providers named in ``request.preferred_providers`` go first, in the order
    given; the remaining registered providers follow in registration order.
    """

    def __init__(self, providers: Mapping[str, AICapability]) -> None:
        self._providers: dict[str, AICapability] = dict(providers)

    @property
    def provider_names(self) -> list[str]:
        return list(self._providers)

    def _ordered(self, preferred: tuple[str, ...]) -> list[str]:
        head = [name for name in preferred if name in self._providers]
        return head + [name for name in self._providers if name not in head]

    async def execute(self, request: AIRequest) -> AIResponse:
        failures: list[str] = []
        for name in self._ordered(request.preferred_providers):
            try:
                response = await self._providers[name].execute(request)
            except Exception as exc:
                logger.warning("AI provider %s failed for session %s: %s", name, request.session_id, exc)
                failures.append(f"{name}: {exc}")
                continue
            return AIResponse(content=response.content, provider_used=response.provider_used or name)
        raise AIExecutionError("router", "; ".join(failures) or "no providers registered")
