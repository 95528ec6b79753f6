"""Error taxonomy for the pattern-learning pipeline."""

from __future__ import annotations

__all__ = [
    "LintLearnError",
    "ValidationError",
    "ConfigError",
    "ProcessingError",
    "AIExecutionError",
]


class LintLearnError(Exception):
    """Base class for every error raised by lintlearn."""


class ValidationError(LintLearnError):
    def __init__(self, field: str, expected: str, actual: str) -> None:
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(f"Validation failed for {field}: expected {expected}, got {actual}")


class ConfigError(LintLearnError):
    def __init__(self, message: str, field: str | None = None, value: str | None = None) -> None:
        self.message = message
        self.field = field
        self.value = value
        detail = f" ({field}={value})" if field is not None else ""
        super().__init__(f"{message}{detail}")


class ProcessingError(LintLearnError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AIExecutionError(LintLearnError):
    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        self.message = message
        super().__init__(f"AI provider '{provider}' failed: {message}")
