"""Rule templates keyed by pattern theme.

Templates steer the AI prompt and double as the deterministic fallback when
no AI provider answers. Lookup is ordered: the first template whose keyword
occurs in the cluster's theme wins, and ``best-practices`` catches the rest.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from lintlearn.core.errors import ConfigError

if TYPE_CHECKING:
    from lintlearn.core.pattern_tracker import PatternCluster

__all__ = [
    "TemplateKind",
    "RuleGenerationTemplate",
    "RenderedTemplate",
    "RuleTemplateLibrary",
    "extract_theme",
    "DEFAULT_TEMPLATE_ID",
]

DEFAULT_TEMPLATE_ID = "best-practices"

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class TemplateKind(str, Enum):
    UNUSED_CODE = "unused-code"
    TYPE_SAFETY = "type-safety"
    IMPORT_EXPORT = "import-export"
    ASYNC_PATTERNS = "async-patterns"
    FUNCTION_PATTERNS = "function-patterns"
    CLASS_PATTERNS = "class-patterns"
    BEST_PRACTICES = "best-practices"


_THEME_KEYWORDS: list[tuple[tuple[str, ...], TemplateKind]] = [
    (("unused",), TemplateKind.UNUSED_CODE),
    (("type", "any"), TemplateKind.TYPE_SAFETY),
    (("import", "export"), TemplateKind.IMPORT_EXPORT),
    (("async", "promise"), TemplateKind.ASYNC_PATTERNS),
    (("function",), TemplateKind.FUNCTION_PATTERNS),
    (("class",), TemplateKind.CLASS_PATTERNS),
]


def extract_theme(message_pattern: str) -> TemplateKind:
    """Classify a normalized message into a template theme."""
    message = message_pattern.lower()
    for keywords, kind in _THEME_KEYWORDS:
        if any(keyword in message for keyword in keywords):
            return kind
    return TemplateKind.BEST_PRACTICES


@dataclass(frozen=True)
class RenderedTemplate:
    implementation: str
    tests: str
    documentation: str

    def as_response(self) -> str:
        """Format in the three-section layout the response parser expects."""
        return (
            f"IMPLEMENTATION:\n{self.implementation}\n"
            f"TEST_CASES:\n{self.tests}\n"
            f"DOCUMENTATION:\n{self.documentation}\n"
        )


@dataclass(frozen=True)
class RuleGenerationTemplate:
    template_id: str
    name: str
    description: str
    applicable_pattern_keywords: tuple[str, ...]
    implementation_template: str
    test_template: str
    doc_template: str

    def matches(self, theme: str) -> bool:
        theme = theme.lower()
        return any(keyword.lower() in theme for keyword in self.applicable_pattern_keywords)

    def render(self, values: dict[str, str]) -> RenderedTemplate:
        """Substitute ``{{name}}`` placeholders; unknown names are left as-is."""

        def _fill(text: str) -> str:
            return _PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), text)

        return RenderedTemplate(
            implementation=_fill(self.implementation_template),
            tests=_fill(self.test_template),
            documentation=_fill(self.doc_template),
        )


class RuleTemplateLibrary:
    """Ordered, immutable set of rule templates."""

    def __init__(self, templates: Iterable[RuleGenerationTemplate] | None = None) -> None:
        if templates is None:
            from lintlearn.templates.builtin import BUILTIN_TEMPLATES

            templates = BUILTIN_TEMPLATES
        self._templates: tuple[RuleGenerationTemplate, ...] = tuple(templates)
        self._by_id: dict[str, RuleGenerationTemplate] = {t.template_id: t for t in self._templates}
        if DEFAULT_TEMPLATE_ID not in self._by_id:
            raise ConfigError(
                "Template library has no default template",
                field="template_library",
                value=DEFAULT_TEMPLATE_ID,
            )

    @property
    def templates(self) -> tuple[RuleGenerationTemplate, ...]:
        return self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def get(self, template_id: str) -> RuleGenerationTemplate | None:
        return self._by_id.get(template_id)

    @property
    def default(self) -> RuleGenerationTemplate:
        return self._by_id[DEFAULT_TEMPLATE_ID]

    def select_template(self, cluster: PatternCluster) -> RuleGenerationTemplate:
        theme = extract_theme(cluster.primary_pattern.message_pattern)
        for template in self._templates:
            if template.matches(theme.value):
                return template
        return self.default
