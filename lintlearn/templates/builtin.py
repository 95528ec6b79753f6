"""Built-in rule templates.

Implementations target the TypeScript rule API of the host linter. Only the
unused-code template carries a complete visitor skeleton; the others are
placeholders meant to be filled in by the AI provider.
"""

from __future__ import annotations

from lintlearn.templates.library import RuleGenerationTemplate, TemplateKind

__all__ = ["BUILTIN_TEMPLATES"]


_UNUSED_CODE_IMPLEMENTATION = """\
import type { LintIssue, LintSeverity, RuleContext } from "@lintlearn/rule-api";
import { Visitor } from "@lintlearn/rule-api";
import type { VariableDeclarator, IdentifierReference } from "@oxc-project/types";

/**
 * {{rule_name}}
 *
 * {{description}}
 */
export class {{class_name}} implements Visitor {
  private readonly declared = new Map<string, VariableDeclarator>();
  private readonly referenced = new Set<string>();

  constructor(private readonly context: RuleContext) {}

  visitVariableDeclarator(node: VariableDeclarator): void {
    if (node.id.type === "Identifier") {
      this.declared.set(node.id.name, node);
    }
  }

  visitIdentifierReference(node: IdentifierReference): void {
    this.referenced.add(node.name);
  }

  finish(): LintIssue[] {
    const issues: LintIssue[] = [];
    for (const [name, node] of this.declared) {
      if (!this.referenced.has(name)) {
        issues.push(this.createIssue(node, name));
      }
    }
    return issues;
  }

  private createIssue(node: VariableDeclarator, name: string): LintIssue {
    const { line, column } = this.context.position(node.span.start);
    return {
      ruleName: "{{rule_name}}",
      message: `Variable '${name}' is unused`,
      line,
      column,
      severity: "{{severity}}" as LintSeverity,
      fixAvailable: true,
    };
  }
}
"""

_UNUSED_CODE_TESTS = """\
import { describe, expect, it } from "vitest";
import { runRule } from "@lintlearn/rule-api/testing";
import { {{class_name}} } from "./{{file_stem}}";

describe("{{rule_name}}", () => {
  it("detects an unused declaration", () => {
    const issues = runRule({{class_name}}, "const unused = 42; console.log('hello');");
    expect(issues).toHaveLength(1);
  });

  it("accepts a declaration that is used", () => {
    const issues = runRule({{class_name}}, "const used = 42; console.log(used);");
    expect(issues).toHaveLength(0);
  });
});
"""

_UNUSED_CODE_DOCS = """\
# {{rule_name}}

{{description}}

## Why?

Unused declarations confuse readers, hide incomplete refactors and grow
bundles for no benefit.

## Examples

### Incorrect

```typescript
const data = fetchData();
console.log("Processing...");
```

### Correct

```typescript
const data = fetchData();
console.log("Data:", data);
```

## Pattern

Learned from the recurring diagnostic `{{message_pattern}}`.
"""


def _stub(title: str, summary: str) -> tuple[str, str, str]:
    return (
        f"// {title} rule template for {{{{rule_name}}}}\n// Pattern: {{{{message_pattern}}}}\n",
        f"// {title} test template for {{{{rule_name}}}}\n",
        f"# {{{{rule_name}}}}\n\n{summary}\n\nLearned from `{{{{message_pattern}}}}`.\n",
    )


def _template(
    kind: TemplateKind,
    name: str,
    description: str,
    keywords: tuple[str, ...],
    bodies: tuple[str, str, str],
) -> RuleGenerationTemplate:
    implementation, tests, docs = bodies
    return RuleGenerationTemplate(
        template_id=kind.value,
        name=name,
        description=description,
        applicable_pattern_keywords=keywords,
        implementation_template=implementation,
        test_template=tests,
        doc_template=docs,
    )


BUILTIN_TEMPLATES: tuple[RuleGenerationTemplate, ...] = (
    _template(
        TemplateKind.UNUSED_CODE,
        "Unused Code Detection",
        "Detects unused variables, functions, imports and parameters.",
        ("unused", "never used"),
        (_UNUSED_CODE_IMPLEMENTATION, _UNUSED_CODE_TESTS, _UNUSED_CODE_DOCS),
    ),
    _template(
        TemplateKind.TYPE_SAFETY,
        "Type Safety Enforcement",
        "TypeScript type safety rules.",
        ("type", "any", "assertion"),
        _stub("Type safety", "Enforces TypeScript type safety best practices."),
    ),
    _template(
        TemplateKind.IMPORT_EXPORT,
        "Module Boundary Hygiene",
        "Import and export ordering, cycles and unused bindings.",
        ("import", "export", "module"),
        _stub("Import/export", "Keeps module imports and exports consistent."),
    ),
    _template(
        TemplateKind.ASYNC_PATTERNS,
        "Async Correctness",
        "Floating promises, missing awaits and async misuse.",
        ("async", "promise", "await"),
        _stub("Async", "Catches promise and async/await misuse."),
    ),
    _template(
        TemplateKind.FUNCTION_PATTERNS,
        "Function Shape",
        "Function length, parameters and return consistency.",
        ("function",),
        _stub("Function", "Keeps function signatures and bodies maintainable."),
    ),
    _template(
        TemplateKind.CLASS_PATTERNS,
        "Class Design",
        "Class member ordering, visibility and responsibilities.",
        ("class",),
        _stub("Class", "Keeps class design consistent."),
    ),
    _template(
        TemplateKind.BEST_PRACTICES,
        "Best Practices Enforcement",
        "General code quality and best practices rules.",
        ("prefer", "avoid", "best-practices"),
        _stub("Best practices", "Enforces coding best practices."),
    ),
)
