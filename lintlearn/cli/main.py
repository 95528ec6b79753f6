"""lintlearn CLI – Typer multi-command application."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich.panel import Panel
from rich.text import Text

from lintlearn.config.settings import LintLearnSettings, load_settings
from lintlearn.core.engine import AdaptiveRuleSystem
from lintlearn.core.errors import LintLearnError
from lintlearn.rules.base_rule import LintIssue
from lintlearn.templates.library import RuleTemplateLibrary
from lintlearn.utils.logger import (
    configure_logging, console, create_table, print_error, print_info, print_success, print_warning,
)

__all__ = ["app"]

app = typer.Typer(
    name="lintlearn",
    help="Learn custom lint rules from recurring TypeScript/JavaScript diagnostics.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _load_settings(config: Path | None, project_dir: Path | None, output_dir: str | None) -> LintLearnSettings:
    root = (project_dir or Path.cwd()).resolve()
    settings = load_settings(config_path=config, search_dir=root)
    if output_dir is not None:
        settings.output_directory = output_dir
    if settings.output_directory and not Path(settings.output_directory).is_absolute():
        settings.output_directory = str(root / settings.output_directory)
    return settings


def _load_issues(path: Path) -> list[tuple[str, list[LintIssue]]]:
    """Read ``{file: [issue, ...]}`` or ``[{"file_path": ..., "issues": [...]}, ...]``."""
    data: Any = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        entries = [(str(file_path), records) for file_path, records in data.items()]
    elif isinstance(data, list):
        entries = [(str(entry["file_path"]), entry.get("issues", [])) for entry in data]
    else:
        raise ValueError("issues file must hold a JSON object or list")
    return [(file_path, [LintIssue.from_dict(r) for r in records]) for file_path, records in entries]


async def _run_cycles(system: AdaptiveRuleSystem, cycles: int) -> None:
    for _ in range(cycles):
        await system.run_analysis_cycle()


def _banner() -> None:
    console.print(Panel(
        Text("lintlearn", style="bold magenta", justify="center"),
        subtitle="Pattern-learning rule synthesis",
        border_style="magenta", expand=False, padding=(0, 4),
    ))
    console.print()


@app.command()
def learn(
    issues_file: Path = typer.Argument(..., help="JSON file mapping file paths to lint issues"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to lintlearn.yaml"),
    project_dir: Optional[Path] = typer.Option(None, "--dir", "-d", help="Project root directory"),
    cycles: int = typer.Option(1, "--cycles", "-n", min=1, help="Analysis cycles to run"),
    report: Optional[Path] = typer.Option(None, "--report", "-r", help="Write a JSON analysis report here"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", "-o", help="Directory for generated rules ('' disables export)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Ingest lint issues, cluster recurring patterns and generate rules."""
    configure_logging(verbose)
    _banner()
    settings = _load_settings(config, project_dir, output_dir)

    try:
        batches = _load_issues(issues_file)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        print_error(f"Could not read issues from {issues_file}: {exc}")
        raise typer.Exit(code=2)

    system = AdaptiveRuleSystem(settings=settings)
    for file_path, issues in batches:
        system.process_lint_issues(issues, file_path)
    print_info(f"Ingested {sum(len(i) for _, i in batches)} issue(s) from {len(batches)} file(s)")

    with console.status("[bold cyan]Running analysis cycles…"):
        try:
            asyncio.run(_run_cycles(system, cycles))
        except LintLearnError as exc:
            print_error(f"Analysis cycle aborted: {exc}")
            raise typer.Exit(code=2)

    console.print(create_table(
        "🔁 Analysis Cycles",
        [("Cycle", "bold"), ("Patterns", ""), ("Clusters", ""), ("Rules", "green"), ("Cleaned", "dim"), ("Time (ms)", "dim")],
        [
            [c.cycle_id[:8], str(c.patterns_analyzed), str(c.clusters_formed), str(c.rules_generated),
             str(c.cleaned_patterns), str(c.execution_time_ms)]
            for c in system.analysis_history
        ],
    ))

    if system.generated_rules:
        console.print(create_table(
            "🧩 Generated Rules",
            [("Rule", "bold"), ("Category", ""), ("Severity", ""), ("Quality", "green"), ("Source", "dim")],
            [
                [r.rule_id, r.category.value, r.severity.value, f"{r.quality_score:.2f}",
                 "fallback" if r.generation_metadata.used_fallback else r.generation_metadata.ai_provider_used]
                for r in system.generated_rules
            ],
        ))

    stats = system.get_statistics()
    console.print(Panel(
        f"[bold]Patterns tracked:[/bold] {stats.total_patterns_tracked}\n"
        f"[bold]Eligible patterns:[/bold] {stats.patterns_eligible_for_rules}\n"
        f"[bold]Rules generated:[/bold] {stats.total_rules_generated}  (active: {stats.active_rules})\n"
        f"[bold]Average quality:[/bold] {stats.average_rule_quality:.2f}",
        title="📊 System Statistics", border_style="cyan",
    ))

    if report is not None:
        written = system.export_analysis_report(report)
        print_info(f"Report written to {written}")

    if stats.total_rules_generated:
        print_success(f"Generated {stats.total_rules_generated} rule(s).")
    else:
        print_warning("No cluster qualified for rule generation.")
    raise typer.Exit(code=0)


@app.command()
def templates() -> None:
    """List the rule templates used to steer and back up generation."""
    library = RuleTemplateLibrary()
    console.print(create_table(
        "📚 Rule Templates",
        [("Template", "bold"), ("Name", ""), ("Keywords", "cyan"), ("Description", "dim")],
        [[t.template_id, t.name, ", ".join(t.applicable_pattern_keywords), t.description] for t in library.templates],
    ))


if __name__ == "__main__":
    app()
