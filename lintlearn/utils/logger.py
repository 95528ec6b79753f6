"""Rich-based logging setup and terminal output for lintlearn."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.theme import Theme

__all__ = [
    "console",
    "configure_logging",
    "print_success",
    "print_warning",
    "print_error",
    "print_info",
    "create_table",
]

_THEME = Theme(
    {
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
        "info": "bold cyan",
        "muted": "dim",
        "accent": "bold magenta",
    }
)

console = Console(theme=_THEME)


def configure_logging(verbose: bool = False) -> None:
    """Route the ``lintlearn`` logger through a Rich handler on stderr."""
    handler = RichHandler(
        console=Console(stderr=True, theme=_THEME),
        show_path=verbose,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger("lintlearn")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def print_success(message: str) -> None:
    console.print(f"[success]✔[/success] {message}")


def print_warning(message: str) -> None:
    console.print(f"[warning]⚠[/warning] {message}")


def print_error(message: str) -> None:
    console.print(f"[error]✖[/error] {message}")


def print_info(message: str) -> None:
    console.print(f"[info]ℹ[/info] {message}")


def create_table(
    title: str,
    columns: list[tuple[str, str]],
    rows: list[list[str]],
) -> Table:
    """Build a table from ``(header, style)`` column pairs and string rows."""
    table = Table(title=title, show_lines=True, expand=True)
    for header, style in columns:
        table.add_column(header, style=style)
    for row in rows:
        table.add_row(*row)
    return table
