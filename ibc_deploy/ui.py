"""Colorized console output for ibc-deploy workflows.

Thin wrapper around :mod:`rich` that degrades gracefully when stdout
is not a TTY (e.g. piped, CI).  All user-facing status messages flow
through this module; ``logger.*`` calls are kept for structured logging.
"""

from __future__ import annotations

from typing import Mapping

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Shared console; force_terminal=None lets Rich detect the TTY.
console = Console(stderr=False, force_terminal=None)

# ── Symbols ────────────────────────────────────────────────────────────────

_PASS = "[bold green]✓[/]"
_FAIL = "[bold red]✗[/]"
_WARN = "[bold yellow]⚠[/]"
_ARROW = "[bold cyan]›[/]"
_DOT = "[dim]·[/]"

# ── Phase headers ──────────────────────────────────────────────────────────


def phase(title: str) -> None:
    """Print a bold phase header (e.g. ``DEPLOY``, ``RENDER``)."""
    console.print()
    console.print(f"[bold blue]── {title} ──[/]")


# ── Status lines ───────────────────────────────────────────────────────────


def ok(msg: str) -> None:
    """Green checkmark + message."""
    console.print(f"  {_PASS} {msg}", highlight=False)


def fail(msg: str) -> None:
    """Red cross + message."""
    console.print(f"  {_FAIL} [red]{msg}[/]", highlight=False)


def warn(msg: str) -> None:
    console.print(f"  {_WARN} [yellow]{msg}[/]", highlight=False)


def step(msg: str) -> None:
    """Cyan arrow + action message (in-progress)."""
    console.print(f"  {_ARROW} {msg}", highlight=False)


def info(msg: str) -> None:
    console.print(f"  {_DOT} [dim]{msg}[/]", highlight=False)


def error_msg(msg: str) -> None:
    """Bold red error message (not indented)."""
    console.print(f"[bold red]ERROR:[/] {msg}", highlight=False)


# ── Tables / panels ───────────────────────────────────────────────────────


def address_table(addresses: Mapping[str, str], title: str = "Addresses") -> None:
    """Render a name → address table in mapping order."""
    table = Table(title=title, show_lines=False)
    table.add_column("Contract", style="bold")
    table.add_column("Address", style="cyan")
    for name, address in addresses.items():
        table.add_row(name, address)
    console.print(table)


def success_panel(title: str, body: str) -> None:
    """Green-bordered success panel."""
    console.print()
    console.print(
        Panel(
            body,
            title=f"[bold green]{title}[/]",
            border_style="green",
            padding=(1, 2),
        )
    )


def error_panel(title: str, body: str) -> None:
    """Red-bordered error panel."""
    console.print()
    console.print(
        Panel(
            body,
            title=f"[bold red]{title}[/]",
            border_style="red",
            padding=(1, 2),
        )
    )
