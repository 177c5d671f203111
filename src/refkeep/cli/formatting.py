"""Rich formatting helpers for the Refkeep CLI.

Provides functions that format SDK data structures for terminal display.
Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from refkeep.models.reflog import EntryDecision, ReflogEntry, RunResult


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False, soft_wrap=True)


def format_decision(decision: EntryDecision, console: Console) -> None:
    """Display one verbose retention decision."""
    line = escape(decision.describe())
    if decision.pruned:
        console.print(f"[red]{line}[/red]", highlight=False)
    else:
        console.print(f"[dim]{line}[/dim]", highlight=False)


def format_marking(console: Console) -> None:
    console.print("Marking reachable objects...", highlight=False)


def format_reflog(entries: list[ReflogEntry], console: Console) -> None:
    """Display reflog entries, newest first, one per line."""
    if not entries:
        console.print("[dim]No entries.[/dim]")
        return

    for entry in entries:
        msg = escape(entry.message) if entry.message else ""
        console.print(
            f"[yellow]{entry.new_id[:8]}[/yellow] {escape(entry.selector)}: {msg}",
            highlight=False,
        )


def format_run_result(result: RunResult, console: Console, verbose: bool = False) -> None:
    """Display per-target failures, and a summary line in verbose mode."""
    for outcome in result.failures:
        console.print(f"[red]error:[/red] {escape(outcome.error or outcome.ref_name)}", highlight=False)

    if verbose:
        updated = [o.report for o in result.outcomes if o.report and o.report.ref_updated_to]
        for report in updated:
            console.print(
                f"{escape(report.ref_name)} updated to "
                f"[yellow]{report.ref_updated_to[:8]}[/yellow]",
                highlight=False,
            )
        console.print(f"[dim]{escape(str(result))}[/dim]", highlight=False)


def format_config(entries: list[tuple[str, str | None]], console: Console) -> None:
    """Display config entries as ``key=value`` lines."""
    for key, value in entries:
        if value is None:
            console.print(escape(key), highlight=False)
        else:
            console.print(f"{escape(key)}={escape(value)}", highlight=False)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
