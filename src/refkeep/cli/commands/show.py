"""refkeep show -- list reflog entries."""

from __future__ import annotations

import click

from refkeep.cli.formatting import format_reflog


@click.command()
@click.argument("ref", default="HEAD")
@click.option("-n", "--limit", default=None, type=int, help="Maximum number of entries to show.")
@click.pass_context
def show(ctx: click.Context, ref: str, limit: int | None) -> None:
    """Show the reflog of REF (default HEAD), newest first."""
    from refkeep.cli import _repository_session

    with _repository_session(ctx) as (repo, console):
        format_reflog(repo.show(ref, limit), console)
