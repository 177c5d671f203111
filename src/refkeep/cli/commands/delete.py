"""refkeep delete -- remove selected reflog entries."""

from __future__ import annotations

import click

from refkeep.cli.formatting import format_decision, format_error, format_run_result, get_console


@click.command()
@click.option("--rewrite", is_flag=True, help="Chain each kept entry's old value to its predecessor.")
@click.option("--updateref", "update_ref", is_flag=True, help="Reset the ref if its newest entry is deleted.")
@click.option("-n", "--dry-run", is_flag=True, help="Report what would be deleted without deleting.")
@click.option("--verbose", is_flag=True, help="Print every decision.")
@click.argument("refs", nargs=-1)
@click.pass_context
def delete(
    ctx: click.Context,
    rewrite: bool,
    update_ref: bool,
    dry_run: bool,
    verbose: bool,
    refs: tuple[str, ...],
) -> None:
    """Delete reflog entries selected as REF@{N} or REF@{DATE}.

    N counts from the newest entry (0); DATE selects the newest entry
    older than it.
    """
    from refkeep.cli import _repository_session

    if not refs:
        format_error("no reflog specified to delete", get_console())
        raise SystemExit(1)

    with _repository_session(ctx) as (repo, console):
        result = repo.delete(
            refs,
            dry_run=dry_run,
            rewrite=rewrite,
            update_ref=update_ref,
            verbose=verbose,
            on_decision=lambda d: format_decision(d, console),
        )
        format_run_result(result, console, verbose=verbose)

    if result.status:
        raise SystemExit(result.status)
