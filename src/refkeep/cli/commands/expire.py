"""refkeep expire -- prune old reflog entries."""

from __future__ import annotations

import click

from refkeep.cli.formatting import format_decision, format_marking, format_run_result


@click.command()
@click.option("--expire", "expire_date", default=None, metavar="DATE", help="Prune entries older than DATE.")
@click.option(
    "--expire-unreachable",
    default=None,
    metavar="DATE",
    help="Prune unreachable entries older than DATE.",
)
@click.option("--rewrite", is_flag=True, help="Chain each kept entry's old value to its predecessor.")
@click.option("--updateref", "update_ref", is_flag=True, help="Reset the ref if its newest entry is pruned.")
@click.option("--stale-fix", is_flag=True, help="Also prune entries pointing at broken history.")
@click.option("-n", "--dry-run", is_flag=True, help="Report what would be pruned without pruning.")
@click.option("--verbose", is_flag=True, help="Print every decision.")
@click.option("--all", "all_refs", is_flag=True, help="Process the reflogs of all references.")
@click.option("--single-worktree", is_flag=True, help="With --all, only the current worktree.")
@click.argument("refs", nargs=-1)
@click.pass_context
def expire(
    ctx: click.Context,
    expire_date: str | None,
    expire_unreachable: str | None,
    rewrite: bool,
    update_ref: bool,
    stale_fix: bool,
    dry_run: bool,
    verbose: bool,
    all_refs: bool,
    single_worktree: bool,
    refs: tuple[str, ...],
) -> None:
    """Prune reflog entries older than the configured horizon.

    Each of REFS may be a short name (``main``, ``@``).  With --all, every
    reflog of every worktree is processed, shared reflogs exactly once.
    """
    from refkeep.cli import _repository_session

    with _repository_session(ctx) as (repo, console):
        result = repo.expire(
            refs,
            all_refs=all_refs,
            single_worktree=single_worktree,
            stale_fix=stale_fix,
            expire=expire_date,
            expire_unreachable=expire_unreachable,
            dry_run=dry_run,
            rewrite=rewrite,
            update_ref=update_ref,
            verbose=verbose,
            on_decision=lambda d: format_decision(d, console),
            on_marking=(lambda: format_marking(console)) if verbose else None,
        )
        format_run_result(result, console, verbose=verbose)

    if result.status:
        raise SystemExit(result.status)
