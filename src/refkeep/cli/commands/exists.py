"""refkeep exists -- check whether a ref has a reflog."""

from __future__ import annotations

import click


@click.command()
@click.argument("ref")
@click.pass_context
def exists(ctx: click.Context, ref: str) -> None:
    """Exit 0 if REF has a reflog, 1 otherwise.  Prints nothing.

    REF must be a full, valid ref name; an invalid one is a fatal error.
    """
    from refkeep.cli import _repository_session

    with _repository_session(ctx) as (repo, _console):
        found = repo.exists(ref)

    raise SystemExit(0 if found else 1)
