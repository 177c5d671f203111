"""refkeep config -- list and edit stored configuration."""

from __future__ import annotations

import click

from refkeep.cli.formatting import format_config


@click.group()
def config() -> None:
    """Manage stored configuration (e.g. gc.reflogExpire)."""


@config.command("list")
@click.pass_context
def config_list(ctx: click.Context) -> None:
    """List config entries in the order they apply, overrides last."""
    from refkeep.cli import _repository_session

    with _repository_session(ctx) as (repo, console):
        format_config(repo.config_entries(), console)


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Append KEY=VALUE.  A later entry for the same key wins."""
    from refkeep.cli import _repository_session

    with _repository_session(ctx) as (repo, _console):
        repo.set_config(key, value)


@config.command("unset")
@click.argument("key")
@click.pass_context
def config_unset(ctx: click.Context, key: str) -> None:
    """Remove every stored entry for KEY.  Exits 5 if there was none."""
    from refkeep.cli import _repository_session

    with _repository_session(ctx) as (repo, _console):
        removed = repo.unset_config(key)

    if not removed:
        raise SystemExit(5)
