"""Refkeep CLI -- terminal interface for reflog retention.

This module is NEVER imported from refkeep/__init__.py.
It is only loaded via the ``refkeep`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import TYPE_CHECKING

import click

from refkeep.cli.formatting import format_error, get_console

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from refkeep.repository import Repository

# Exit status for errors detected before any reflog is touched.
FATAL_EXIT_CODE = 128


def _parse_override(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]) -> list[tuple[str, str | None]]:
    """Turn ``-c key=value`` options into config entries.  A bare key has no value."""
    overrides: list[tuple[str, str | None]] = []
    for item in values:
        key, sep, value = item.partition("=")
        if not key:
            raise click.BadParameter(f"bogus config parameter: {item}", ctx=ctx, param=param)
        overrides.append((key, value if sep else None))
    return overrides


@click.group()
@click.option(
    "--db",
    default=".refkeep.db",
    envvar="REFKEEP_DB",
    help="Path to refkeep database.",
)
@click.option(
    "--worktree",
    default=None,
    envvar="REFKEEP_WORKTREE",
    help="Current worktree id (main if omitted).",
)
@click.option(
    "-c",
    "config_overrides",
    multiple=True,
    metavar="KEY=VALUE",
    callback=_parse_override,
    help="Config override for this run, applied after stored config.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    db: str,
    worktree: str | None,
    config_overrides: list[tuple[str, str | None]],
) -> None:
    """Refkeep: retention policies for reference logs."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db
    ctx.obj["worktree"] = worktree
    ctx.obj["config_overrides"] = config_overrides


def _open_repository(ctx: click.Context) -> Repository:
    """Open a Repository from Click context.

    The database must already exist; the CLI never creates one.
    """
    from refkeep.repository import Repository

    db_path = ctx.obj["db_path"]
    if db_path != ":memory:" and not os.path.exists(db_path):
        console = get_console()
        format_error(f"Database not found: {db_path}", console)
        raise SystemExit(FATAL_EXIT_CODE)

    return Repository.open(
        path=db_path,
        worktree=ctx.obj["worktree"],
        config_overrides=ctx.obj["config_overrides"],
    )


@contextmanager
def _repository_session(ctx: click.Context) -> Iterator[tuple[Repository, Console]]:
    """Context manager that opens a Repository, yields (repo, console), and handles cleanup.

    Ensures the repository is closed on exit and formats exceptions as
    fatal CLI errors.  Commands with special exception handling can catch
    specific errors inside the ``with`` block before this context manager's
    generic handler runs.
    """
    console = get_console()
    try:
        repo = _open_repository(ctx)
        try:
            yield repo, console
        finally:
            repo.close()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(FATAL_EXIT_CODE) from None


# Register subcommands after cli group is defined
from refkeep.cli.commands.expire import expire  # noqa: E402
from refkeep.cli.commands.delete import delete  # noqa: E402
from refkeep.cli.commands.exists import exists  # noqa: E402
from refkeep.cli.commands.show import show  # noqa: E402
from refkeep.cli.commands.config import config  # noqa: E402
from refkeep.cli.commands.check_ref_format import check_ref_format  # noqa: E402

cli.add_command(expire)
cli.add_command(delete)
cli.add_command(exists)
cli.add_command(show)
cli.add_command(config)
cli.add_command(check_ref_format)
