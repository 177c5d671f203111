"""refkeep check-ref-format -- validate a ref name without opening a database."""

from __future__ import annotations

import click

from refkeep.cli.formatting import format_error, get_console
from refkeep.refs import collapse_slashes, is_valid_refname


def _valid_branch_name(name: str) -> bool:
    if name.startswith("-") or name == "HEAD":
        return False
    return is_valid_refname(f"refs/heads/{name}")


@click.command("check-ref-format")
@click.option(
    "--normalize",
    "--print",
    "normalize",
    is_flag=True,
    help="Collapse repeated slashes and print the name if it is valid.",
)
@click.option(
    "--allow-onelevel/--no-allow-onelevel",
    default=False,
    help="Accept names with a single component.",
)
@click.option("--refspec-pattern", is_flag=True, help="Allow one '*' component.")
@click.option("--branch", is_flag=True, help="Check REFNAME as a branch name and print it.")
@click.argument("refname")
def check_ref_format(
    normalize: bool,
    allow_onelevel: bool,
    refspec_pattern: bool,
    branch: bool,
    refname: str,
) -> None:
    """Exit 0 if REFNAME is a well-formed ref name, 1 otherwise."""
    if branch:
        if normalize or allow_onelevel or refspec_pattern:
            raise click.UsageError("--branch cannot be combined with other options")
        if not _valid_branch_name(refname):
            from refkeep.cli import FATAL_EXIT_CODE

            format_error(f"'{refname}' is not a valid branch name", get_console())
            raise SystemExit(FATAL_EXIT_CODE)
        click.echo(refname)
        return

    if normalize:
        refname = collapse_slashes(refname)
    if not is_valid_refname(
        refname, allow_onelevel=allow_onelevel, refspec_pattern=refspec_pattern
    ):
        raise SystemExit(1)
    if normalize:
        click.echo(refname)
