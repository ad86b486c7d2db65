"""Command-line entry point.

Without a subcommand the interactive REPL starts.  ``sync``, ``list`` and
``profiles`` run once and exit; ``sync`` exits 0 even when individual
destinations fail, the report says which.
"""

import shlex

import typer
from rich.console import Console

from autoenv.logs import setup_logging
from autoenv.repl import Repl

app = typer.Typer(
    help="Keep .env files and Postman environments in sync with AWS profile credentials",
    invoke_without_command=True,
)

_VERBOSE_HELP = "Show diagnostic logging on stderr"
_TARGET_HELP = "A mapped file path, Postman environment ID, or profile name. Omit to sync everything."


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help=_VERBOSE_HELP),  # noqa: B008
) -> None:
    """Start the interactive REPL when no command is given."""
    setup_logging(verbose)
    if ctx.invoked_subcommand is None:
        Repl(Console()).run()


@app.command()
def sync(
    target: str | None = typer.Argument(None, help=_TARGET_HELP),  # noqa: B008
) -> None:
    """Sync credentials into mapped destinations."""
    args = ["sync", target] if target else ["sync"]
    Repl(Console()).dispatch(shlex.join(args))


@app.command(name="list")
def list_mappings() -> None:
    """List configured mappings."""
    Repl(Console()).dispatch("list")


@app.command()
def profiles() -> None:
    """List available AWS profiles."""
    Repl(Console()).dispatch("profiles")
