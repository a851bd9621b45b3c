"""Main CLI entry point for codewith."""

import sys
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console

from codewith.commands import (
    migrate_command,
    plugin_app,
    provider_app,
    server_app,
    store_app,
    sync_app,
)
from codewith.commands.common import CliState
from codewith.config.messages import ERROR_MESSAGES, HELP_TEXT, PROJECT_TAGLINE
from codewith.constants import VERSION
from codewith.utils import print_error, print_panel

# Load .env file from current directory if it exists
load_dotenv(Path.cwd() / ".env", verbose=False)

app = typer.Typer(
    name="codewith",
    help=PROJECT_TAGLINE,
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(provider_app, name="provider")
app.add_typer(plugin_app, name="plugin")
app.add_typer(sync_app, name="sync")
app.add_typer(store_app, name="store")
app.add_typer(server_app, name="server")
app.command("migrate")(migrate_command)

console = Console()


@app.command("version")
def version() -> None:
    """Show version information."""
    print_panel(
        f"[bold cyan]codewith[/bold cyan] version [green]{VERSION}[/green]\n\n{PROJECT_TAGLINE}",
        title="Version",
        style="cyan",
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    home: Path | None = typer.Option(
        None,
        "--home",
        help="Home directory holding ~/.codewith and the tools' config dirs",
        envvar="CODEWITH_HOME",
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
    version_flag: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version information",
        is_eager=True,
    ),
) -> None:
    """codewith - one switch for every AI coding tool on this machine.

    Get started:
        codewith provider list
        codewith provider add claude ./acme.yaml --switch
        codewith provider switch claude --official
    """
    if version_flag:
        version()
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(HELP_TEXT)
        raise typer.Exit()

    ctx.obj = CliState(home=home, log_level=log_level)


def cli_main() -> None:
    """Entry point of the ``codewith`` command."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled by user[/yellow]")
        sys.exit(130)
    except OSError as e:
        print_error(ERROR_MESSAGES["generic_error"].format(error=str(e)))
        sys.exit(1)
