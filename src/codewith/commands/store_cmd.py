"""Local config store commands: where it lives, whether it reads, and recovery."""

import typer

from codewith.commands.common import get_runtime, handle_errors
from codewith.config.messages import ERROR_MESSAGES, SUCCESS_MESSAGES
from codewith.models import AppType
from codewith.utils import console, print_info, print_success

store_app = typer.Typer(
    name="store",
    help="Inspect or recover the local config store",
    no_args_is_help=True,
)


@store_app.command("path")
def store_path(ctx: typer.Context) -> None:
    """Print the location of the config store."""
    runtime = get_runtime(ctx, migrate=False)
    console.print(str(runtime.store.path))


@store_app.command("check")
def store_check(ctx: typer.Context) -> None:
    """Load and validate the config store."""
    runtime = get_runtime(ctx, migrate=False)
    with handle_errors():
        doc = runtime.store.load()
    counts = ", ".join(f"{app.value}={len(doc.app(app).providers)}" for app in AppType)
    print_success(f"Config store OK ({counts})")


@store_app.command("reset")
def store_reset(
    ctx: typer.Context,
    force: bool = typer.Option(
        False, "--force", "-f", help="Reset even if the store is readable"
    ),
) -> None:
    """Move an unreadable config store aside and start with an empty one.

    The old file is kept as config.json.corrupt-<timestamp>.
    """
    runtime = get_runtime(ctx, migrate=False)
    if force and not typer.confirm("Move the current config store aside?", default=False):
        raise typer.Exit(code=1)
    with handle_errors():
        archived = runtime.store.reset(force=force)
    if archived is None:
        print_info(ERROR_MESSAGES["store_not_corrupt"])
        return
    print_success(SUCCESS_MESSAGES["store_reset"].format(path=archived))
