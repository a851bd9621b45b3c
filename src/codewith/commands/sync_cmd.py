"""Sync commands: one-off sync, status, and the scheduled daemon."""

import asyncio

import typer

from codewith.commands.common import get_runtime, handle_errors
from codewith.config.messages import ERROR_MESSAGES, INFO_MESSAGES, SUCCESS_MESSAGES
from codewith.models import ReconcilerState
from codewith.services.device_identity import get_device_id
from codewith.utils import console, print_error, print_info, print_success, print_warning

sync_app = typer.Typer(
    name="sync",
    help="Push snapshots and pull admin overrides",
    no_args_is_help=True,
)

_STATE_STYLE = {
    ReconcilerState.SYNCED: "green",
    ReconcilerState.STALE: "yellow",
    ReconcilerState.UNSYNCED: "dim",
}


@sync_app.command("run")
def sync_run(ctx: typer.Context) -> None:
    """Run one sync cycle now."""
    runtime = get_runtime(ctx)
    if not runtime.sync_settings.enabled:
        print_error(ERROR_MESSAGES["sync_not_configured"])
        raise typer.Exit(code=1)

    with handle_errors():
        outcome = runtime.sync_client().run_once()

    if not outcome.ok:
        print_error(ERROR_MESSAGES["sync_failed"].format(error=outcome.error))
        raise typer.Exit(code=1)
    if outcome.reconcile is None or not outcome.reconcile.applied:
        print_info(INFO_MESSAGES["sync_no_override"])
    else:
        changed = ", ".join(a.value for a in outcome.reconcile.changed_apps) or "none"
        print_info(f"  Applied override v{outcome.reconcile.version} (changed: {changed})")
    _, applied = runtime.reconciler.status()
    print_success(SUCCESS_MESSAGES["sync_done"].format(version=applied or "-"))


@sync_app.command("status")
def sync_status(ctx: typer.Context) -> None:
    """Show device id, applied admin version and the last sync result."""
    runtime = get_runtime(ctx)
    with handle_errors():
        state, applied = runtime.reconciler.status()
        sync = runtime.store.load().sync

    style = _STATE_STYLE[state]
    console.print(f"State:           [{style}]{state.value}[/{style}]")
    console.print(f"Device id:       {sync.device_id or '-'}")
    console.print(f"Applied version: {applied if applied is not None else '-'}")
    console.print(f"Server version:  {sync.last_seen_admin_version or '-'}")
    console.print(f"Last sync:       {sync.last_sync_at.isoformat() if sync.last_sync_at else 'never'}")
    if sync.pending_apps:
        print_warning(f"Live files pending for: {', '.join(a.value for a in sync.pending_apps)}")
    if sync.last_sync_error:
        print_warning(f"Last error: {sync.last_sync_error}")
    if not runtime.sync_settings.enabled:
        print_info(ERROR_MESSAGES["sync_not_configured"])


@sync_app.command("device-id")
def sync_device_id(ctx: typer.Context) -> None:
    """Print this device's id (computed and stored on first use)."""
    runtime = get_runtime(ctx)
    with handle_errors():
        console.print(get_device_id(runtime.store))


@sync_app.command("daemon")
def sync_daemon(ctx: typer.Context) -> None:
    """Run scheduled syncs in the foreground until interrupted."""
    runtime = get_runtime(ctx)
    if not runtime.sync_settings.enabled:
        print_error(ERROR_MESSAGES["sync_not_configured"])
        raise typer.Exit(code=1)

    with handle_errors():
        client = runtime.sync_client()
    print_info(INFO_MESSAGES["daemon_started"].format(seconds=client.next_run_delay()))
    try:
        asyncio.run(client.run_forever())
    except KeyboardInterrupt:
        client.stop()
        print_info("Sync daemon stopped")
