"""Claude plugin integration toggle."""

import typer

from codewith.commands.common import get_runtime, handle_errors
from codewith.config.messages import SUCCESS_MESSAGES
from codewith.models import AppType, PluginSyncAction
from codewith.utils import print_info, print_success

plugin_app = typer.Typer(
    name="plugin",
    help="Toggle the Claude plugin integration",
    no_args_is_help=True,
)

_ACTION_TEXT = {
    PluginSyncAction.WRITE: "plugin file now points the plugin at the active provider",
    PluginSyncAction.CLEAR: "plugin file cleared",
    PluginSyncAction.NOOP: "official provider active; plugin file left alone",
}


@plugin_app.command("enable")
def plugin_enable(ctx: typer.Context) -> None:
    """Apply the active Claude provider to the Claude plugin as well."""
    runtime = get_runtime(ctx)
    with handle_errors():
        action = runtime.providers.set_plugin_integration(True)
    print_success(SUCCESS_MESSAGES["plugin_enabled"])
    print_info(f"  {_ACTION_TEXT[action]}")


@plugin_app.command("disable")
def plugin_disable(ctx: typer.Context) -> None:
    """Stop managing the Claude plugin file and remove the key it needs."""
    runtime = get_runtime(ctx)
    with handle_errors():
        action = runtime.providers.set_plugin_integration(False)
    print_success(SUCCESS_MESSAGES["plugin_disabled"])
    print_info(f"  {_ACTION_TEXT[action]}")


@plugin_app.command("status")
def plugin_status(ctx: typer.Context) -> None:
    """Show whether the integration is on and which provider Claude uses."""
    runtime = get_runtime(ctx)
    with handle_errors():
        enabled = runtime.providers.plugin_integration_enabled()
        config = runtime.providers.list_providers(AppType.CLAUDE)
    state = "[green]enabled[/green]" if enabled else "[dim]disabled[/dim]"
    print_info(f"Claude plugin integration: {state}")
    print_info(f"Active Claude provider: {config.current_id or 'official default'}")
