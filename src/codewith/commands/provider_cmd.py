"""Provider commands: list, show, export, current, add, edit, remove and switch."""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from codewith.commands.common import get_runtime, handle_errors, load_provider_file
from codewith.config.messages import INFO_MESSAGES, SUCCESS_MESSAGES
from codewith.models import AppType
from codewith.services.provider_service import SwitchResult
from codewith.utils import print_info, print_success, print_warning, write_yaml
from codewith.utils.redact import redact_secrets

console = Console()

provider_app = typer.Typer(
    name="provider",
    help="List, add, edit, remove and switch providers",
    no_args_is_help=True,
)


def _report_switch(result: SwitchResult) -> None:
    if result.provider_id is None:
        print_success(SUCCESS_MESSAGES["switched_official"].format(app=result.app.value))
    else:
        print_success(
            SUCCESS_MESSAGES["switched"].format(app=result.app.value, provider_id=result.provider_id)
        )
    if result.materialized:
        for path in result.materialized.files:
            print_info(f"  wrote {path}")
    if result.plugin_error:
        print_warning(f"Claude plugin file not updated: {result.plugin_error}")


@provider_app.command("list")
def provider_list(
    ctx: typer.Context,
    app: AppType | None = typer.Argument(None, help="Only this app (claude, codex, gemini)"),
) -> None:
    """List providers; the active one is marked with ●."""
    runtime = get_runtime(ctx)
    apps = [app] if app else list(AppType)

    with handle_errors():
        for app_type in apps:
            config = runtime.providers.list_providers(app_type)
            if not config.providers:
                print_info(INFO_MESSAGES["no_providers"].format(app=app_type.value))
                continue

            table = Table(title=f"{app_type.value} providers")
            table.add_column("", width=1)
            table.add_column("ID", style="cyan")
            table.add_column("Name")
            table.add_column("Category", style="dim")
            for provider in config.providers.values():
                marker = "[green]●[/green]" if provider.id == config.current_id else ""
                table.add_row(marker, provider.id, provider.name, provider.category.value)
            console.print(table)
            if config.current_id is None:
                print_info("  (official default selected)")


@provider_app.command("show")
def provider_show(
    ctx: typer.Context,
    app: AppType = typer.Argument(..., help="App the provider belongs to"),
    provider_id: str = typer.Argument(..., help="Provider id"),
    reveal: bool = typer.Option(False, "--reveal", help="Print credentials unmasked"),
) -> None:
    """Print one provider as JSON (credentials masked unless --reveal)."""
    runtime = get_runtime(ctx)
    with handle_errors():
        provider = runtime.providers.get_provider(app, provider_id)
    data = provider.to_json_dict()
    if not reveal:
        data = redact_secrets(data)
    console.print_json(json.dumps(data))


@provider_app.command("export")
def provider_export(
    ctx: typer.Context,
    app: AppType = typer.Argument(..., help="App the provider belongs to"),
    provider_id: str = typer.Argument(..., help="Provider id"),
    output: Path = typer.Argument(..., help="YAML file to write"),
    reveal: bool = typer.Option(False, "--reveal", help="Keep credentials in the file"),
) -> None:
    """Write a provider definition to a YAML file that `provider add` accepts.

    Credentials are masked unless --reveal is given.
    """
    runtime = get_runtime(ctx)
    with handle_errors():
        provider = runtime.providers.get_provider(app, provider_id)
    data = provider.to_json_dict()
    if not reveal:
        data = redact_secrets(data)
    write_yaml(output, data)
    print_success(
        SUCCESS_MESSAGES["provider_exported"].format(provider_id=provider_id, path=output)
    )


@provider_app.command("current")
def provider_current(
    ctx: typer.Context,
    app: AppType = typer.Argument(..., help="App whose live config to print"),
    reveal: bool = typer.Option(False, "--reveal", help="Print credentials unmasked"),
) -> None:
    """Print the live config the app reads right now."""
    runtime = get_runtime(ctx)
    with handle_errors():
        config = runtime.providers.list_providers(app)
        live = runtime.materializer.read_live(app)
    print_info(f"Active provider: {config.current_id or 'official default'}")
    if not reveal:
        live = redact_secrets(live)
    console.print_json(json.dumps(live, default=str))


@provider_app.command("add")
def provider_add(
    ctx: typer.Context,
    app: AppType = typer.Argument(..., help="App to add the provider to"),
    file: Path = typer.Argument(..., help="Provider definition (YAML or JSON)"),
    switch: bool = typer.Option(False, "--switch", "-s", help="Switch to it right away"),
) -> None:
    """Add a provider from a definition file.

    Examples:
        codewith provider add claude ./acme.yaml
        codewith provider add codex ./relay.json --switch
    """
    runtime = get_runtime(ctx)
    provider = load_provider_file(file)
    with handle_errors():
        runtime.providers.add(app, provider)
        print_success(SUCCESS_MESSAGES["provider_added"].format(app=app.value, provider_id=provider.id))
        if switch:
            _report_switch(runtime.providers.switch(app, provider.id))


@provider_app.command("edit")
def provider_edit(
    ctx: typer.Context,
    app: AppType = typer.Argument(..., help="App the provider belongs to"),
    file: Path = typer.Argument(..., help="New provider definition (YAML or JSON)"),
) -> None:
    """Replace a provider with the definition in FILE (matched by id).

    Editing the active provider rewrites the live config files.
    """
    runtime = get_runtime(ctx)
    provider = load_provider_file(file)
    with handle_errors():
        result = runtime.providers.edit(app, provider)
    print_success(SUCCESS_MESSAGES["provider_updated"].format(app=app.value, provider_id=provider.id))
    if result is not None:
        _report_switch(result)


@provider_app.command("remove")
def provider_remove(
    ctx: typer.Context,
    app: AppType = typer.Argument(..., help="App the provider belongs to"),
    provider_id: str = typer.Argument(..., help="Provider id"),
) -> None:
    """Remove a provider that is not currently selected."""
    runtime = get_runtime(ctx)
    with handle_errors():
        runtime.providers.remove(app, provider_id)
    print_success(SUCCESS_MESSAGES["provider_removed"].format(app=app.value, provider_id=provider_id))


@provider_app.command("switch")
def provider_switch(
    ctx: typer.Context,
    app: AppType = typer.Argument(..., help="App to switch"),
    provider_id: str | None = typer.Argument(None, help="Provider id (omit with --official)"),
    official: bool = typer.Option(False, "--official", help="Select the official default"),
) -> None:
    """Make a provider active and rewrite the app's live config files."""
    if provider_id is None and not official:
        raise typer.BadParameter("give a provider id or --official")
    runtime = get_runtime(ctx)
    with handle_errors():
        result = runtime.providers.switch(app, None if official else provider_id)
    _report_switch(result)
