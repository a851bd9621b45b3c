"""Legacy configuration import."""

import typer

from codewith.commands.common import get_runtime, handle_errors
from codewith.config.messages import SUCCESS_MESSAGES, WARNING_MESSAGES
from codewith.utils import print_info, print_success, print_warning


def migrate_command(ctx: typer.Context) -> None:
    """Import legacy per-app provider files into the config store (runs once)."""
    runtime = get_runtime(ctx, migrate=False)
    with handle_errors():
        result = runtime.startup()

    if result.already_migrated:
        print_info(SUCCESS_MESSAGES["already_migrated"])
        return

    print_success(SUCCESS_MESSAGES["migrated"].format(count=result.imported_count))
    for app, provider_ids in result.imported.items():
        print_info(f"  {app.value}: {', '.join(provider_ids)}")
    for app in result.skipped_apps:
        print_info(f"  {app.value}: already has providers, left as is")
    if result.errors:
        print_warning(WARNING_MESSAGES["migration_errors"].format(count=len(result.errors)))
        for path, message in result.errors:
            print_warning(f"  {path}: {message}")
