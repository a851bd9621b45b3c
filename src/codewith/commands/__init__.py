"""CLI commands for codewith."""

from codewith.commands.migrate_cmd import migrate_command
from codewith.commands.plugin_cmd import plugin_app
from codewith.commands.provider_cmd import provider_app
from codewith.commands.server_cmd import server_app
from codewith.commands.store_cmd import store_app
from codewith.commands.sync_cmd import sync_app

__all__ = [
    "migrate_command",
    "plugin_app",
    "provider_app",
    "server_app",
    "store_app",
    "sync_app",
]
