"""UI messages and strings for codewith.

This module consolidates all user-facing messages printed by the CLI.
"""

# =============================================================================
# Project Metadata
# =============================================================================

PROJECT_TAGLINE = "One switch for every AI coding tool on this machine"

HELP_TEXT = f"""
[bold cyan]codewith[/bold cyan] - {PROJECT_TAGLINE}

[bold]Commands:[/bold]
  [cyan]provider[/cyan]    List, add, edit, remove and switch providers
  [cyan]plugin[/cyan]      Toggle the Claude plugin integration
  [cyan]sync[/cyan]        Push snapshots and pull admin overrides
  [cyan]store[/cyan]       Inspect or recover the local config store
  [cyan]server[/cyan]      Run the admin service
  [cyan]migrate[/cyan]     Import legacy per-app configuration
  [cyan]version[/cyan]     Show version information
"""

# =============================================================================
# Success Messages
# =============================================================================

SUCCESS_MESSAGES = {
    "switched": "Switched {app} to provider '{provider_id}'",
    "switched_official": "Switched {app} to the official default",
    "provider_added": "Added provider '{provider_id}' to {app}",
    "provider_updated": "Updated provider '{provider_id}' in {app}",
    "provider_removed": "Removed provider '{provider_id}' from {app}",
    "provider_exported": "Exported provider '{provider_id}' to {path}",
    "plugin_enabled": "Claude plugin integration enabled",
    "plugin_disabled": "Claude plugin integration disabled",
    "migrated": "Imported {count} provider(s) from legacy files",
    "already_migrated": "Legacy configuration was already imported",
    "sync_done": "Sync complete (admin version: {version})",
    "store_reset": "Store reset. The unreadable file was kept at {path}",
}

# =============================================================================
# Error Messages
# =============================================================================

ERROR_MESSAGES = {
    "generic_error": "An error occurred: {error}",
    "corrupt_store": "Config store is unreadable: {path}",
    "corrupt_store_hint": "Run 'codewith store reset' to keep a copy and start fresh.",
    "provider_not_found": "Provider '{provider_id}' not found in {app}",
    "provider_exists": "Provider '{provider_id}' already exists in {app}",
    "provider_active": "Provider '{provider_id}' is active in {app}; switch away first",
    "partial_write": "Live config for {app} was only partly written; run the switch again",
    "invalid_provider_file": "Could not read provider definition: {path}",
    "sync_not_configured": "Sync is not configured (set CODEWITH_SYNC_URL and CODEWITH_SYNC_TOKEN)",
    "sync_failed": "Sync failed: {error}",
    "store_not_corrupt": "Config store is readable; nothing to reset",
}

# =============================================================================
# Info Messages
# =============================================================================

INFO_MESSAGES = {
    "no_providers": "No providers configured for {app}",
    "sync_skipped": "Sync skipped: {reason}",
    "sync_no_override": "No new admin override",
    "daemon_started": "Sync daemon running (next run in {seconds:.0f}s). Press Ctrl+C to stop.",
    "server_starting": "Starting admin service on http://{host}:{port}",
}

WARNING_MESSAGES = {
    "migration_errors": "{count} legacy file(s) could not be read and were left in place",
}

# =============================================================================
# UI Styling
# =============================================================================

COLORS = {
    "primary": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "blue",
    "muted": "dim",
}

PROGRESS_CHARS = {
    "complete": "✓",
    "incomplete": "○",
    "current": "●",
    "error": "✗",
}
