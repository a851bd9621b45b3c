"""Decision for the Claude plugin integration file.

| enabled | official | action |
|---------|----------|--------|
| False   | any      | CLEAR  |
| True    | True     | NOOP   |
| True    | False    | WRITE  |
"""

from codewith.models import PluginSyncAction


def resolve_plugin_sync_action(enabled: bool, is_official: bool) -> PluginSyncAction:
    """Decide what to do with ``~/.claude/config.json``.

    Args:
        enabled: The user's "apply to Claude plugin" toggle.
        is_official: Whether the active Claude selection is the official
            default (no provider, or a provider in the official category).

    Returns:
        The action the materializer should take.
    """
    if not enabled:
        return PluginSyncAction.CLEAR
    if is_official:
        return PluginSyncAction.NOOP
    return PluginSyncAction.WRITE
