"""Enum types for codewith.

Using enums instead of string constants provides:
- IDE autocomplete and type checking
- Iteration over valid values
- Clear documentation of allowed values
"""

from enum import Enum


class AppType(str, Enum):
    """External AI coding tools whose config codewith manages."""

    CLAUDE = "claude"
    CODEX = "codex"
    GEMINI = "gemini"

    @classmethod
    def values(cls) -> list[str]:
        """Return list of all app keys."""
        return [a.value for a in cls]


class ProviderCategory(str, Enum):
    """Provider categories.

    Only OFFICIAL changes behaviour (the Claude plugin file is left alone).
    """

    OFFICIAL = "official"
    CN_OFFICIAL = "cn_official"
    AGGREGATOR = "aggregator"
    THIRD_PARTY = "third_party"
    CUSTOM = "custom"


class PluginSyncAction(str, Enum):
    """What to do with the Claude plugin integration file."""

    CLEAR = "clear"
    NOOP = "noop"
    WRITE = "write"


class ReconcilerState(str, Enum):
    """Device state relative to the admin override stream."""

    UNSYNCED = "unsynced"
    SYNCED = "synced"
    STALE = "stale"
