"""Path constants and resolution for codewith.

This module defines where codewith keeps its own data (the SSOT document,
legacy files, logs) and where the external tools keep their live config.
All locations are relative to a home directory so tests can point the whole
layout at a temporary directory.
"""

from dataclasses import dataclass
from pathlib import Path

from codewith.models.enums import AppType

# =============================================================================
# codewith data directory
# =============================================================================

DATA_DIR = ".codewith"
SSOT_FILENAME = "config.json"
LOCK_SUFFIX = ".lock"
CORRUPT_SUFFIX = ".corrupt"
LEGACY_SETTINGS_FILENAME = "settings.json"
LOGS_DIR = "logs"
LOG_FILENAME = "codewith.log"

# Suffix appended to legacy files once their content has been imported
MIGRATED_SUFFIX = ".migrated"

# =============================================================================
# Live config locations of the external tools
# =============================================================================

CLAUDE_DIR = ".claude"
CLAUDE_SETTINGS_FILENAME = "settings.json"
CLAUDE_PLUGIN_FILENAME = "config.json"
CLAUDE_COPY_PREFIX = "settings-"
CLAUDE_COPY_SUFFIX = ".json"

CODEX_DIR = ".codex"
CODEX_AUTH_FILENAME = "auth.json"
CODEX_CONFIG_FILENAME = "config.toml"
CODEX_AUTH_COPY_PREFIX = "auth-"
CODEX_AUTH_COPY_SUFFIX = ".json"
CODEX_CONFIG_COPY_PREFIX = "config-"
CODEX_CONFIG_COPY_SUFFIX = ".toml"

GEMINI_DIR = ".gemini"
GEMINI_ENV_FILENAME = ".env"
GEMINI_COPY_PREFIX = ".env-"


@dataclass(frozen=True)
class CodewithPaths:
    """Resolved file locations rooted at a home directory."""

    home: Path

    @classmethod
    def from_home(cls, home: Path | None = None) -> "CodewithPaths":
        return cls(home=(home or Path.home()).expanduser())

    # -- codewith's own files -------------------------------------------------

    @property
    def data_dir(self) -> Path:
        return self.home / DATA_DIR

    @property
    def ssot_file(self) -> Path:
        return self.data_dir / SSOT_FILENAME

    @property
    def lock_file(self) -> Path:
        return self.data_dir / (SSOT_FILENAME + LOCK_SUFFIX)

    @property
    def log_file(self) -> Path:
        return self.data_dir / LOGS_DIR / LOG_FILENAME

    def legacy_settings_file(self, app: AppType) -> Path:
        """Per-app provider-set file written by older releases."""
        return self.data_dir / app.value / LEGACY_SETTINGS_FILENAME

    # -- live tool config -----------------------------------------------------

    def app_dir(self, app: AppType) -> Path:
        return self.home / {
            AppType.CLAUDE: CLAUDE_DIR,
            AppType.CODEX: CODEX_DIR,
            AppType.GEMINI: GEMINI_DIR,
        }[app]

    @property
    def claude_settings(self) -> Path:
        return self.home / CLAUDE_DIR / CLAUDE_SETTINGS_FILENAME

    @property
    def claude_plugin_config(self) -> Path:
        return self.home / CLAUDE_DIR / CLAUDE_PLUGIN_FILENAME

    @property
    def codex_auth(self) -> Path:
        return self.home / CODEX_DIR / CODEX_AUTH_FILENAME

    @property
    def codex_config(self) -> Path:
        return self.home / CODEX_DIR / CODEX_CONFIG_FILENAME

    @property
    def gemini_env(self) -> Path:
        return self.home / GEMINI_DIR / GEMINI_ENV_FILENAME
