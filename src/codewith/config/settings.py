"""Runtime configuration settings for codewith.

This module uses Pydantic Settings for configuration that can be
overridden via environment variables. This provides:
- Type validation
- Environment variable support (CODEWITH_ prefix)
- Default values
- Easy testing via dependency injection
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from codewith.constants import (
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_MAX_SIZE_MB,
    DEFAULT_MAX_REQUEST_BYTES,
    DEFAULT_SERVER_HOST,
    DEFAULT_SERVER_PORT,
    DEFAULT_STARTUP_SYNC_DELAY_SECONDS,
    DEFAULT_SYNC_CRON,
    DEFAULT_SYNC_JITTER_SECONDS,
    DEFAULT_SYNC_TIMEOUT_SECONDS,
    DEFAULT_SYNC_TIMEZONE,
)


class ClientSettings(BaseSettings):
    """Local client settings.

    Can be overridden via environment variables with CODEWITH_ prefix.
    """

    model_config = SettingsConfigDict(env_prefix="CODEWITH_")

    home: Path | None = Field(
        default=None,
        description="Home directory the config layout is resolved against",
    )
    log_level: str = Field(default="WARNING", description="Log level for the CLI")
    log_file_enabled: bool = Field(
        default=True,
        description="Also write logs to ~/.codewith/logs/codewith.log",
    )
    log_max_size_mb: int = Field(default=DEFAULT_LOG_MAX_SIZE_MB)
    log_backup_count: int = Field(default=DEFAULT_LOG_BACKUP_COUNT)


class SyncSettings(BaseSettings):
    """Device sync settings.

    Sync is disabled unless both ``url`` and ``token`` are set.
    Can be overridden via environment variables with CODEWITH_SYNC_ prefix.
    """

    model_config = SettingsConfigDict(env_prefix="CODEWITH_SYNC_")

    url: str | None = Field(default=None, description="Base URL of the admin service")
    token: str | None = Field(default=None, description="Shared device sync token")
    cron: str = Field(default=DEFAULT_SYNC_CRON, description="Cron expression for scheduled sync")
    timezone: str = Field(
        default=DEFAULT_SYNC_TIMEZONE,
        description="Time zone the cron expression is evaluated in",
    )
    jitter_seconds: int = Field(
        default=DEFAULT_SYNC_JITTER_SECONDS,
        ge=0,
        description="Random delay added to each scheduled run",
    )
    timeout_seconds: float = Field(default=DEFAULT_SYNC_TIMEOUT_SECONDS, gt=0)
    on_start: bool = Field(default=False, description="Run one sync shortly after startup")
    startup_delay_seconds: int = Field(default=DEFAULT_STARTUP_SYNC_DELAY_SECONDS, ge=0)
    redact_secrets: bool = Field(
        default=False,
        description="Mask credential fields before uploading snapshots",
    )

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.token)


class ServerSettings(BaseSettings):
    """Admin service settings.

    Can be overridden via environment variables with CODEWITH_SERVER_ prefix.
    """

    model_config = SettingsConfigDict(env_prefix="CODEWITH_SERVER_")

    database_path: Path = Field(default=Path("codewith-admin.db"))
    sync_token: str | None = Field(default=None, description="Token devices present")
    admin_token: str | None = Field(default=None, description="Token admin clients present")
    admin_basic_user: str | None = Field(default=None)
    admin_basic_password: str | None = Field(default=None)
    trust_proxy: bool = Field(
        default=False,
        description="Take the client IP from X-Forwarded-For",
    )
    host: str = Field(default=DEFAULT_SERVER_HOST)
    port: int = Field(default=DEFAULT_SERVER_PORT)
    max_request_bytes: int = Field(default=DEFAULT_MAX_REQUEST_BYTES, gt=0)

    @property
    def basic_auth_enabled(self) -> bool:
        return bool(self.admin_basic_user and self.admin_basic_password)
