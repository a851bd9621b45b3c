"""The single-source-of-truth document persisted by ConfigStore."""

from datetime import datetime
from typing import Any

from pydantic import Field

from codewith.constants import SSOT_SCHEMA_VERSION
from codewith.models.base import CamelModel
from codewith.models.enums import AppType
from codewith.models.provider import AppConfig, Provider


def _empty_apps() -> dict[AppType, AppConfig]:
    return {app: AppConfig() for app in AppType}


class DeviceSettings(CamelModel):
    """User toggles that live next to the provider sets."""

    claude_plugin_integration: bool = False


class SyncState(CamelModel):
    """Device-side record of the admin override stream.

    ``applied_admin_version`` lives in the same document as the apps so an
    override merge and its version bump are saved together.
    """

    device_id: str | None = None
    applied_admin_version: int | None = None
    last_seen_admin_version: int | None = None
    last_sync_at: datetime | None = None
    last_sync_error: str | None = None
    # Apps whose live files still have to be rewritten for the merged override
    pending_apps: list[AppType] = Field(default_factory=list)


class SsotDocument(CamelModel):
    """All provider sets of this device plus migration and sync state."""

    schema_version: int = SSOT_SCHEMA_VERSION
    migrated: bool = False
    apps: dict[AppType, AppConfig] = Field(default_factory=_empty_apps)
    settings: DeviceSettings = Field(default_factory=DeviceSettings)
    sync: SyncState = Field(default_factory=SyncState)
    # Provider each app's live files were last written from (None: official
    # default). Apps missing here have live files matching their selection.
    materialized: dict[AppType, Provider | None] = Field(default_factory=dict)

    def app(self, app: AppType) -> AppConfig:
        """Return the config of an app, creating an empty one if missing."""
        if app not in self.apps:
            self.apps[app] = AppConfig()
        return self.apps[app]

    def last_materialized(self, app: AppType) -> Provider | None:
        """Return the provider whose fields are in the app's live files right now."""
        if app in self.materialized:
            return self.materialized[app]
        return self.app(app).current_provider

    def selection_problems(self) -> dict[AppType, str]:
        problems = {}
        for app, config in self.apps.items():
            problem = config.selection_problem()
            if problem:
                problems[app] = problem
        return problems

    def to_snapshot(self) -> dict[str, Any]:
        """Per-app view uploaded to the admin service; apps without providers are omitted."""
        return {
            app.value: config.to_json_dict()
            for app, config in self.apps.items()
            if config.providers
        }
