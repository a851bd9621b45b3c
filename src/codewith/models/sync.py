"""Wire models exchanged between devices and the admin service."""

from datetime import datetime
from typing import Any

from pydantic import Field, JsonValue

from codewith.models.base import CamelModel
from codewith.models.provider import Provider


class AppOverride(CamelModel):
    """Admin-pushed changes for one app.

    ``current_id`` absent keeps the local selection; an explicit null selects
    the official default. ``replace_providers`` swaps in the whole provider set
    instead of replacing only the named entries.
    """

    current_id: str | None = None
    providers: dict[str, Provider] = Field(default_factory=dict)
    replace_providers: bool = False

    @property
    def sets_current(self) -> bool:
        return "current_id" in self.model_fields_set


class AdminOverride(CamelModel):
    """An admin-authored configuration for one device at one version."""

    version: int = Field(ge=1)
    config: JsonValue = None
    updated_at: datetime | None = None


class SnapshotUpload(CamelModel):
    """Body of ``POST /sync/snapshot`` (and of the combined legacy endpoint)."""

    device_id: str = Field(min_length=1)
    app_version: str | None = None
    applied_admin_version: int | None = None
    snapshot: dict[str, Any] = Field(default_factory=dict)
    client_time: datetime | None = None


class SnapshotAck(CamelModel):
    ok: bool = True
    override_version: int | None = None


class DeviceSyncResponse(CamelModel):
    """Response of the combined ``POST /api/v1/devices/sync`` endpoint."""

    ok: bool = True
    server_time: datetime
    admin_config: JsonValue = None
    admin_version: int | None = None
