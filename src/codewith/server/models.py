"""Request and response models for the admin API."""

from datetime import datetime
from typing import Any

from pydantic import Field, JsonValue

from codewith.models.base import CamelModel


class DeviceSummary(CamelModel):
    """One row of the device list."""

    device_id: str
    fingerprint_hash: str
    last_seen: datetime
    last_ip: str | None = None
    geo_country: str | None = None
    geo_region: str | None = None
    geo_city: str | None = None
    app_version: str | None = None
    created_at: datetime
    snapshot_count: int = 0
    last_snapshot_at: datetime | None = None
    admin_version: int | None = None
    admin_updated_at: datetime | None = None


class DeviceListResponse(CamelModel):
    devices: list[DeviceSummary]


class SnapshotRecord(CamelModel):
    id: int
    snapshot: dict[str, Any]
    created_at: datetime


class AdminConfigRecord(CamelModel):
    version: int
    config: JsonValue = None
    updated_at: datetime | None = None


class DeviceDetailResponse(CamelModel):
    """Device row, its latest snapshots (newest first) and current override."""

    device: DeviceSummary
    snapshots: list[SnapshotRecord] = Field(default_factory=list)
    admin_config: AdminConfigRecord | None = None


class ConfigPushRequest(CamelModel):
    """Body of a single-device push: the override payload (``{app: section}``)."""

    config: JsonValue


class ConfigPushResponse(CamelModel):
    ok: bool = True
    version: int


class BatchPushRequest(CamelModel):
    device_ids: list[str]
    config: JsonValue


class BatchPushResponse(CamelModel):
    ok: bool = True
    updated: int
