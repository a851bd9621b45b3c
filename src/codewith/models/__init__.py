"""Data models for codewith."""

from codewith.models.document import DeviceSettings, SsotDocument, SyncState
from codewith.models.enums import AppType, PluginSyncAction, ProviderCategory, ReconcilerState
from codewith.models.provider import AppConfig, Provider
from codewith.models.sync import (
    AdminOverride,
    AppOverride,
    DeviceSyncResponse,
    SnapshotAck,
    SnapshotUpload,
)

__all__ = [
    "AdminOverride",
    "AppConfig",
    "AppOverride",
    "AppType",
    "DeviceSettings",
    "DeviceSyncResponse",
    "PluginSyncAction",
    "Provider",
    "ProviderCategory",
    "ReconcilerState",
    "SnapshotAck",
    "SnapshotUpload",
    "SsotDocument",
    "SyncState",
]
