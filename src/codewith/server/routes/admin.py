"""Admin routes: device inventory and override pushes.

All routes here require the admin token or HTTP Basic credentials.
"""

import logging
import sqlite3

from fastapi import APIRouter, HTTPException, Request
from pydantic import JsonValue

from codewith.constants import ADMIN_API_PREFIX, ADMIN_SNAPSHOT_HISTORY_LIMIT
from codewith.exceptions import InvalidOverrideError
from codewith.models import AdminOverride
from codewith.server.models import (
    AdminConfigRecord,
    BatchPushRequest,
    BatchPushResponse,
    ConfigPushRequest,
    ConfigPushResponse,
    DeviceDetailResponse,
    DeviceListResponse,
    DeviceSummary,
    SnapshotRecord,
)
from codewith.server.state import get_store
from codewith.services.reconciler import parse_override_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix=ADMIN_API_PREFIX, tags=["admin"])


def _validate_config(config: JsonValue) -> None:
    """Reject payloads devices would refuse anyway."""
    try:
        parse_override_config(AdminOverride(version=1, config=config))
    except InvalidOverrideError as e:
        raise HTTPException(status_code=400, detail=e.reason) from e


@router.get("/devices", response_model=DeviceListResponse)
async def list_devices(request: Request) -> DeviceListResponse:
    """All known devices, most recently seen first."""
    rows = get_store(request).list_devices()
    return DeviceListResponse(devices=[DeviceSummary.model_validate(row) for row in rows])


@router.get("/devices/{device_id}", response_model=DeviceDetailResponse)
async def get_device(request: Request, device_id: str) -> DeviceDetailResponse:
    """One device with its latest snapshots and current override."""
    store = get_store(request)
    device = store.get_device(device_id)
    if device is None:
        raise HTTPException(status_code=404, detail=f"Device not found: {device_id}")

    snapshots = store.list_snapshots(device_id, limit=ADMIN_SNAPSHOT_HISTORY_LIMIT)
    override = store.get_override(device_id)
    return DeviceDetailResponse(
        device=DeviceSummary.model_validate(device),
        snapshots=[SnapshotRecord.model_validate(s) for s in snapshots],
        admin_config=(
            AdminConfigRecord(
                version=override.version,
                config=override.config,
                updated_at=override.updated_at,
            )
            if override
            else None
        ),
    )


@router.post("/devices/config/batch", response_model=BatchPushResponse)
async def push_config_batch(request: Request, body: BatchPushRequest) -> BatchPushResponse:
    """Push one override to many devices; unknown devices are skipped."""
    if not body.device_ids:
        raise HTTPException(status_code=400, detail="deviceIds must not be empty")
    _validate_config(body.config)

    updated = get_store(request).push_config_batch(body.device_ids, body.config)
    logger.info(f"Batch push: {updated}/{len(body.device_ids)} devices updated")
    return BatchPushResponse(ok=True, updated=updated)


@router.post("/devices/{device_id}/config", response_model=ConfigPushResponse)
async def push_config(
    request: Request, device_id: str, body: ConfigPushRequest
) -> ConfigPushResponse:
    """Push an override to one device."""
    _validate_config(body.config)
    try:
        version = get_store(request).push_config(device_id, body.config)
    except sqlite3.Error as e:
        raise HTTPException(status_code=500, detail="Failed to store override") from e
    if version is None:
        raise HTTPException(status_code=404, detail=f"Device not found: {device_id}")
    return ConfigPushResponse(ok=True, version=version)
