"""Device-facing sync routes.

Devices upload a snapshot of their SSOT and pull the latest admin override.
All routes here require the sync token (see TokenAuthMiddleware).
"""

import logging
import sqlite3
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse

from codewith.constants import SYNC_LEGACY_PATH, SYNC_OVERRIDE_PATH, SYNC_SNAPSHOT_PATH
from codewith.models import DeviceSyncResponse, SnapshotAck, SnapshotUpload
from codewith.server.state import client_ip, get_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"])


def _store_upload(request: Request, upload: SnapshotUpload) -> None:
    try:
        get_store(request).record_snapshot(
            upload.device_id,
            upload.snapshot,
            app_version=upload.app_version,
            ip=client_ip(request),
        )
    except sqlite3.Error as e:
        logger.error(f"Failed to store snapshot for {upload.device_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to store snapshot") from e


@router.post(SYNC_SNAPSHOT_PATH, response_model=SnapshotAck)
async def upload_snapshot(request: Request, upload: SnapshotUpload) -> SnapshotAck:
    """Record the device and append its snapshot."""
    _store_upload(request, upload)
    override = get_store(request).get_override(upload.device_id)
    return SnapshotAck(ok=True, override_version=override.version if override else None)


@router.get(SYNC_OVERRIDE_PATH)
async def get_override(
    request: Request,
    device_id: str = Query(alias="deviceId", min_length=1),
    since_version: int = Query(default=0, alias="sinceVersion", ge=0),
) -> Response:
    """Latest override for a device, or 204 if there is none newer than ``sinceVersion``."""
    override = get_store(request).get_override(device_id)
    if override is None or override.version <= since_version:
        return Response(status_code=204)
    return JSONResponse(override.to_json_dict())


@router.post(SYNC_LEGACY_PATH, response_model=DeviceSyncResponse)
async def device_sync(request: Request, upload: SnapshotUpload) -> DeviceSyncResponse:
    """Combined upload-and-fetch endpoint used by older clients."""
    _store_upload(request, upload)
    override = get_store(request).get_override(upload.device_id)
    return DeviceSyncResponse(
        ok=True,
        server_time=datetime.now(UTC),
        admin_config=override.config if override else None,
        admin_version=override.version if override else None,
    )
