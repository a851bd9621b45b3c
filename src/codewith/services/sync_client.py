"""Device side of the sync protocol.

One sync cycle:

1. POST the SSOT snapshot and device metadata to ``/sync/snapshot``.
2. GET ``/sync/override?deviceId=..&sinceVersion=..`` (204 means nothing new).
3. Hand a newer override to the Reconciler.
4. Record ``lastSyncAt`` / ``lastSyncError`` in the SSOT.

Network failures and rejected overrides are logged and reported in the
returned SyncOutcome. They never raise out of the background loop; the next
scheduled cycle simply tries again.

Scheduling follows a cron expression in a fixed time zone (daily 04:00
Asia/Shanghai by default) plus random jitter, so a fleet does not hit the
admin service at the same second.
"""

from __future__ import annotations

import asyncio
import logging
import random
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx
from croniter import croniter
from pydantic import ValidationError as PydanticValidationError

from codewith.config.settings import SyncSettings
from codewith.constants import (
    AUTH_SCHEME_BEARER,
    SYNC_ERROR_MAX_LENGTH,
    SYNC_OVERRIDE_PATH,
    SYNC_SNAPSHOT_PATH,
    VERSION,
)
from codewith.exceptions import (
    CodewithError,
    ConfigurationError,
    InvalidOverrideError,
    MaterializationError,
    SyncError,
)
from codewith.models import AdminOverride, SnapshotAck, SnapshotUpload, SsotDocument
from codewith.services.config_store import ConfigStore
from codewith.services.device_identity import get_device_id
from codewith.services.reconciler import ReconcileResult, Reconciler
from codewith.utils.redact import redact_secrets

logger = logging.getLogger(__name__)


@dataclass
class SyncOutcome:
    """Result of one sync cycle."""

    ok: bool
    skipped: bool = False
    error: str | None = None
    server_version: int | None = None
    reconcile: ReconcileResult | None = None


class SyncClient:
    """Pushes snapshots to and pulls overrides from the admin service.

    Example usage:
        client = SyncClient(store, reconciler, SyncSettings())
        outcome = client.run_once()
    """

    def __init__(
        self,
        store: ConfigStore,
        reconciler: Reconciler,
        settings: SyncSettings,
        transport: httpx.BaseTransport | None = None,
        app_version: str = VERSION,
    ):
        """Initialize the sync client.

        Args:
            store: Local SSOT store.
            reconciler: Applies pulled overrides.
            settings: URL, token and schedule.
            transport: Optional httpx transport (tests use httpx.MockTransport).
            app_version: Version reported to the admin service.

        Raises:
            ConfigurationError: If the cron expression or time zone is invalid.
        """
        self.store = store
        self.reconciler = reconciler
        self.settings = settings
        self.transport = transport
        self.app_version = app_version

        try:
            self._tz = ZoneInfo(settings.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown time zone: {settings.timezone}", key="timezone") from e
        try:
            croniter(settings.cron)
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"Invalid cron expression: {settings.cron}", key="cron") from e

        self._running = False
        self._loop_task: asyncio.Task[None] | None = None
        self._stop_event = threading.Event()

    # =========================================================================
    # One cycle
    # =========================================================================

    def build_upload(self) -> SnapshotUpload:
        """Collect the snapshot and metadata sent to the admin service."""
        device_id = get_device_id(self.store)
        doc = self.store.load()
        snapshot = doc.to_snapshot()
        if self.settings.redact_secrets:
            snapshot = redact_secrets(snapshot)
        return SnapshotUpload(
            device_id=device_id,
            app_version=self.app_version,
            applied_admin_version=doc.sync.applied_admin_version,
            snapshot=snapshot,
            client_time=datetime.now(UTC),
        )

    def run_once(self) -> SyncOutcome:
        """Run one push/pull/reconcile cycle.

        Returns:
            SyncOutcome; ``ok`` is False when the cycle failed and will be
            retried on the next schedule.

        Raises:
            CorruptStoreError: If the local SSOT cannot be read.
        """
        if not self.settings.enabled:
            logger.debug("Sync not configured; skipping")
            return SyncOutcome(ok=True, skipped=True, error="sync not configured")

        upload = self.build_upload()
        try:
            ack, override = self._exchange(upload)
        except (httpx.HTTPError, SyncError) as e:
            message = f"{type(e).__name__}: {e}"
            logger.warning(f"Sync with admin service failed: {message}")
            self._record(message)
            return SyncOutcome(ok=False, error=message)
        except InvalidOverrideError as e:
            logger.warning(f"Admin override rejected: {e}")
            self._record(str(e))
            return SyncOutcome(ok=False, error=str(e))

        outcome = SyncOutcome(ok=True, server_version=ack.override_version)
        if ack.override_version is not None:
            self.reconciler.note_seen(ack.override_version)

        if override is not None:
            try:
                outcome.reconcile = self.reconciler.apply(override)
            except (InvalidOverrideError, MaterializationError) as e:
                logger.warning(f"Admin override v{override.version} not applied: {e}")
                self._record(str(e))
                return SyncOutcome(ok=False, error=str(e), server_version=ack.override_version)

        self._record(None)
        return outcome

    def _exchange(self, upload: SnapshotUpload) -> tuple[SnapshotAck, AdminOverride | None]:
        headers = {"Authorization": f"{AUTH_SCHEME_BEARER} {self.settings.token}"}
        with httpx.Client(
            base_url=self.settings.url or "",
            headers=headers,
            timeout=self.settings.timeout_seconds,
            transport=self.transport,
        ) as client:
            response = client.post(SYNC_SNAPSHOT_PATH, json=upload.to_json_dict())
            self._check(response)
            try:
                ack = SnapshotAck.model_validate(response.json())
            except (ValueError, PydanticValidationError):
                raise SyncError("Malformed snapshot response", url=str(response.url)) from None

            response = client.get(
                SYNC_OVERRIDE_PATH,
                params={
                    "deviceId": upload.device_id,
                    "sinceVersion": upload.applied_admin_version or 0,
                },
            )
            if response.status_code == httpx.codes.NO_CONTENT:
                return ack, None
            self._check(response)
            try:
                override = AdminOverride.model_validate(response.json())
            except (ValueError, PydanticValidationError):
                raise InvalidOverrideError(
                    ack.override_version or 0, "malformed override payload"
                ) from None
            return ack, override

    def _check(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        raise SyncError(
            f"Admin service returned HTTP {response.status_code}",
            status_code=response.status_code,
            url=str(response.url),
        )

    def _record(self, error: str | None) -> None:
        def apply(doc: SsotDocument) -> None:
            doc.sync.last_sync_at = datetime.now(UTC)
            doc.sync.last_sync_error = error[:SYNC_ERROR_MAX_LENGTH] if error else None

        try:
            self.store.update(apply)
        except (CodewithError, OSError) as e:
            logger.warning(f"Could not record sync status: {e}")

    # =========================================================================
    # Scheduling
    # =========================================================================

    def next_run_time(self, now: datetime | None = None) -> datetime:
        """Next cron fire time (without jitter) in the configured time zone."""
        base = (now or datetime.now(UTC)).astimezone(self._tz)
        next_time: datetime = croniter(self.settings.cron, base).get_next(datetime)
        return next_time

    def next_run_delay(self, now: datetime | None = None) -> float:
        """Seconds until the next scheduled run, jitter included."""
        base = (now or datetime.now(UTC)).astimezone(self._tz)
        delay = (self.next_run_time(base) - base).total_seconds()
        if self.settings.jitter_seconds:
            delay += random.uniform(0, self.settings.jitter_seconds)
        return max(delay, 0.0)

    async def _wait(self, seconds: float) -> bool:
        """Sleep for ``seconds`` unless stopped first. Returns True when stopped."""
        if seconds <= 0:
            return self._stop_event.is_set()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._stop_event.wait, seconds),
                timeout=seconds,
            )
        except TimeoutError:
            # Normal timeout, time for the next cycle
            return False

    async def _run_cycle(self) -> None:
        try:
            outcome = await asyncio.to_thread(self.run_once)
        except (CodewithError, OSError) as e:
            logger.error(f"Sync cycle failed: {e}")
            return
        if outcome.ok and not outcome.skipped:
            logger.info(f"Sync cycle done (server version: {outcome.server_version})")

    async def _run_loop(self) -> None:
        logger.info(f"Sync loop started (cron='{self.settings.cron}', tz={self.settings.timezone})")

        if self.settings.on_start:
            if await self._wait(self.settings.startup_delay_seconds):
                logger.info("Sync loop stopped")
                return
            await self._run_cycle()

        while self._running:
            delay = self.next_run_delay()
            logger.debug(f"Next sync in {delay:.0f}s")
            if await self._wait(delay):
                break
            await self._run_cycle()

        logger.info("Sync loop stopped")

    def start(self) -> None:
        """Start the background sync loop on the running event loop."""
        if self._running:
            logger.warning("Sync loop already running")
            return
        if not self.settings.enabled:
            logger.info("Sync not configured; background loop not started")
            return

        self._running = True
        self._stop_event.clear()
        try:
            loop = asyncio.get_running_loop()
            self._loop_task = loop.create_task(self._run_loop())
        except RuntimeError:
            self._running = False
            logger.warning("No running event loop - sync loop not started")

    def stop(self) -> None:
        """Signal the loop to stop; an in-flight cycle finishes first."""
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        self._loop_task = None

    async def run_forever(self) -> None:
        """Start the loop and wait until it stops (used by ``codewith sync daemon``)."""
        self.start()
        task = self._loop_task
        if task is not None:
            await task
