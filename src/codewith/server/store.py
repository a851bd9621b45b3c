"""SQLite-backed storage for the admin service.

Thread-safe: each thread gets its own connection. Every write runs in its
own transaction, and batch pushes use one transaction per device so a
failure on one device never rolls back another.
"""

import json
import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from codewith.constants import ADMIN_SNAPSHOT_HISTORY_LIMIT
from codewith.models import AdminOverride
from codewith.server.schema import MIGRATIONS, SCHEMA_SQL, SCHEMA_VERSION

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


class AdminStore:
    """Devices, snapshot history and admin overrides."""

    def __init__(self, db_path: Path):
        """Initialize the admin store.

        Args:
            db_path: Path to SQLite database file.
        """
        self.db_path = db_path
        self._local = threading.local()
        self._ensure_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self._local.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                timeout=30.0,
            )
            self._local.conn.row_factory = sqlite3.Row
            self._local.conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn.execute("PRAGMA synchronous=NORMAL")
            self._local.conn.execute("PRAGMA foreign_keys = ON")
        conn: sqlite3.Connection = self._local.conn
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Database transaction error: {e}")
            raise

    def _ensure_schema(self) -> None:
        """Create the schema on a fresh database, or upgrade an older one."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._transaction() as conn:
            try:
                row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
                current_version = row[0] if row and row[0] is not None else 0
            except sqlite3.OperationalError:
                current_version = 0

            if current_version >= SCHEMA_VERSION:
                return

            if current_version == 0:
                conn.executescript(SCHEMA_SQL)
            else:
                for version in range(current_version + 1, SCHEMA_VERSION + 1):
                    if version in MIGRATIONS:
                        conn.executescript(MIGRATIONS[version])

            conn.execute("DELETE FROM schema_version")
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            logger.info(f"Admin store schema initialized (v{SCHEMA_VERSION})")

    def close(self) -> None:
        """Close this thread's connection."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    # =========================================================================
    # Device-facing operations
    # =========================================================================

    def record_snapshot(
        self,
        device_id: str,
        snapshot: dict[str, Any],
        app_version: str | None = None,
        ip: str | None = None,
    ) -> None:
        """Upsert the device row and append a snapshot, in one transaction."""
        now = _now()
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO devices (device_id, fingerprint_hash, last_seen, last_ip,
                                     app_version, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (device_id) DO UPDATE SET
                    last_seen = excluded.last_seen,
                    last_ip = excluded.last_ip,
                    app_version = excluded.app_version
                """,
                (device_id, device_id, now, ip, app_version, now),
            )
            conn.execute(
                "INSERT INTO config_snapshots (device_id, snapshot, created_at) VALUES (?, ?, ?)",
                (device_id, json.dumps(snapshot), now),
            )
        logger.debug(f"Stored snapshot for device {device_id}")

    def get_override(self, device_id: str) -> AdminOverride | None:
        """Return the latest admin override for a device, if any."""
        row = (
            self._get_connection()
            .execute(
                "SELECT version, config, updated_at FROM admin_configs WHERE device_id = ?",
                (device_id,),
            )
            .fetchone()
        )
        if row is None:
            return None
        return AdminOverride(
            version=row["version"],
            config=json.loads(row["config"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # =========================================================================
    # Admin operations
    # =========================================================================

    _DEVICE_SUMMARY_SQL = """
        SELECT d.*,
               COUNT(s.id) AS snapshot_count,
               MAX(s.created_at) AS last_snapshot_at,
               a.version AS admin_version,
               a.updated_at AS admin_updated_at
        FROM devices d
        LEFT JOIN config_snapshots s ON s.device_id = d.device_id
        LEFT JOIN admin_configs a ON a.device_id = d.device_id
    """

    def list_devices(self) -> list[dict[str, Any]]:
        """All devices, most recently seen first, with snapshot counts."""
        rows = (
            self._get_connection()
            .execute(
                self._DEVICE_SUMMARY_SQL + " GROUP BY d.device_id ORDER BY d.last_seen DESC"
            )
            .fetchall()
        )
        return [dict(row) for row in rows]

    def get_device(self, device_id: str) -> dict[str, Any] | None:
        row = (
            self._get_connection()
            .execute(
                self._DEVICE_SUMMARY_SQL + " WHERE d.device_id = ? GROUP BY d.device_id",
                (device_id,),
            )
            .fetchone()
        )
        return dict(row) if row else None

    def list_snapshots(
        self, device_id: str, limit: int = ADMIN_SNAPSHOT_HISTORY_LIMIT
    ) -> list[dict[str, Any]]:
        """Latest snapshots of a device, newest first."""
        rows = (
            self._get_connection()
            .execute(
                """
                SELECT id, snapshot, created_at FROM config_snapshots
                WHERE device_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (device_id, limit),
            )
            .fetchall()
        )
        return [
            {"id": row["id"], "snapshot": json.loads(row["snapshot"]), "created_at": row["created_at"]}
            for row in rows
        ]

    def push_config(self, device_id: str, config: Any) -> int | None:
        """Write a new override for one device.

        The first push gets version 1; every later push increments it.

        Returns:
            The new version, or None if the device is unknown.
        """
        now = _now()
        with self._transaction() as conn:
            exists = conn.execute(
                "SELECT 1 FROM devices WHERE device_id = ?", (device_id,)
            ).fetchone()
            if exists is None:
                return None
            conn.execute(
                """
                INSERT INTO admin_configs (device_id, version, config, updated_at)
                VALUES (?, 1, ?, ?)
                ON CONFLICT (device_id) DO UPDATE SET
                    version = admin_configs.version + 1,
                    config = excluded.config,
                    updated_at = excluded.updated_at
                """,
                (device_id, json.dumps(config), now),
            )
            row = conn.execute(
                "SELECT version FROM admin_configs WHERE device_id = ?", (device_id,)
            ).fetchone()
        version: int = row["version"]
        logger.info(f"Admin override v{version} stored for device {device_id}")
        return version

    def push_config_batch(self, device_ids: list[str], config: Any) -> int:
        """Push the same override to many devices.

        Each device is written in its own transaction. Unknown devices are
        skipped and a database error on one device is logged without
        affecting the others.

        Returns:
            Number of devices that received a new override.
        """
        updated = 0
        for device_id in dict.fromkeys(device_ids):
            try:
                if self.push_config(device_id, config) is not None:
                    updated += 1
                else:
                    logger.info(f"Batch push: skipping unknown device {device_id}")
            except sqlite3.Error as e:
                logger.warning(f"Batch push: device {device_id} failed: {e}")
        return updated
