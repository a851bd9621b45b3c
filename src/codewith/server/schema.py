"""Database schema for the admin store.

Contains schema version and SQL for creating the database schema.
"""

# Schema version for migrations
# v1: devices, config_snapshots, admin_configs
# v2: index on config_snapshots(device_id, created_at) for the detail view
SCHEMA_VERSION = 2

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- One row per device, refreshed on every snapshot upload
CREATE TABLE IF NOT EXISTS devices (
    device_id TEXT PRIMARY KEY,
    fingerprint_hash TEXT NOT NULL,
    last_seen TEXT NOT NULL,
    last_ip TEXT,
    geo_country TEXT,  -- GeoIP lookup is not performed; columns kept for clients
    geo_region TEXT,
    geo_city TEXT,
    app_version TEXT,
    created_at TEXT NOT NULL
);

-- Append-only history of uploaded snapshots
CREATE TABLE IF NOT EXISTS config_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    device_id TEXT NOT NULL REFERENCES devices(device_id) ON DELETE CASCADE,
    snapshot TEXT NOT NULL,  -- JSON
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_config_snapshots_device
    ON config_snapshots(device_id, created_at DESC);

-- Latest admin override per device; version goes up by one on every push
CREATE TABLE IF NOT EXISTS admin_configs (
    device_id TEXT PRIMARY KEY REFERENCES devices(device_id) ON DELETE CASCADE,
    version INTEGER NOT NULL,
    config TEXT NOT NULL,  -- JSON
    updated_at TEXT NOT NULL
);
"""

# Statements applied to databases created at an older version, keyed by the
# version they upgrade to
MIGRATIONS: dict[int, str] = {
    2: """
CREATE INDEX IF NOT EXISTS idx_config_snapshots_device
    ON config_snapshots(device_id, created_at DESC);
""",
}
