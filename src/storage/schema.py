"""Database schema for readings, thresholds, notifications and principals."""

import logging

from src.storage.database import Database

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
-- Principals are managed by the identity service; we only read them.
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    email TEXT,
    role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS readings (
    reading_id TEXT PRIMARY KEY,
    sensor_type TEXT NOT NULL CHECK (sensor_type IN ('gas', 'temperature', 'sound')),
    value DOUBLE PRECISION NOT NULL,
    timestamp TIMESTAMPTZ NOT NULL,
    source TEXT NOT NULL DEFAULT 'api',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_readings_timestamp ON readings (timestamp DESC);
CREATE INDEX IF NOT EXISTS idx_readings_type_timestamp ON readings (sensor_type, timestamp DESC);

-- Append-only: the most recent row is the active configuration.
CREATE TABLE IF NOT EXISTS thresholds (
    threshold_id BIGSERIAL PRIMARY KEY,
    gas_normal DOUBLE PRECISION NOT NULL,
    gas_warning DOUBLE PRECISION NOT NULL,
    gas_danger DOUBLE PRECISION NOT NULL,
    temperature_normal DOUBLE PRECISION NOT NULL,
    temperature_warning DOUBLE PRECISION NOT NULL,
    temperature_danger DOUBLE PRECISION NOT NULL,
    sound_normal DOUBLE PRECISION NOT NULL,
    sound_warning DOUBLE PRECISION NOT NULL,
    sound_danger DOUBLE PRECISION NOT NULL,
    updated_by TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_thresholds_created ON thresholds (created_at DESC, threshold_id DESC);

CREATE TABLE IF NOT EXISTS notifications (
    notification_id TEXT PRIMARY KEY,
    sensor_type TEXT NOT NULL CHECK (sensor_type IN ('gas', 'temperature', 'sound')),
    severity TEXT NOT NULL,
    message TEXT NOT NULL,
    value DOUBLE PRECISION NOT NULL,
    timestamp TIMESTAMPTZ NOT NULL,
    principal_id TEXT NOT NULL REFERENCES users (user_id),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_notifications_principal ON notifications (principal_id, timestamp DESC);
"""


async def create_tables(database: Database) -> None:
    """Create all tables and indexes if they don't exist."""
    await database.execute(SCHEMA_SQL)
    logger.info("Database schema ensured")
