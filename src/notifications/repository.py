"""Notification store: persists alerts and lists them per recipient."""

import logging
from dataclasses import replace
from typing import Any

from src.notifications.schemas import Notification, new_notification_id
from src.sensors.schemas import SensorType, Severity, parse_severity
from src.storage.database import Database, storage_operation

logger = logging.getLogger(__name__)

_COLUMNS = """
    notification_id, sensor_type, severity, message, value,
    timestamp, principal_id, created_at
"""


class NotificationStore:
    """Repository for Notification rows in the ``notifications`` table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def save(self, notification: Notification) -> Notification:
        """
        Persist a notification under a fresh identity.

        Args:
            notification: Notification to store; any existing
                ``notification_id`` is replaced.

        Returns:
            The stored notification with its assigned ID.

        Raises:
            StorageError: If the backend rejected the write.
        """
        stored = replace(notification, notification_id=new_notification_id())
        sql = f"""
            INSERT INTO notifications (
                notification_id, sensor_type, severity, message, value,
                timestamp, principal_id
            ) VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING {_COLUMNS}
        """
        async with storage_operation("notification_insert"):
            row = await self._db.fetchrow(
                sql,
                stored.notification_id,
                stored.sensor_type.value,
                stored.severity.value,
                stored.message,
                stored.value,
                stored.timestamp,
                stored.principal_id,
            )
        return _row_to_notification(row) if row else stored

    async def list_for_principal(self, principal_id: str) -> list[Notification]:
        """Get all notifications for a principal, newest first."""
        sql = f"""
            SELECT {_COLUMNS}
            FROM notifications
            WHERE principal_id = $1
            ORDER BY timestamp DESC, created_at DESC
        """
        async with storage_operation("notification_select"):
            rows = await self._db.fetch(sql, principal_id)
        return [_row_to_notification(row) for row in rows]

    async def normalize_severities(self) -> dict[str, int]:
        """
        Rewrite legacy severity spellings to their canonical values.

        Rows whose severity starts with ``dang``, ``warn`` or ``norm``
        (case-insensitive) are rewritten to ``danger``, ``warning`` and
        ``normal``.

        Returns:
            Rows updated per canonical severity.
        """
        sql = """
            UPDATE notifications
            SET severity = $1
            WHERE severity ILIKE $2 AND severity <> $1
        """
        counts: dict[str, int] = {}
        async with storage_operation("notification_normalize"):
            async with self._db.transaction() as conn:
                for prefix, severity in _LEGACY_PREFIXES.items():
                    status = await conn.execute(sql, severity.value, f"{prefix}%")
                    counts[severity.value] = _affected_rows(status)
        logger.info(f"Normalized notification severities: {counts}")
        return counts


_LEGACY_PREFIXES = {
    "dang": Severity.DANGER,
    "warn": Severity.WARNING,
    "norm": Severity.NORMAL,
}


def _stored_severity(raw: str) -> Severity:
    """Read a stored severity, tolerating legacy spellings."""
    prefix = raw.strip().lower()[:4]
    if prefix in _LEGACY_PREFIXES:
        return _LEGACY_PREFIXES[prefix]
    return parse_severity(raw)


def _affected_rows(status: str) -> int:
    """Parse the row count from an asyncpg command status like 'UPDATE 3'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0


def _row_to_notification(row: Any) -> Notification:
    """Convert an asyncpg Record to a Notification."""
    return Notification(
        notification_id=row["notification_id"],
        sensor_type=SensorType(row["sensor_type"]),
        severity=_stored_severity(row["severity"]),
        message=row["message"],
        value=float(row["value"]),
        timestamp=row["timestamp"],
        principal_id=row["principal_id"],
        created_at=row.get("created_at"),
    )
