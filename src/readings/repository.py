"""Reading repository: append-only inserts and recent-history queries."""

import logging
from typing import Any

from src.readings.schemas import Reading
from src.sensors.schemas import SensorType
from src.storage.database import Database, storage_operation

logger = logging.getLogger(__name__)


class ReadingRepository:
    """Persistence for Reading rows in the ``readings`` table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create(self, reading: Reading) -> Reading:
        """
        Insert a reading.

        Two inserts of the same logical reading produce two rows; no
        deduplication is attempted.

        Raises:
            StorageError: If the backend rejected the write.
        """
        sql = """
            INSERT INTO readings (reading_id, sensor_type, value, timestamp, source)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING reading_id, sensor_type, value, timestamp, source
        """
        async with storage_operation("reading_insert"):
            row = await self._db.fetchrow(
                sql,
                reading.reading_id,
                reading.sensor_type.value,
                reading.value,
                reading.timestamp,
                reading.source,
            )
        if row is None:
            return reading
        return _row_to_reading(row)

    async def get_recent(
        self,
        *,
        limit: int = 100,
        sensor_type: SensorType | None = None,
    ) -> list[Reading]:
        """
        Get the most recent readings, newest first.

        Args:
            limit: Maximum rows to return.
            sensor_type: Optional filter.
        """
        params: list[Any] = []
        where_clause = ""
        if sensor_type is not None:
            where_clause = "WHERE sensor_type = $1"
            params.append(sensor_type.value)

        sql = f"""
            SELECT reading_id, sensor_type, value, timestamp, source
            FROM readings
            {where_clause}
            ORDER BY timestamp DESC
            LIMIT ${len(params) + 1}
        """
        params.append(limit)

        async with storage_operation("reading_select"):
            rows = await self._db.fetch(sql, *params)
        return [_row_to_reading(row) for row in rows]


def _row_to_reading(row: Any) -> Reading:
    """Convert an asyncpg Record to a Reading."""
    return Reading(
        reading_id=row["reading_id"],
        sensor_type=SensorType(row["sensor_type"]),
        value=float(row["value"]),
        timestamp=row["timestamp"],
        source=row.get("source", "api"),
    )
