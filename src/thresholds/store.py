"""
Threshold persistence: one active configuration, full history retained.

The table is append-only. ``get_active`` creates the built-in defaults on
first access; creation and replacement both run under the same
transaction-scoped advisory lock, so concurrent first access produces at
most one default row and a default can never land on top of an admin
update.
"""

import logging
from typing import Any

from src.errors import StorageError
from src.storage.database import Database, storage_operation
from src.thresholds.schemas import SensorThresholds, ThresholdConfig

logger = logging.getLogger(__name__)

# Arbitrary application-wide key for pg_advisory_xact_lock.
THRESHOLD_LOCK_KEY = 7_310_042_001

_COLUMNS = """
    threshold_id,
    gas_normal, gas_warning, gas_danger,
    temperature_normal, temperature_warning, temperature_danger,
    sound_normal, sound_warning, sound_danger,
    updated_by, created_at
"""

_SELECT_ACTIVE = f"""
    SELECT {_COLUMNS} FROM thresholds
    ORDER BY created_at DESC, threshold_id DESC
    LIMIT 1
"""

# created_at is taken after the advisory lock; NOW() would be transaction start.
_INSERT = f"""
    INSERT INTO thresholds (
        gas_normal, gas_warning, gas_danger,
        temperature_normal, temperature_warning, temperature_danger,
        sound_normal, sound_warning, sound_danger,
        updated_by, created_at
    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, clock_timestamp())
    RETURNING {_COLUMNS}
"""


class ThresholdStore:
    """Supplies the active ThresholdConfig and accepts whole replacements."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def get_active(self) -> ThresholdConfig:
        """
        Return the most recently created configuration.

        If none exists, the default configuration is inserted and returned.
        The empty check is repeated under the advisory lock, so racing
        callers all observe the single row created by the winner.

        Raises:
            StorageError: If the backend is unavailable.
        """
        async with storage_operation("threshold_select"):
            row = await self._db.fetchrow(_SELECT_ACTIVE)
        if row is not None:
            return _row_to_config(row)

        async with storage_operation("threshold_default_insert"):
            async with self._db.transaction() as conn:
                await conn.execute("SELECT pg_advisory_xact_lock($1)", THRESHOLD_LOCK_KEY)
                row = await conn.fetchrow(_SELECT_ACTIVE)
                if row is None:
                    row = await conn.fetchrow(
                        _INSERT, *_config_params(ThresholdConfig.default()), None,
                    )
                    logger.info("Created default threshold configuration")

        if row is None:
            raise StorageError("threshold_default_insert", RuntimeError("insert returned no row"))
        return _row_to_config(row)

    async def replace(
        self,
        candidate: ThresholdConfig,
        updated_by: str | None,
    ) -> ThresholdConfig:
        """
        Validate and store ``candidate`` as the new active configuration.

        Args:
            candidate: All nine cut points.
            updated_by: Principal performing the update.

        Returns:
            The stored configuration, with id and creation time.

        Raises:
            ValidationError: Listing every violated ordering constraint.
                Nothing is written.
            StorageError: If the backend rejected the write.
        """
        candidate.validate()

        async with storage_operation("threshold_insert"):
            async with self._db.transaction() as conn:
                await conn.execute("SELECT pg_advisory_xact_lock($1)", THRESHOLD_LOCK_KEY)
                row = await conn.fetchrow(_INSERT, *_config_params(candidate), updated_by)

        if row is None:
            raise StorageError("threshold_insert", RuntimeError("insert returned no row"))

        stored = _row_to_config(row)
        logger.info(
            f"Threshold configuration {stored.threshold_id} activated by {updated_by}"
        )
        return stored

    async def history(self, limit: int = 20) -> list[ThresholdConfig]:
        """Return stored configurations, newest (active) first."""
        sql = f"""
            SELECT {_COLUMNS} FROM thresholds
            ORDER BY created_at DESC, threshold_id DESC
            LIMIT $1
        """
        async with storage_operation("threshold_history"):
            rows = await self._db.fetch(sql, limit)
        return [_row_to_config(row) for row in rows]


def _config_params(config: ThresholdConfig) -> tuple[float, ...]:
    return (
        config.gas.normal_max, config.gas.warning_max, config.gas.danger_max,
        config.temperature.normal_max, config.temperature.warning_max,
        config.temperature.danger_max,
        config.sound.normal_max, config.sound.warning_max, config.sound.danger_max,
    )


def _row_to_config(row: Any) -> ThresholdConfig:
    """Convert an asyncpg Record to a ThresholdConfig."""
    return ThresholdConfig(
        gas=SensorThresholds(row["gas_normal"], row["gas_warning"], row["gas_danger"]),
        temperature=SensorThresholds(
            row["temperature_normal"],
            row["temperature_warning"],
            row["temperature_danger"],
        ),
        sound=SensorThresholds(row["sound_normal"], row["sound_warning"], row["sound_danger"]),
        threshold_id=row["threshold_id"],
        updated_by=row.get("updated_by"),
        created_at=row.get("created_at"),
    )
