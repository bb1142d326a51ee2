"""Tests for ThresholdStore with a mocked database."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.errors import StorageError, ValidationError
from src.thresholds.schemas import SensorThresholds, ThresholdConfig
from src.thresholds.store import THRESHOLD_LOCK_KEY, ThresholdStore
from tests.conftest import make_db_with_transaction


def _row(threshold_id=1, updated_by=None, **overrides) -> dict:
    row = {
        "threshold_id": threshold_id,
        "gas_normal": 300.0,
        "gas_warning": 450.0,
        "gas_danger": 600.0,
        "temperature_normal": 25.0,
        "temperature_warning": 27.0,
        "temperature_danger": 31.0,
        "sound_normal": 60.0,
        "sound_warning": 80.0,
        "sound_danger": 100.0,
        "updated_by": updated_by,
        "created_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


@pytest.fixture
def db():
    return make_db_with_transaction()


@pytest.fixture
def store(db):
    return ThresholdStore(db)


class TestGetActive:
    @pytest.mark.asyncio
    async def test_returns_newest_row(self, store, db):
        db.fetchrow.return_value = _row(threshold_id=7, updated_by="admin-1", gas_danger=650.0)

        config = await store.get_active()

        assert config.threshold_id == 7
        assert config.updated_by == "admin-1"
        assert config.gas.danger_max == 650.0
        db.conn.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_defaults_when_empty(self, store, db):
        db.fetchrow.return_value = None
        db.conn.fetchrow.side_effect = [None, _row(threshold_id=1)]

        config = await store.get_active()

        assert config == ThresholdConfig(
            gas=SensorThresholds(300.0, 450.0, 600.0),
            temperature=SensorThresholds(25.0, 27.0, 31.0),
            sound=SensorThresholds(60.0, 80.0, 100.0),
            threshold_id=1,
        )
        db.conn.execute.assert_awaited_once_with(
            "SELECT pg_advisory_xact_lock($1)", THRESHOLD_LOCK_KEY,
        )
        insert_args = db.conn.fetchrow.call_args_list[1].args
        assert insert_args[1:] == (300, 450, 600, 25, 27, 31, 60, 80, 100, None)

    @pytest.mark.asyncio
    async def test_concurrent_creator_wins(self, store, db):
        """A row created while waiting for the lock is returned, not duplicated."""
        db.fetchrow.return_value = None
        db.conn.fetchrow.return_value = _row(threshold_id=3)

        config = await store.get_active()

        assert config.threshold_id == 3
        assert db.conn.fetchrow.await_count == 1

    @pytest.mark.asyncio
    async def test_backend_failure_is_storage_error(self, store, db):
        db.fetchrow.side_effect = ConnectionRefusedError("connection refused")

        with pytest.raises(StorageError) as exc_info:
            await store.get_active()
        assert exc_info.value.operation == "threshold_select"


class TestReplace:
    @pytest.mark.asyncio
    async def test_stores_valid_candidate(self, store, db):
        candidate = ThresholdConfig(
            gas=SensorThresholds(200, 400, 500),
            temperature=SensorThresholds(25, 27, 31),
            sound=SensorThresholds(60, 80, 100),
        )
        db.conn.fetchrow.return_value = _row(
            threshold_id=9,
            updated_by="admin-1",
            gas_normal=200.0,
            gas_warning=400.0,
            gas_danger=500.0,
        )

        stored = await store.replace(candidate, updated_by="admin-1")

        assert stored.threshold_id == 9
        assert stored.updated_by == "admin-1"
        assert stored.gas == SensorThresholds(200.0, 400.0, 500.0)
        args = db.conn.fetchrow.call_args.args
        assert args[1:4] == (200, 400, 500)
        assert args[-1] == "admin-1"

    @pytest.mark.asyncio
    async def test_creation_time_taken_after_lock(self, store, db):
        db.conn.fetchrow.return_value = _row(threshold_id=10)

        await store.replace(ThresholdConfig.default(), updated_by="admin-1")

        lock_sql = db.conn.execute.call_args.args[0]
        insert_sql = db.conn.fetchrow.call_args.args[0]
        assert "pg_advisory_xact_lock" in lock_sql
        assert "clock_timestamp()" in insert_sql
        assert "NOW()" not in insert_sql

    @pytest.mark.asyncio
    async def test_invalid_candidate_writes_nothing(self, store, db):
        candidate = ThresholdConfig(
            gas=SensorThresholds(500, 400, 600),
            temperature=SensorThresholds(25, 27, 31),
            sound=SensorThresholds(60, 80, 100),
        )

        with pytest.raises(ValidationError) as exc_info:
            await store.replace(candidate, updated_by="admin-1")

        assert exc_info.value.fields == ["gasThreshold"]
        db.conn.execute.assert_not_called()
        db.conn.fetchrow.assert_not_called()


class TestHistory:
    @pytest.mark.asyncio
    async def test_newest_first(self, store, db):
        db.fetch = AsyncMock(return_value=[_row(threshold_id=2), _row(threshold_id=1)])

        history = await store.history(limit=5)

        assert [c.threshold_id for c in history] == [2, 1]
        assert db.fetch.call_args.args[1] == 5
