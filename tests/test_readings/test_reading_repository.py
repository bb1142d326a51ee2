"""Tests for ReadingRepository SQL parameters and row mapping."""

from unittest.mock import AsyncMock

import pytest

from src.errors import StorageError
from src.readings.repository import ReadingRepository
from src.sensors.schemas import SensorType
from tests.conftest import CAPTURED_AT, make_reading


def _row(reading_id="r-1", sensor_type="gas", value=610.0, source="stream") -> dict:
    return {
        "reading_id": reading_id,
        "sensor_type": sensor_type,
        "value": value,
        "timestamp": CAPTURED_AT,
        "source": source,
    }


@pytest.fixture
def db():
    return AsyncMock()


@pytest.fixture
def repo(db):
    return ReadingRepository(db)


class TestCreate:
    @pytest.mark.asyncio
    async def test_insert_parameters(self, repo, db):
        reading = make_reading(SensorType.GAS, 610.0, source="stream")
        db.fetchrow.return_value = _row(reading_id=reading.reading_id)

        stored = await repo.create(reading)

        args = db.fetchrow.call_args.args
        assert args[1:] == (reading.reading_id, "gas", 610.0, CAPTURED_AT, "stream")
        assert stored.reading_id == reading.reading_id
        assert stored.sensor_type is SensorType.GAS

    @pytest.mark.asyncio
    async def test_backend_error_wrapped(self, repo, db):
        db.fetchrow.side_effect = TimeoutError()

        with pytest.raises(StorageError) as exc_info:
            await repo.create(make_reading())
        assert exc_info.value.operation == "reading_insert"


class TestGetRecent:
    @pytest.mark.asyncio
    async def test_limit_only(self, repo, db):
        db.fetch.return_value = [_row("r-2"), _row("r-1", sensor_type="sound", value=40.0)]

        readings = await repo.get_recent(limit=2)

        sql, *params = db.fetch.call_args.args
        assert params == [2]
        assert "LIMIT $1" in sql
        assert [r.reading_id for r in readings] == ["r-2", "r-1"]
        assert readings[1].sensor_type is SensorType.SOUND

    @pytest.mark.asyncio
    async def test_filtered_by_type(self, repo, db):
        db.fetch.return_value = []

        readings = await repo.get_recent(limit=10, sensor_type=SensorType.TEMPERATURE)

        sql, *params = db.fetch.call_args.args
        assert params == ["temperature", 10]
        assert "WHERE sensor_type = $1" in sql
        assert "LIMIT $2" in sql
        assert readings == []
