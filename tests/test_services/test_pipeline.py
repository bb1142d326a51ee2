"""Tests for SensorPipeline wiring ingestion to dispatch."""

from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from src.errors import StorageError
from src.notifications.dispatcher import AlertDispatcher
from src.notifications.repository import NotificationStore
from src.notifications.schemas import DispatchStatus
from src.readings.ingestor import ReadingIngestor
from src.readings.repository import ReadingRepository
from src.sensors.schemas import SensorType, Severity
from src.services.pipeline import SensorPipeline
from src.thresholds.schemas import ThresholdConfig
from src.thresholds.store import ThresholdStore
from tests.conftest import CAPTURED_AT


@pytest.fixture
def reading_repo():
    repo = AsyncMock(spec=ReadingRepository)
    repo.create.side_effect = lambda reading: reading
    return repo


@pytest.fixture
def threshold_store():
    store = AsyncMock(spec=ThresholdStore)
    store.get_active.return_value = ThresholdConfig.default()
    return store


@pytest.fixture
def notification_store():
    store = AsyncMock(spec=NotificationStore)
    counter = iter(range(1, 100))
    store.save.side_effect = lambda n: replace(n, notification_id=f"notif-{next(counter)}")
    return store


@pytest.fixture
def pipeline(reading_repo, threshold_store, notification_store, metrics):
    ingestor = ReadingIngestor(reading_repo, threshold_store, metrics=metrics)
    dispatcher = AlertDispatcher(notification_store, notifier=None, metrics=metrics)
    return SensorPipeline(ingestor, dispatcher, threshold_store)


@pytest.fixture
def resolver(admin_principal):
    return AsyncMock(return_value=admin_principal)


class TestProcessReading:
    @pytest.mark.asyncio
    async def test_danger_reading_notifies(self, pipeline, resolver, notification_store):
        outcome = await pipeline.process_reading(SensorType.GAS, 610.0, resolver, CAPTURED_AT)

        assert outcome.severity is Severity.DANGER
        assert outcome.dispatch.status is DispatchStatus.SENT
        assert outcome.dispatch.notification.principal_id == "admin-1"
        notification_store.save.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_normal_reading_stored_only(self, pipeline, resolver, reading_repo, notification_store):
        outcome = await pipeline.process_reading(SensorType.SOUND, 40.0, resolver)

        assert outcome.severity is Severity.NORMAL
        assert outcome.dispatch.status is DispatchStatus.SKIPPED
        reading_repo.create.assert_awaited_once()
        notification_store.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_notification_storage_failure_propagates(
        self, pipeline, resolver, reading_repo, notification_store,
    ):
        notification_store.save.side_effect = StorageError("notification_insert")

        with pytest.raises(StorageError):
            await pipeline.process_reading(SensorType.GAS, 610.0, resolver)

        # The reading itself was stored before dispatch failed.
        reading_repo.create.assert_awaited_once()


class TestProcessBatch:
    @pytest.mark.asyncio
    async def test_mixed_payload(self, pipeline, resolver, reading_repo, notification_store):
        outcome = await pipeline.process_batch(
            {SensorType.GAS: 610.0, SensorType.TEMPERATURE: 20.0, SensorType.SOUND: 999.0},
            resolver,
            CAPTURED_AT,
        )

        assert outcome.ok
        assert reading_repo.create.await_count == 3
        statuses = {o.ingest.reading.sensor_type: o.dispatch.status for o in outcome.outcomes}
        assert statuses == {
            SensorType.GAS: DispatchStatus.SENT,
            SensorType.TEMPERATURE: DispatchStatus.SKIPPED,
            SensorType.SOUND: DispatchStatus.SENT,
        }
        assert notification_store.save.await_count == 2
        messages = sorted(c.args[0].message for c in notification_store.save.await_args_list)
        assert messages == ["gas too high: 610", "sound too high: 999"]

    @pytest.mark.asyncio
    async def test_dispatch_failure_isolated(self, pipeline, resolver, notification_store):
        async def save(notification):
            if notification.sensor_type is SensorType.GAS:
                raise StorageError("notification_insert", OSError("down"))
            return replace(notification, notification_id="notif-sound")

        notification_store.save.side_effect = save

        outcome = await pipeline.process_batch(
            {SensorType.GAS: 610.0, SensorType.SOUND: 999.0}, resolver,
        )

        assert not outcome.ok
        assert list(outcome.errors) == [SensorType.GAS]
        assert [o.ingest.reading.sensor_type for o in outcome.outcomes] == [SensorType.SOUND]
        assert outcome.error_summary().startswith("gas: Storage operation 'notification_insert'")

    @pytest.mark.asyncio
    async def test_ingest_failure_reported(self, pipeline, resolver, reading_repo):
        async def create(reading):
            if reading.sensor_type is SensorType.TEMPERATURE:
                raise StorageError("reading_insert", OSError("down"))
            return reading

        reading_repo.create.side_effect = create

        outcome = await pipeline.process_batch(
            {SensorType.TEMPERATURE: 40.0, SensorType.SOUND: 20.0}, resolver,
        )

        assert list(outcome.errors) == [SensorType.TEMPERATURE]
        assert len(outcome.outcomes) == 1


class TestProcessReport:
    @pytest.mark.asyncio
    async def test_reported_severity_used_without_reading(
        self, pipeline, resolver, reading_repo, threshold_store,
    ):
        result = await pipeline.process_report(
            SensorType.GAS, Severity.DANGER, 610.0, resolver, message="Leak in lab 2",
        )

        assert result.status is DispatchStatus.SENT
        assert result.notification.message == "Leak in lab 2"
        reading_repo.create.assert_not_called()
        threshold_store.get_active.assert_not_called()

    @pytest.mark.asyncio
    async def test_reclassify_overrides_reported_severity(self, pipeline, resolver):
        result = await pipeline.process_report(
            SensorType.GAS, Severity.WARNING, 610.0, resolver,
            message="gas rising", reclassify=True,
        )

        assert result.status is DispatchStatus.SENT
        assert result.notification.severity is Severity.DANGER

    @pytest.mark.asyncio
    async def test_reclassify_to_normal_skips(self, pipeline, resolver, notification_store):
        result = await pipeline.process_report(
            SensorType.TEMPERATURE, Severity.DANGER, 21.0, resolver,
            message="hot", reclassify=True,
        )

        assert result.status is DispatchStatus.SKIPPED
        notification_store.save.assert_not_called()
