"""
Reading-to-alert pipeline shared by the HTTP API and the stream consumer.

Three entry points:
1. process_reading: one value, persisted, classified, dispatched
2. process_batch: a multi-sensor payload, one reading per sensor type
3. process_report: an alert whose severity was decided upstream; no
   reading is persisted
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog

from src.notifications.dispatcher import AlertDispatcher
from src.notifications.resolvers import RecipientResolver
from src.notifications.schemas import DispatchResult
from src.readings.ingestor import ReadingIngestor
from src.readings.schemas import IngestResult, Reading, ReadingSource
from src.sensors.schemas import SensorType, Severity
from src.thresholds.classifier import classify
from src.thresholds.store import ThresholdStore

logger = structlog.get_logger(__name__)


@dataclass
class ReadingOutcome:
    """A stored, classified reading and what dispatch did with it."""

    ingest: IngestResult
    dispatch: DispatchResult

    @property
    def severity(self) -> Severity:
        return self.ingest.severity


@dataclass
class BatchOutcome:
    """Per-type outcomes of a multi-sensor payload.

    ``errors`` holds sensor types whose ingest or dispatch failed; the
    remaining types are in ``outcomes``.
    """

    outcomes: list[ReadingOutcome] = field(default_factory=list)
    errors: dict[SensorType, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def error_summary(self) -> str:
        return "; ".join(
            f"{sensor_type.value}: {error}" for sensor_type, error in self.errors.items()
        )


class SensorPipeline:
    """
    Ties ingestion to alert dispatch.

    Usage:
        pipeline = SensorPipeline(ingestor, dispatcher, threshold_store)
        outcome = await pipeline.process_reading(
            SensorType.GAS, 610.0, resolver=CallerResolver(principals, user_id),
        )
    """

    def __init__(
        self,
        ingestor: ReadingIngestor,
        dispatcher: AlertDispatcher,
        threshold_store: ThresholdStore,
    ) -> None:
        self._ingestor = ingestor
        self._dispatcher = dispatcher
        self._thresholds = threshold_store

    async def process_reading(
        self,
        sensor_type: SensorType,
        value: float,
        resolver: RecipientResolver,
        timestamp: datetime | None = None,
        source: ReadingSource = "api",
    ) -> ReadingOutcome:
        """
        Persist, classify and dispatch a single reading.

        Raises:
            StorageError: If the reading or its notification could not
                be stored.
        """
        ingested = await self._ingestor.ingest(sensor_type, value, timestamp, source)
        dispatched = await self._dispatcher.dispatch(
            ingested.reading, ingested.severity, resolver,
        )
        return ReadingOutcome(ingest=ingested, dispatch=dispatched)

    async def process_batch(
        self,
        values: Mapping[SensorType, float],
        resolver: RecipientResolver,
        timestamp: datetime | None = None,
        source: ReadingSource = "stream",
    ) -> BatchOutcome:
        """
        Process a multi-sensor payload.

        Every sensor type is ingested and dispatched independently; a
        failure for one type is logged and collected in ``errors``.
        """
        batch = await self._ingestor.ingest_batch(values, timestamp, source)
        outcome = BatchOutcome(errors=dict(batch.errors))

        for ingested in batch.results:
            sensor_type = ingested.reading.sensor_type
            try:
                dispatched = await self._dispatcher.dispatch(
                    ingested.reading, ingested.severity, resolver,
                )
            except Exception as e:
                logger.error(
                    "Alert dispatch failed",
                    sensor_type=sensor_type.value,
                    reading_id=ingested.reading.reading_id,
                    error=str(e),
                )
                outcome.errors[sensor_type] = e
                continue
            outcome.outcomes.append(ReadingOutcome(ingest=ingested, dispatch=dispatched))

        logger.info(
            "Sensor batch processed",
            readings=len(batch.results),
            alerts=sum(1 for o in outcome.outcomes if o.severity.is_alert),
            failed=len(outcome.errors),
        )
        return outcome

    async def process_report(
        self,
        sensor_type: SensorType,
        severity: Severity,
        value: float,
        resolver: RecipientResolver,
        message: str | None = None,
        timestamp: datetime | None = None,
        source: ReadingSource = "stream",
        reclassify: bool = False,
    ) -> DispatchResult:
        """
        Dispatch an alert whose severity arrived with it.

        No reading is persisted. With ``reclassify`` the reported severity
        is replaced by the active thresholds' verdict for ``value``.

        Raises:
            StorageError: If thresholds could not be loaded or the
                notification could not be stored.
        """
        if reclassify:
            config = await self._thresholds.get_active()
            computed = classify(sensor_type, value, config)
            if computed is not severity:
                logger.info(
                    "Reported severity overridden by thresholds",
                    sensor_type=sensor_type.value,
                    reported=severity.value,
                    computed=computed.value,
                )
            severity = computed

        reading = Reading(
            sensor_type=sensor_type,
            value=float(value),
            timestamp=timestamp or datetime.now(timezone.utc),
            source=source,
        )
        return await self._dispatcher.dispatch(reading, severity, resolver, message=message)
