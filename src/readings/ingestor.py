"""
Single ingestion path for sensor readings.

Used identically by the stream consumer and the HTTP API: persist first,
unconditionally, then classify against the active thresholds. A reading
is never dropped because classification could not run; a reading that
could not be stored is never classified.
"""

from collections.abc import Mapping
from datetime import datetime, timezone

import structlog

from src.observability.metrics import MetricsCollector, get_metrics
from src.readings.repository import ReadingRepository
from src.readings.schemas import BatchIngestResult, IngestResult, Reading, ReadingSource
from src.sensors.schemas import SensorType
from src.thresholds.classifier import classify
from src.thresholds.store import ThresholdStore

logger = structlog.get_logger(__name__)


class ReadingIngestor:
    """Persists readings and classifies them.

    Holds no locks: concurrent ``ingest`` calls are independent, and two
    ingests of the same logical reading store two rows.
    """

    def __init__(
        self,
        reading_repo: ReadingRepository,
        threshold_store: ThresholdStore,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._readings = reading_repo
        self._thresholds = threshold_store
        self._metrics = metrics or get_metrics()

    async def ingest(
        self,
        sensor_type: SensorType,
        value: float,
        timestamp: datetime | None = None,
        source: ReadingSource = "api",
    ) -> IngestResult:
        """
        Store one reading and classify it.

        Args:
            sensor_type: Validated sensor type.
            value: Numeric reading.
            timestamp: Capture time; defaults to now.
            source: Which path the reading arrived on.

        Returns:
            IngestResult with the stored reading and its severity.

        Raises:
            TypeError: If ``sensor_type`` was not validated at the boundary.
            StorageError: If the reading could not be persisted, or the
                threshold configuration could not be loaded.
        """
        if not isinstance(sensor_type, SensorType):
            raise TypeError(f"sensor_type must be a SensorType, got {sensor_type!r}")

        reading = Reading(
            sensor_type=sensor_type,
            value=float(value),
            timestamp=timestamp or datetime.now(timezone.utc),
            source=source,
        )
        stored = await self._readings.create(reading)

        config = await self._thresholds.get_active()
        severity = classify(stored.sensor_type, stored.value, config)

        self._metrics.record_reading(stored.sensor_type.value, severity.value)
        logger.debug(
            "Reading ingested",
            reading_id=stored.reading_id,
            sensor_type=stored.sensor_type.value,
            value=stored.value,
            severity=severity.value,
            source=source,
        )
        return IngestResult(reading=stored, severity=severity)

    async def ingest_batch(
        self,
        values: Mapping[SensorType, float],
        timestamp: datetime | None = None,
        source: ReadingSource = "stream",
    ) -> BatchIngestResult:
        """
        Ingest a multi-sensor payload, one reading per sensor type.

        Each sensor type is persisted and classified independently. A
        failure for one type is logged and collected; the remaining types
        are still processed.

        Args:
            values: Sensor values keyed by type.
            timestamp: Shared capture time; defaults to now.
            source: Which path the payload arrived on.

        Returns:
            BatchIngestResult with per-type results and errors.
        """
        captured_at = timestamp or datetime.now(timezone.utc)
        outcome = BatchIngestResult()

        for sensor_type, value in values.items():
            try:
                result = await self.ingest(sensor_type, value, captured_at, source)
            except Exception as e:
                outcome.errors[sensor_type] = e
                self._metrics.record_ingest_error(
                    getattr(sensor_type, "value", str(sensor_type)),
                    type(e).__name__,
                )
                logger.error(
                    "Failed to ingest reading",
                    sensor_type=getattr(sensor_type, "value", sensor_type),
                    value=value,
                    error=str(e),
                )
                continue
            outcome.results.append(result)

        if outcome.errors:
            logger.warning(
                "Batch ingested with errors",
                succeeded=len(outcome.results),
                failed=sorted(
                    getattr(t, "value", str(t)) for t in outcome.errors
                ),
            )
        return outcome
