"""Schema definitions for sensor readings.

Maps 1:1 to the ``readings`` table. One row per sensor type per capture;
a device message carrying several sensor values becomes several rows.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from src.sensors.schemas import SensorType, Severity

ReadingSource = Literal["api", "stream"]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Reading:
    """A single captured sensor value.

    Attributes:
        sensor_type: Which sensor produced the value.
        value: Numeric reading in the sensor's unit.
        timestamp: Capture time (arrival time when the source gave none).
        source: Ingestion path the reading arrived on.
        reading_id: UUID4 identifier.
    """

    sensor_type: SensorType
    value: float
    timestamp: datetime = field(default_factory=_utc_now)
    source: ReadingSource = "api"
    reading_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "reading_id": self.reading_id,
            "sensor_type": self.sensor_type.value,
            "value": self.value,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
        }


@dataclass(frozen=True)
class IngestResult:
    """The stored reading and its classification."""

    reading: Reading
    severity: Severity


@dataclass
class BatchIngestResult:
    """Outcome of decomposing a multi-sensor payload.

    ``errors`` maps each failed sensor type to the error that stopped it;
    successful siblings are in ``results``.
    """

    results: list[IngestResult] = field(default_factory=list)
    errors: dict[SensorType, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors
