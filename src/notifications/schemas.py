"""Schema definitions for persisted alert notifications."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from src.sensors.schemas import SensorType, Severity


@dataclass(frozen=True)
class Notification:
    """A persisted alert addressed to one principal.

    Maps 1:1 to the ``notifications`` table. ``severity`` is never
    NORMAL for a stored notification.

    Attributes:
        sensor_type: Sensor that crossed a threshold.
        severity: WARNING or DANGER.
        message: Human-readable summary.
        value: Reading value that triggered the alert.
        timestamp: Capture time of the triggering reading.
        principal_id: Recipient.
        notification_id: UUID4, assigned on save.
        created_at: Row insertion time, set by the database.
    """

    sensor_type: SensorType
    severity: Severity
    message: str
    value: float
    timestamp: datetime
    principal_id: str
    notification_id: str | None = None
    created_at: datetime | None = None

    @staticmethod
    def default_message(sensor_type: SensorType, severity: Severity, value: float) -> str:
        """Build the standard alert text for a threshold crossing."""
        if severity is Severity.DANGER:
            return f"{sensor_type.value} too high: {value:g}"
        return f"{sensor_type.value} elevated: {value:g}"

    @property
    def subject(self) -> str:
        return f"Alert: {self.sensor_type.value.upper()} {self.severity.value.upper()}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "notification_id": self.notification_id,
            "type": self.sensor_type.value,
            "status": self.severity.value,
            "message": self.message,
            "value": self.value,
            "timestamp": self.timestamp.isoformat(),
            "principal_id": self.principal_id,
        }


def new_notification_id() -> str:
    return str(uuid.uuid4())


class DispatchStatus(str, Enum):
    """Terminal state of one dispatch call."""

    SKIPPED = "skipped"
    NO_RECIPIENT = "no_recipient"
    SENT = "sent"


@dataclass
class DispatchResult:
    """Outcome of a dispatch.

    ``notification`` is set only when status is SENT. ``email_sent`` is
    True only when the external notifier confirmed delivery.
    """

    status: DispatchStatus
    notification: Notification | None = None
    email_sent: bool = False
