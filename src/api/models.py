"""
Request and response models for the monitoring API.

Request bodies accept loosely typed fields so that boundary validation
can report every problem at once as a 400, instead of stopping at the
first type error.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.notifications.schemas import DispatchResult, Notification
from src.readings.schemas import Reading
from src.thresholds.schemas import ThresholdConfig


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str = Field(..., description="Error message")
    error_type: str = Field(default="error", description="Error type")


class FieldErrorItem(BaseModel):
    field: str
    reason: str


class ValidationErrorResponse(ErrorResponse):
    """400 response listing every violated input constraint."""

    error_type: str = "validation"
    errors: list[FieldErrorItem] = Field(default_factory=list)


# Readings


class ReadingCreateRequest(BaseModel):
    """Request model for a single reading."""

    type: Any = Field(default=None, description="gas (alias mq2), temperature, or sound")
    value: Any = Field(default=None, description="Numeric reading")
    timestamp: Any = Field(
        default=None,
        description="ISO 8601 string or epoch milliseconds; defaults to now",
    )


class BatchReadingRequest(BaseModel):
    """Request model for a multi-sensor payload.

    Unknown keys are ignored; at least one sensor value is required.
    """

    model_config = ConfigDict(extra="allow")

    gas: Any = Field(default=None, description="Gas concentration (ppm)")
    mq2: Any = Field(default=None, description="Alias of gas used by MQ-2 firmware")
    temperature: Any = Field(default=None, description="Temperature (°C)")
    sound: Any = Field(default=None, description="Sound level (dB)")
    timestamp: Any = Field(default=None)


class ReadingItem(BaseModel):
    reading_id: str
    type: str
    value: float
    timestamp: str
    source: str

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingItem":
        return cls(
            reading_id=reading.reading_id,
            type=reading.sensor_type.value,
            value=reading.value,
            timestamp=reading.timestamp.isoformat(),
            source=reading.source,
        )


class DispatchInfo(BaseModel):
    status: str = Field(..., description="skipped, no_recipient, or sent")
    notification_id: str | None = None
    email_sent: bool = False

    @classmethod
    def from_result(cls, result: DispatchResult) -> "DispatchInfo":
        return cls(
            status=result.status.value,
            notification_id=result.notification.notification_id if result.notification else None,
            email_sent=result.email_sent,
        )


class ReadingResult(BaseModel):
    reading: ReadingItem
    status: str = Field(..., description="Classification: normal, warning, or danger")
    dispatch: DispatchInfo


class ReadingResponse(ReadingResult):
    latency_ms: float


class BatchReadingError(BaseModel):
    type: str
    error: str


class BatchReadingResponse(BaseModel):
    results: list[ReadingResult]
    errors: list[BatchReadingError] = Field(default_factory=list)
    latency_ms: float


class ReadingsResponse(BaseModel):
    readings: list[ReadingItem]
    total: int
    latency_ms: float


# Thresholds


class ThresholdUpdateRequest(BaseModel):
    """Full replacement of the threshold configuration. All fields required."""

    gasThreshold: Any = None
    gasWarningThreshold: Any = None
    gasDangerThreshold: Any = None
    tempThreshold: Any = None
    tempWarningThreshold: Any = None
    tempDangerThreshold: Any = None
    soundThreshold: Any = None
    soundWarningThreshold: Any = None
    soundDangerThreshold: Any = None


class ThresholdsResponse(BaseModel):
    gasThreshold: float
    gasWarningThreshold: float
    gasDangerThreshold: float
    tempThreshold: float
    tempWarningThreshold: float
    tempDangerThreshold: float
    soundThreshold: float
    soundWarningThreshold: float
    soundDangerThreshold: float
    updatedBy: str | None = None
    createdAt: str | None = None

    @classmethod
    def from_config(cls, config: ThresholdConfig) -> "ThresholdsResponse":
        return cls(**config.to_dict())


class ThresholdHistoryResponse(BaseModel):
    thresholds: list[ThresholdsResponse]
    total: int


# Notifications


class NotificationCreateRequest(BaseModel):
    """Manually submitted alert. Severity is rechecked against thresholds."""

    type: Any = None
    status: Any = Field(default=None, description="normal, warning, or danger")
    message: Any = None
    value: Any = None
    timestamp: Any = None


class NotificationItem(BaseModel):
    notification_id: str | None
    type: str
    status: str
    message: str
    value: float
    timestamp: str

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationItem":
        return cls(
            notification_id=notification.notification_id,
            type=notification.sensor_type.value,
            status=notification.severity.value,
            message=notification.message,
            value=notification.value,
            timestamp=notification.timestamp.isoformat(),
        )


class NotificationsResponse(BaseModel):
    notifications: list[NotificationItem]
    total: int
    latency_ms: float


class NotificationCreateResponse(BaseModel):
    message: str
    dispatch: DispatchInfo
    notification: NotificationItem | None = None


# Health


class ComponentHealth(BaseModel):
    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = None
    details: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    status: str = Field(..., description="healthy, degraded, or unhealthy")
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
    version: str
