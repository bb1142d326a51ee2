"""
Parsing of raw sensor-stream payloads.

Two JSON shapes are accepted on the sensor stream:

(a) a batch of sensor values, one or more of gas / temperature / sound
    (keys case-insensitive, ``mq2`` accepted for gas)::

        {"gas": 610, "Temperature": 20, "sound": 999, "timestamp": "..."}

(b) a pre-classified alert kept for older firmware, which bypasses
    classification and goes straight to notification creation::

        {"type": "gas", "status": "dangerous", "message": "...", "value": 610}

Anything else is rejected with a ValidationError.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from src.errors import FieldViolation, ValidationError
from src.sensors.schemas import (
    SensorType,
    Severity,
    parse_sensor_type,
    parse_severity,
    parse_value,
)

_REPORT_KEYS = frozenset({"type", "status"})


@dataclass(frozen=True)
class SensorBatchMessage:
    """Shape (a): values keyed by sensor type."""

    values: dict[SensorType, float]
    timestamp: datetime | None = None


@dataclass(frozen=True)
class ReportedAlertMessage:
    """Shape (b): an alert already classified by the sender."""

    sensor_type: SensorType
    severity: Severity
    message: str
    value: float
    timestamp: datetime | None = None


SensorMessage = SensorBatchMessage | ReportedAlertMessage


def parse_timestamp(raw: Any, field: str = "timestamp") -> datetime | None:
    """
    Parse an optional capture timestamp.

    Accepts ISO 8601 strings and epoch milliseconds (what JavaScript
    clients send). Naive values are taken as UTC.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, str):
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError.single(field, f"invalid ISO timestamp {raw!r}") from None
    elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
        try:
            parsed = datetime.fromtimestamp(raw / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise ValidationError.single(field, f"timestamp out of range: {raw!r}") from None
    else:
        raise ValidationError.single(field, "timestamp must be a string or epoch milliseconds")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_sensor_message(payload: Any) -> SensorMessage:
    """
    Detect the payload shape and validate it.

    Raises:
        ValidationError: If the payload matches neither shape. All problems
            found in the payload are reported together.
    """
    if not isinstance(payload, dict):
        raise ValidationError.single("payload", "sensor message must be a JSON object")

    if _REPORT_KEYS.issubset(payload):
        return parse_alert_report(payload)
    return parse_batch_message(payload)


def parse_batch_message(payload: dict[str, Any]) -> SensorBatchMessage:
    values: dict[SensorType, float] = {}
    violations: list[FieldViolation] = []
    timestamp: datetime | None = None

    for key, raw in payload.items():
        if not isinstance(key, str):
            continue
        if key.lower() == "timestamp":
            try:
                timestamp = parse_timestamp(raw)
            except ValidationError as e:
                violations.extend(e.violations)
            continue

        try:
            sensor_type = parse_sensor_type(key, field=key)
        except ValidationError:
            # Extra device fields (ids, firmware version, ...) are ignored.
            continue

        if sensor_type in values:
            violations.append(FieldViolation(
                field=key, reason=f"duplicate value for sensor {sensor_type.value}",
            ))
            continue
        try:
            values[sensor_type] = parse_value(raw, field=key)
        except ValidationError as e:
            violations.extend(e.violations)

    if not values and not violations:
        violations.append(FieldViolation(
            field="payload",
            reason="no sensor values found; expected one of gas, temperature, sound",
        ))
    if violations:
        raise ValidationError(violations)

    return SensorBatchMessage(values=values, timestamp=timestamp)


def parse_alert_report(payload: dict[str, Any]) -> ReportedAlertMessage:
    violations: list[FieldViolation] = []
    parsed: dict[str, Any] = {}

    steps = (
        ("sensor_type", lambda: parse_sensor_type(payload.get("type"), field="type")),
        ("severity", lambda: parse_severity(payload.get("status"), field="status")),
        ("value", lambda: parse_value(payload.get("value"), field="value")),
        ("timestamp", lambda: parse_timestamp(payload.get("timestamp"))),
    )
    for name, step in steps:
        try:
            parsed[name] = step()
        except ValidationError as e:
            violations.extend(e.violations)

    message = payload.get("message")
    if not isinstance(message, str) or not message.strip():
        violations.append(FieldViolation(field="message", reason="message is required"))

    if violations:
        raise ValidationError(violations)

    return ReportedAlertMessage(message=message.strip(), **parsed)


@dataclass(frozen=True)
class SingleReadingMessage:
    """One explicitly typed reading, as submitted through the API."""

    sensor_type: SensorType
    value: float
    timestamp: datetime | None = None


def parse_reading_message(payload: dict[str, Any]) -> SingleReadingMessage:
    """
    Validate a ``{type, value, timestamp?}`` reading.

    Raises:
        ValidationError: Listing every invalid field.
    """
    violations: list[FieldViolation] = []
    parsed: dict[str, Any] = {}

    steps = (
        ("sensor_type", lambda: parse_sensor_type(payload.get("type"), field="type")),
        ("value", lambda: parse_value(payload.get("value"), field="value")),
        ("timestamp", lambda: parse_timestamp(payload.get("timestamp"))),
    )
    for name, step in steps:
        try:
            parsed[name] = step()
        except ValidationError as e:
            violations.extend(e.violations)

    if violations:
        raise ValidationError(violations)
    return SingleReadingMessage(**parsed)
