"""
Threshold configuration records.

A ThresholdConfig holds three ordered cut points per sensor type. Records
are immutable: an update inserts a new row, and the newest row is the
active configuration. Readers therefore always see all nine values from a
single write.

Wire format keeps the field names used by existing dashboard clients
(``gasThreshold``, ``tempWarningThreshold``, ...).
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.errors import FieldViolation, ValidationError
from src.sensors.schemas import SensorType, parse_value

# (sensor, level) -> wire field name
_WIRE_PREFIX = {
    SensorType.GAS: "gas",
    SensorType.TEMPERATURE: "temp",
    SensorType.SOUND: "sound",
}
_LEVEL_SUFFIX = {
    "normal_max": "Threshold",
    "warning_max": "WarningThreshold",
    "danger_max": "DangerThreshold",
}


def wire_field(sensor_type: SensorType, level: str) -> str:
    """Return the wire name for one cut point, e.g. ``gasWarningThreshold``."""
    return f"{_WIRE_PREFIX[sensor_type]}{_LEVEL_SUFFIX[level]}"


THRESHOLD_FIELDS: tuple[str, ...] = tuple(
    wire_field(sensor_type, level)
    for sensor_type in SensorType
    for level in _LEVEL_SUFFIX
)


@dataclass(frozen=True)
class SensorThresholds:
    """Cut points for one sensor type: normal_max < warning_max < danger_max."""

    normal_max: float
    warning_max: float
    danger_max: float

    def violations(self, sensor_type: SensorType) -> list[FieldViolation]:
        """Return non-finite cut points, else every ordering constraint broken."""
        non_finite = [
            FieldViolation(field=wire_field(sensor_type, level), reason="must be a finite number")
            for level in _LEVEL_SUFFIX
            if not math.isfinite(getattr(self, level))
        ]
        if non_finite:
            return non_finite

        found: list[FieldViolation] = []
        if not self.normal_max < self.warning_max:
            found.append(FieldViolation(
                field=wire_field(sensor_type, "normal_max"),
                reason=(
                    f"{sensor_type.value} normal threshold ({self.normal_max:g}) must be "
                    f"strictly less than warning threshold ({self.warning_max:g})"
                ),
            ))
        if not self.warning_max < self.danger_max:
            found.append(FieldViolation(
                field=wire_field(sensor_type, "warning_max"),
                reason=(
                    f"{sensor_type.value} warning threshold ({self.warning_max:g}) must be "
                    f"strictly less than danger threshold ({self.danger_max:g})"
                ),
            ))
        return found


DEFAULT_THRESHOLDS: dict[SensorType, SensorThresholds] = {
    SensorType.GAS: SensorThresholds(normal_max=300, warning_max=450, danger_max=600),
    SensorType.TEMPERATURE: SensorThresholds(normal_max=25, warning_max=27, danger_max=31),
    SensorType.SOUND: SensorThresholds(normal_max=60, warning_max=80, danger_max=100),
}


@dataclass(frozen=True)
class ThresholdConfig:
    """A complete, immutable threshold configuration.

    Attributes:
        gas: Gas concentration cut points (ppm).
        temperature: Temperature cut points (°C).
        sound: Sound level cut points (dB).
        threshold_id: Database identity, None until persisted.
        updated_by: Principal that created this configuration (None for defaults).
        created_at: Insertion time; the newest record is active.
    """

    gas: SensorThresholds
    temperature: SensorThresholds
    sound: SensorThresholds
    threshold_id: int | None = None
    updated_by: str | None = None
    created_at: datetime | None = field(default=None, compare=False)

    @classmethod
    def default(cls) -> "ThresholdConfig":
        return cls(
            gas=DEFAULT_THRESHOLDS[SensorType.GAS],
            temperature=DEFAULT_THRESHOLDS[SensorType.TEMPERATURE],
            sound=DEFAULT_THRESHOLDS[SensorType.SOUND],
        )

    def for_sensor(self, sensor_type: SensorType) -> SensorThresholds:
        """Look up the triple for ``sensor_type``.

        Raises:
            TypeError: If ``sensor_type`` is not a SensorType member.
        """
        if not isinstance(sensor_type, SensorType):
            raise TypeError(
                f"sensor_type must be a SensorType, got {sensor_type!r}"
            )
        if sensor_type is SensorType.GAS:
            return self.gas
        if sensor_type is SensorType.TEMPERATURE:
            return self.temperature
        return self.sound

    def violations(self) -> list[FieldViolation]:
        """Every finiteness or monotonicity violation across all sensor types."""
        found: list[FieldViolation] = []
        for sensor_type in SensorType:
            found.extend(self.for_sensor(sensor_type).violations(sensor_type))
        return found

    def validate(self) -> None:
        """Raise ValidationError listing all violations, if any."""
        found = self.violations()
        if found:
            raise ValidationError(found)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire format."""
        data: dict[str, Any] = {}
        for sensor_type in SensorType:
            triple = self.for_sensor(sensor_type)
            for level in _LEVEL_SUFFIX:
                data[wire_field(sensor_type, level)] = getattr(triple, level)
        data["updatedBy"] = self.updated_by
        data["createdAt"] = self.created_at.isoformat() if self.created_at else None
        return data

    @classmethod
    def from_payload(cls, payload: Any) -> "ThresholdConfig":
        """
        Build a candidate configuration from a wire payload.

        All nine fields are required and must be finite numbers; partial
        updates are rejected. Ordering is not checked here (see ``validate``).

        Raises:
            ValidationError: Listing every missing, non-numeric or
                non-finite field.
        """
        if not isinstance(payload, dict):
            raise ValidationError.single("body", "threshold payload must be an object")

        found: list[FieldViolation] = []
        values: dict[str, float] = {}
        for name in THRESHOLD_FIELDS:
            if name not in payload:
                found.append(FieldViolation(field=name, reason="field is required"))
                continue
            try:
                values[name] = parse_value(payload[name], field=name)
            except ValidationError as e:
                found.extend(e.violations)
        if found:
            raise ValidationError(found)

        triples = {
            sensor_type: SensorThresholds(
                **{
                    level: values[wire_field(sensor_type, level)]
                    for level in _LEVEL_SUFFIX
                }
            )
            for sensor_type in SensorType
        }
        return cls(
            gas=triples[SensorType.GAS],
            temperature=triples[SensorType.TEMPERATURE],
            sound=triples[SensorType.SOUND],
        )
