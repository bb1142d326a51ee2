"""
Core vocabulary shared by ingestion, classification and alerting.

SensorType and Severity are the only accepted values past the boundary;
``parse_sensor_type`` and ``parse_severity`` are the single place where raw
strings (HTTP bodies, stream payloads, legacy database rows) are checked.
"""

from enum import Enum
from typing import Any

from src.errors import ValidationError


class SensorType(str, Enum):
    """Supported sensor families."""

    GAS = "gas"
    TEMPERATURE = "temperature"
    SOUND = "sound"

    @property
    def unit(self) -> str:
        return _UNITS[self]


_UNITS = {
    SensorType.GAS: "ppm",
    SensorType.TEMPERATURE: "°C",
    SensorType.SOUND: "dB",
}

# Firmware publishes the gas channel under the MQ-2 sensor name.
_SENSOR_ALIASES = {"mq2": SensorType.GAS}


class Severity(str, Enum):
    """Ordered classification of a reading: normal < warning < danger."""

    NORMAL = "normal"
    WARNING = "warning"
    DANGER = "danger"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def is_alert(self) -> bool:
        return self is not Severity.NORMAL

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.NORMAL: 0,
    Severity.WARNING: 1,
    Severity.DANGER: 2,
}

# Older clients and stored rows use "dangerous".
_LEGACY_SEVERITIES = {"dangerous": Severity.DANGER}

VALID_SENSOR_TYPES: frozenset[str] = frozenset(t.value for t in SensorType)
VALID_SEVERITIES: frozenset[str] = frozenset(s.value for s in Severity)


def parse_sensor_type(raw: Any, field: str = "type") -> SensorType:
    """
    Convert a boundary value into a SensorType.

    Matching is case-insensitive and accepts the ``mq2`` device alias.

    Raises:
        ValidationError: If the value names no known sensor type.
    """
    if isinstance(raw, SensorType):
        return raw
    if not isinstance(raw, str):
        raise ValidationError.single(field, "sensor type must be a string")

    name = raw.strip().lower()
    if name in _SENSOR_ALIASES:
        return _SENSOR_ALIASES[name]
    try:
        return SensorType(name)
    except ValueError:
        raise ValidationError.single(
            field,
            f"unknown sensor type {raw!r}; must be one of {sorted(VALID_SENSOR_TYPES)}",
        ) from None


def parse_severity(raw: Any, field: str = "status") -> Severity:
    """
    Convert a boundary severity string into the canonical enum.

    The legacy ``dangerous`` spelling is normalized to ``danger``. Anything
    else outside the canonical set is rejected rather than defaulted.

    Raises:
        ValidationError: If the value is not a recognized severity.
    """
    if isinstance(raw, Severity):
        return raw
    if not isinstance(raw, str):
        raise ValidationError.single(field, "severity must be a string")

    name = raw.strip().lower()
    if name in _LEGACY_SEVERITIES:
        return _LEGACY_SEVERITIES[name]
    try:
        return Severity(name)
    except ValueError:
        raise ValidationError.single(
            field,
            f"invalid severity {raw!r}; must be one of {sorted(VALID_SEVERITIES)}",
        ) from None


def parse_value(raw: Any, field: str = "value") -> float:
    """
    Convert a boundary numeric value into a float.

    Booleans and non-finite numbers are rejected.

    Raises:
        ValidationError: If the value is not a finite number.
    """
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValidationError.single(field, "must be a number")
    value = float(raw)
    if value != value or value in (float("inf"), float("-inf")):
        raise ValidationError.single(field, "must be a finite number")
    return value
