"""Sensor types and severity levels."""

from src.sensors.schemas import (
    VALID_SENSOR_TYPES,
    VALID_SEVERITIES,
    SensorType,
    Severity,
    parse_sensor_type,
    parse_severity,
    parse_value,
)

__all__ = [
    "SensorType",
    "Severity",
    "VALID_SENSOR_TYPES",
    "VALID_SEVERITIES",
    "parse_sensor_type",
    "parse_severity",
    "parse_value",
]
