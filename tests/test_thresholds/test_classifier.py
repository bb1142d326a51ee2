"""Tests for threshold classification."""

import pytest

from src.sensors.schemas import SensorType, Severity
from src.thresholds.classifier import classify
from src.thresholds.schemas import SensorThresholds, ThresholdConfig


class TestClassifyDefaults:
    """Boundary behavior against the built-in defaults."""

    @pytest.mark.parametrize(
        "sensor_type,value,expected",
        [
            (SensorType.GAS, 120.0, Severity.NORMAL),
            (SensorType.GAS, 449.9, Severity.NORMAL),
            (SensorType.GAS, 450.0, Severity.WARNING),
            (SensorType.GAS, 599.99, Severity.WARNING),
            (SensorType.GAS, 600.0, Severity.DANGER),
            (SensorType.GAS, 610.0, Severity.DANGER),
            (SensorType.TEMPERATURE, 20.0, Severity.NORMAL),
            (SensorType.TEMPERATURE, 27.0, Severity.WARNING),
            (SensorType.TEMPERATURE, 31.0, Severity.DANGER),
            (SensorType.SOUND, 79.0, Severity.NORMAL),
            (SensorType.SOUND, 80.0, Severity.WARNING),
            (SensorType.SOUND, 999.0, Severity.DANGER),
        ],
    )
    def test_boundaries(self, default_thresholds, sensor_type, value, expected):
        assert classify(sensor_type, value, default_thresholds) is expected

    def test_normal_max_is_not_a_boundary(self, default_thresholds):
        # Values between normal_max and warning_max are still normal.
        assert classify(SensorType.GAS, 350.0, default_thresholds) is Severity.NORMAL

    def test_negative_values_are_normal(self, default_thresholds):
        assert classify(SensorType.TEMPERATURE, -10.0, default_thresholds) is Severity.NORMAL


class TestClassifyCustomConfig:
    def test_uses_supplied_configuration(self, default_thresholds):
        config = ThresholdConfig(
            gas=SensorThresholds(100, 200, 300),
            temperature=default_thresholds.temperature,
            sound=default_thresholds.sound,
        )
        assert classify(SensorType.GAS, 250.0, config) is Severity.WARNING
        assert classify(SensorType.GAS, 300.0, config) is Severity.DANGER


class TestClassifyTypeSafety:
    def test_raw_string_is_programming_error(self, default_thresholds):
        with pytest.raises(TypeError):
            classify("gas", 610.0, default_thresholds)
