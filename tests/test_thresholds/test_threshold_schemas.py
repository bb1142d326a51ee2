"""Tests for ThresholdConfig validation and wire format."""

import json

import pytest

from src.errors import ValidationError
from src.sensors.schemas import SensorType
from src.thresholds.schemas import (
    THRESHOLD_FIELDS,
    SensorThresholds,
    ThresholdConfig,
    wire_field,
)


def _payload(**overrides) -> dict:
    data = ThresholdConfig.default().to_dict()
    data.pop("updatedBy")
    data.pop("createdAt")
    data.update(overrides)
    return data


class TestWireFormat:
    def test_field_names(self):
        assert wire_field(SensorType.GAS, "warning_max") == "gasWarningThreshold"
        assert wire_field(SensorType.TEMPERATURE, "normal_max") == "tempThreshold"
        assert wire_field(SensorType.SOUND, "danger_max") == "soundDangerThreshold"
        assert len(THRESHOLD_FIELDS) == 9

    def test_default_to_dict(self):
        data = ThresholdConfig.default().to_dict()
        assert data["gasThreshold"] == 300
        assert data["gasWarningThreshold"] == 450
        assert data["gasDangerThreshold"] == 600
        assert data["tempThreshold"] == 25
        assert data["tempWarningThreshold"] == 27
        assert data["tempDangerThreshold"] == 31
        assert data["soundThreshold"] == 60
        assert data["soundWarningThreshold"] == 80
        assert data["soundDangerThreshold"] == 100
        assert data["updatedBy"] is None
        assert data["createdAt"] is None


class TestFromPayload:
    def test_valid_payload(self):
        config = ThresholdConfig.from_payload(_payload(gasDangerThreshold=700))
        assert config.gas == SensorThresholds(300.0, 450.0, 700.0)
        assert config.temperature == SensorThresholds(25.0, 27.0, 31.0)

    def test_partial_update_rejected(self):
        payload = _payload()
        del payload["soundThreshold"]
        del payload["tempDangerThreshold"]

        with pytest.raises(ValidationError) as exc_info:
            ThresholdConfig.from_payload(payload)

        assert set(exc_info.value.fields) == {"soundThreshold", "tempDangerThreshold"}

    def test_non_numeric_fields_reported_together(self):
        payload = _payload(gasThreshold="300", soundWarningThreshold=True)

        with pytest.raises(ValidationError) as exc_info:
            ThresholdConfig.from_payload(payload)

        assert set(exc_info.value.fields) == {"gasThreshold", "soundWarningThreshold"}

    def test_non_finite_values_rejected(self):
        # json.loads decodes the Infinity literal to a float
        payload = _payload(gasDangerThreshold=json.loads("Infinity"))
        payload["soundThreshold"] = float("nan")
        payload["tempThreshold"] = float("-inf")

        with pytest.raises(ValidationError) as exc_info:
            ThresholdConfig.from_payload(payload)

        assert set(exc_info.value.fields) == {
            "gasDangerThreshold",
            "soundThreshold",
            "tempThreshold",
        }
        assert all(v.reason == "must be a finite number" for v in exc_info.value.violations)

    def test_non_object_rejected(self):
        with pytest.raises(ValidationError):
            ThresholdConfig.from_payload([300, 450, 600])


class TestValidate:
    def test_defaults_are_valid(self):
        ThresholdConfig.default().validate()

    def test_equal_cut_points_rejected(self):
        config = ThresholdConfig.from_payload(_payload(gasWarningThreshold=600))
        with pytest.raises(ValidationError) as exc_info:
            config.validate()
        assert exc_info.value.fields == ["gasWarningThreshold"]

    def test_all_violations_listed(self):
        config = ThresholdConfig.from_payload(_payload(
            gasThreshold=500,          # > warning 450
            tempWarningThreshold=40,   # > danger 31
            soundThreshold=90,         # > warning 80
        ))
        with pytest.raises(ValidationError) as exc_info:
            config.validate()

        assert exc_info.value.fields == [
            "gasThreshold",
            "tempWarningThreshold",
            "soundThreshold",
        ]
        assert "strictly less than" in exc_info.value.violations[0].reason

    def test_infinite_danger_rejected(self):
        config = ThresholdConfig(
            gas=SensorThresholds(300, 450, float("inf")),
            temperature=SensorThresholds(25, 27, 31),
            sound=SensorThresholds(60, 80, 100),
        )
        with pytest.raises(ValidationError) as exc_info:
            config.validate()
        assert exc_info.value.fields == ["gasDangerThreshold"]

    def test_for_sensor_rejects_strings(self):
        with pytest.raises(TypeError):
            ThresholdConfig.default().for_sensor("gas")
