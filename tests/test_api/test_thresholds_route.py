"""Tests for threshold endpoints."""

import json
from datetime import datetime, timezone

import pytest

from src.errors import StorageError
from src.thresholds.schemas import SensorThresholds, ThresholdConfig


def _payload(**overrides) -> dict:
    data = {
        "gasThreshold": 300,
        "gasWarningThreshold": 450,
        "gasDangerThreshold": 600,
        "tempThreshold": 25,
        "tempWarningThreshold": 27,
        "tempDangerThreshold": 31,
        "soundThreshold": 60,
        "soundWarningThreshold": 80,
        "soundDangerThreshold": 100,
    }
    data.update(overrides)
    return data


@pytest.fixture
def storing_replace(mock_threshold_store):
    """Make ``replace`` validate like the real store and echo the candidate."""

    async def replace(candidate, updated_by):
        candidate.validate()
        return ThresholdConfig(
            gas=candidate.gas,
            temperature=candidate.temperature,
            sound=candidate.sound,
            threshold_id=2,
            updated_by=updated_by,
            created_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
        )

    mock_threshold_store.replace.side_effect = replace
    return mock_threshold_store


class TestGetThresholds:
    def test_returns_active_configuration(self, client):
        response = client.get("/thresholds")

        assert response.status_code == 200
        data = response.json()
        assert data["gasThreshold"] == 300
        assert data["tempWarningThreshold"] == 27
        assert data["soundDangerThreshold"] == 100
        assert data["updatedBy"] is None

    def test_storage_unavailable(self, client, mock_threshold_store):
        mock_threshold_store.get_active.side_effect = StorageError("threshold_select")

        response = client.get("/thresholds")

        assert response.status_code == 503
        assert response.json()["detail"] == "Storage unavailable, retry later"


class TestReplaceThresholds:
    def test_admin_replaces(self, admin_client, storing_replace):
        response = admin_client.put("/thresholds", json=_payload(gasDangerThreshold=650))

        assert response.status_code == 200
        data = response.json()
        assert data["gasDangerThreshold"] == 650
        assert data["updatedBy"] == "admin-1"
        assert data["createdAt"].startswith("2026-03-02")

        candidate = storing_replace.replace.call_args.args[0]
        assert candidate.gas == SensorThresholds(300, 450, 650)
        assert storing_replace.replace.call_args.kwargs["updated_by"] == "admin-1"

    def test_partial_update_rejected(self, admin_client, storing_replace):
        payload = _payload()
        del payload["soundDangerThreshold"]

        response = admin_client.put("/thresholds", json=payload)

        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["soundDangerThreshold"]
        storing_replace.replace.assert_not_called()

    def test_misordered_rejected_with_every_violation(self, admin_client, storing_replace):
        response = admin_client.put(
            "/thresholds",
            json=_payload(gasThreshold=500, soundWarningThreshold=120),
        )

        assert response.status_code == 400
        fields = [e["field"] for e in response.json()["errors"]]
        assert fields == ["gasThreshold", "soundWarningThreshold"]

    def test_non_numeric_rejected(self, admin_client, storing_replace):
        response = admin_client.put("/thresholds", json=_payload(tempThreshold="25"))

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "tempThreshold"

    def test_infinite_threshold_rejected(self, admin_client, storing_replace):
        body = json.dumps(_payload()).replace(
            '"gasDangerThreshold": 600', '"gasDangerThreshold": Infinity'
        )

        response = admin_client.put(
            "/thresholds",
            content=body,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["errors"] == [
            {"field": "gasDangerThreshold", "reason": "must be a finite number"}
        ]
        storing_replace.replace.assert_not_called()


class TestThresholdHistory:
    def test_admin_history(self, admin_client, mock_threshold_store):
        mock_threshold_store.history.return_value = [
            ThresholdConfig.default(),
            ThresholdConfig.default(),
        ]

        response = admin_client.get("/thresholds/history", params={"limit": 2})

        assert response.status_code == 200
        assert response.json()["total"] == 2
        mock_threshold_store.history.assert_awaited_once_with(limit=2)
