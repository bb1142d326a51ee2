"""Tests for notification endpoints."""

from src.notifications.schemas import DispatchResult, DispatchStatus, Notification
from src.sensors.schemas import SensorType, Severity
from tests.conftest import CAPTURED_AT


def _notification(notification_id="notif-1", severity=Severity.DANGER) -> Notification:
    return Notification(
        sensor_type=SensorType.GAS,
        severity=severity,
        message="gas too high: 610",
        value=610.0,
        timestamp=CAPTURED_AT,
        principal_id="user-1",
        notification_id=notification_id,
    )


class TestListNotifications:
    def test_lists_callers_notifications(self, client, mock_notification_store):
        mock_notification_store.list_for_principal.return_value = [
            _notification("notif-2"),
            _notification("notif-1", Severity.WARNING),
        ]

        response = client.get("/notifications")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [n["status"] for n in data["notifications"]] == ["danger", "warning"]
        assert data["notifications"][0]["type"] == "gas"
        mock_notification_store.list_for_principal.assert_awaited_once_with("user-1")

    def test_empty(self, client):
        data = client.get("/notifications").json()
        assert data["notifications"] == []
        assert data["total"] == 0


class TestCreateNotification:
    def test_created(self, client, mock_pipeline, mock_context):
        mock_pipeline.process_report.return_value = DispatchResult(
            DispatchStatus.SENT, _notification(), email_sent=False,
        )

        response = client.post("/notifications", json={
            "type": "gas",
            "status": "dangerous",
            "message": "gas too high: 610",
            "value": 610,
        })

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Notification created successfully"
        assert data["dispatch"]["status"] == "sent"
        assert data["notification"]["notification_id"] == "notif-1"

        mock_context.caller_resolver.assert_called_once_with("user-1")
        call = mock_pipeline.process_report.call_args
        assert call.args[:3] == (SensorType.GAS, Severity.DANGER, 610.0)
        assert call.kwargs["reclassify"] is True
        assert call.kwargs["message"] == "gas too high: 610"

    def test_normal_value_skipped(self, client, mock_pipeline):
        mock_pipeline.process_report.return_value = DispatchResult(DispatchStatus.SKIPPED)

        response = client.post("/notifications", json={
            "type": "temperature",
            "status": "warning",
            "message": "warm",
            "value": 20,
        })

        assert response.status_code == 201
        data = response.json()
        assert data["dispatch"]["status"] == "skipped"
        assert data["notification"] is None

    def test_invalid_status(self, client, mock_pipeline):
        response = client.post("/notifications", json={
            "type": "gas",
            "status": "critical",
            "message": "x",
            "value": 610,
        })

        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["status"]
        mock_pipeline.process_report.assert_not_called()
