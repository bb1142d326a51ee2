"""Tests for the sensor-monitor CLI commands."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from src.cli import main
from src.errors import NotificationDeliveryError


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_context():
    context = MagicMock()
    context.connect = AsyncMock()
    context.close = AsyncMock()
    return context


class TestPublishReading:
    def test_publishes_values(self, runner: CliRunner) -> None:
        queue = AsyncMock()
        queue.publish.return_value = "1700000000000-0"

        with patch("src.queues.sensor_queue.SensorQueue", return_value=queue):
            result = runner.invoke(main, ["publish-reading", "--gas", "610", "--sound", "40"])

        assert result.exit_code == 0, result.output
        queue.publish.assert_awaited_once_with({"gas": 610.0, "sound": 40.0})
        queue.close.assert_awaited_once()
        assert "1700000000000-0" in result.output

    def test_raw_payload(self, runner: CliRunner) -> None:
        queue = AsyncMock()
        queue.publish.return_value = "1-0"
        payload = {"type": "gas", "status": "danger", "message": "leak", "value": 610}

        with patch("src.queues.sensor_queue.SensorQueue", return_value=queue):
            result = runner.invoke(main, ["publish-reading", "--payload", json.dumps(payload)])

        assert result.exit_code == 0, result.output
        queue.publish.assert_awaited_once_with(payload)

    def test_requires_a_value(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["publish-reading"])
        assert result.exit_code == 2

    def test_invalid_json(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["publish-reading", "--payload", "{nope"])
        assert result.exit_code == 2
        assert "invalid JSON" in result.output


class TestEmailTest:
    def _notifier(self) -> MagicMock:
        notifier = MagicMock()
        notifier.config.smtp_host = "smtp.example.com"
        notifier.config.smtp_port = 587
        notifier.config.smtp_user = None
        notifier.config.from_address = "alerts@example.com"
        notifier.send_test = AsyncMock()
        return notifier

    def test_success(self, runner: CliRunner) -> None:
        notifier = self._notifier()

        with patch("src.notifications.notifier.EmailNotifier", return_value=notifier):
            result = runner.invoke(main, ["email-test", "--to", "ops@example.com"])

        assert result.exit_code == 0, result.output
        notifier.send_test.assert_awaited_once_with("ops@example.com")
        assert "Test email sent" in result.output

    def test_failure_exit_code(self, runner: CliRunner) -> None:
        notifier = self._notifier()
        notifier.send_test.side_effect = NotificationDeliveryError("email", 3, OSError("refused"))

        with patch("src.notifications.notifier.EmailNotifier", return_value=notifier):
            result = runner.invoke(main, ["email-test", "--to", "ops@example.com"])

        assert result.exit_code == 1
        assert "Email test failed" in result.output


class TestFixNotificationStatus:
    def test_reports_counts(self, runner: CliRunner, mock_context) -> None:
        mock_context.notifications.normalize_severities = AsyncMock(
            return_value={"danger": 3, "warning": 1, "normal": 0},
        )

        with patch("src.services.context.AppContext.from_settings", return_value=mock_context):
            result = runner.invoke(main, ["fix-notification-status"])

        assert result.exit_code == 0, result.output
        assert "Normalized 4 notification(s)" in result.output
        mock_context.connect.assert_awaited_once_with(redis_required=False)
        mock_context.close.assert_awaited_once()


class TestHealth:
    def test_all_healthy(self, runner: CliRunner, mock_context) -> None:
        mock_context.health = AsyncMock(return_value={"database": True, "redis": True})

        with patch("src.services.context.AppContext.from_settings", return_value=mock_context):
            result = runner.invoke(main, ["health"])

        assert result.exit_code == 0, result.output
        assert "All core services healthy" in result.output

    def test_redis_down(self, runner: CliRunner, mock_context) -> None:
        mock_context.health = AsyncMock(return_value={"database": True, "redis": False})

        with patch("src.services.context.AppContext.from_settings", return_value=mock_context):
            result = runner.invoke(main, ["health"])

        assert result.exit_code == 1


class TestInitDb:
    def test_creates_schema_and_defaults(self, runner: CliRunner, mock_context) -> None:
        from src.thresholds.schemas import ThresholdConfig

        mock_context.thresholds.get_active = AsyncMock(return_value=ThresholdConfig.default())

        with (
            patch("src.services.context.AppContext.from_settings", return_value=mock_context),
            patch("src.storage.schema.create_tables", new_callable=AsyncMock) as create_tables,
        ):
            result = runner.invoke(main, ["init-db"])

        assert result.exit_code == 0, result.output
        create_tables.assert_awaited_once_with(mock_context.database)
        assert "gasDangerThreshold" in result.output
