"""External alert delivery.

Provides an ABC for notifiers plus an SMTP email implementation with
bounded retries. The notifier is only ever called after the
notification has been stored; delivery failures are reported to the
caller as NotificationDeliveryError and never undo the stored record.
"""

import asyncio
import html
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.auth.schemas import Principal
from src.errors import NotificationDeliveryError
from src.notifications.schemas import Notification
from src.observability.metrics import MetricsCollector, get_metrics
from src.queues.backoff import ExponentialBackoff
from src.sensors.schemas import Severity

logger = logging.getLogger(__name__)

_SEVERITY_BACKGROUND = {
    Severity.DANGER: "#ffebee",
    Severity.WARNING: "#fff3e0",
}


class EmailConfig(BaseSettings):
    """SMTP configuration for alert emails."""

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        case_sensitive=False,
        extra="ignore",
    )

    smtp_host: str = Field(default="", description="SMTP server; empty disables email")
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_user: str | None = Field(default=None)
    smtp_password: str | None = Field(default=None)
    from_address: str = Field(default="alerts@localhost")
    use_tls: bool = Field(
        default=True,
        description="STARTTLS on plain ports; port 465 always uses implicit TLS",
    )
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum send attempts per email",
    )
    retry_base_delay: float = Field(
        default=2.0,
        ge=0.0,
        description="Delay before the second attempt; doubles afterwards",
    )
    retry_max_delay: float = Field(default=60.0, ge=0.0)

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host)


class AlertNotifier(ABC):
    """Abstract base for external alert delivery."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this notifier (e.g. 'email')."""

    @abstractmethod
    async def send_alert(self, notification: Notification, recipient: Principal) -> None:
        """Deliver a stored notification to its recipient.

        Raises:
            NotificationDeliveryError: If delivery failed after all attempts.
        """


class EmailNotifier(AlertNotifier):
    """Sends HTML alert emails over SMTP.

    ``smtplib`` is blocking, so each attempt runs in a worker thread.
    Attempts are spaced by exponential backoff (2s, 4s, ... by default).
    """

    def __init__(
        self,
        config: EmailConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._config = config or EmailConfig()
        self._metrics = metrics or get_metrics()

    @property
    def name(self) -> str:
        return "email"

    @property
    def config(self) -> EmailConfig:
        return self._config

    async def send_alert(self, notification: Notification, recipient: Principal) -> None:
        if not recipient.email:
            raise NotificationDeliveryError(
                self.name, 0, ValueError(f"principal {recipient.principal_id} has no email"),
            )
        message = self._build_message(
            to=recipient.email,
            subject=notification.subject,
            body=render_alert_html(notification),
        )
        await self._send_with_retry(message)
        logger.info(
            "Alert email sent for %s %s to %s",
            notification.sensor_type.value,
            notification.severity.value,
            recipient.email,
        )

    async def send_test(self, to: str) -> None:
        """Send a short test email to check the SMTP configuration."""
        message = self._build_message(
            to=to,
            subject="Sensor monitor test email",
            body=(
                "<h2>Test Email</h2>"
                "<p>If you received this, alert email delivery is configured correctly.</p>"
            ),
        )
        await self._send_with_retry(message)
        logger.info("Test email sent to %s", to)

    def _build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._config.from_address
        msg["To"] = to
        msg.set_content("This alert requires an HTML-capable mail client.")
        msg.add_alternative(body, subtype="html")
        return msg

    async def _send_with_retry(self, message: EmailMessage) -> None:
        """Attempt delivery up to ``max_attempts`` times.

        Raises:
            NotificationDeliveryError: With the last underlying error.
        """
        if not self._config.is_configured:
            self._metrics.record_delivery(self.name, success=False)
            raise NotificationDeliveryError(
                self.name, 0, RuntimeError("EMAIL_SMTP_HOST is not configured"),
            )

        max_attempts = self._config.max_attempts
        backoff = ExponentialBackoff(
            base_delay=self._config.retry_base_delay,
            max_delay=self._config.retry_max_delay,
            jitter_range=0.0,
        )
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                await asyncio.to_thread(self._deliver, message)
                self._metrics.record_delivery(self.name, success=True)
                if attempt > 1:
                    logger.info("Email delivered on attempt %d", attempt)
                return
            except Exception as e:
                last_error = e
                logger.warning(
                    "Failed to send email (attempt %d/%d): %s",
                    attempt, max_attempts, e,
                )

            if attempt < max_attempts:
                await asyncio.sleep(backoff.next_delay())

        self._metrics.record_delivery(self.name, success=False)
        raise NotificationDeliveryError(self.name, max_attempts, last_error)

    def _deliver(self, message: EmailMessage) -> None:
        cfg = self._config
        if cfg.smtp_port == 465:
            server: smtplib.SMTP = smtplib.SMTP_SSL(
                cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout_seconds,
            )
        else:
            server = smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout_seconds)

        with server:
            if cfg.use_tls and cfg.smtp_port != 465:
                server.starttls()
            if cfg.smtp_user and cfg.smtp_password:
                server.login(cfg.smtp_user, cfg.smtp_password)
            server.send_message(message)


def render_alert_html(notification: Notification) -> str:
    """Render the HTML body of an alert email."""
    background = _SEVERITY_BACKGROUND.get(notification.severity, "#ffffff")
    unit = notification.sensor_type.unit
    return (
        f'<div style="padding:20px;background-color:{background}">'
        "<h2>Sensor Alert</h2>"
        f"<p><strong>Type:</strong> {notification.sensor_type.value}</p>"
        f"<p><strong>Status:</strong> {notification.severity.value}</p>"
        f"<p><strong>Value:</strong> {notification.value:g}{unit}</p>"
        f"<p><strong>Message:</strong> {html.escape(notification.message)}</p>"
        f"<p><strong>Time:</strong> {notification.timestamp.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}</p>"
        "</div>"
    )
