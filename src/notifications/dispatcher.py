"""Alert dispatcher: turns a classified reading into a stored notification.

Decision flow for one reading:

1. NORMAL severity: nothing happens.
2. No recipient: logged and dropped.
3. Otherwise the notification is persisted, then the external notifier
   is attempted. Notifier failures are logged and never undo or fail
   the stored notification.

Pattern: Orchestrator, delegates to a stateless notifier.
"""

import logging

from src.errors import StorageError
from src.notifications.notifier import AlertNotifier
from src.notifications.repository import NotificationStore
from src.notifications.resolvers import RecipientResolver
from src.notifications.schemas import DispatchResult, DispatchStatus, Notification
from src.observability.metrics import MetricsCollector, get_metrics
from src.readings.schemas import Reading
from src.sensors.schemas import Severity

logger = logging.getLogger(__name__)


class AlertDispatcher:
    """Orchestrates notification persistence and external delivery.

    The same reading dispatched twice yields two stored notifications;
    no deduplication is attempted.
    """

    def __init__(
        self,
        store: NotificationStore,
        notifier: AlertNotifier | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._metrics = metrics or get_metrics()

    async def dispatch(
        self,
        reading: Reading,
        severity: Severity,
        resolver: RecipientResolver,
        message: str | None = None,
    ) -> DispatchResult:
        """Dispatch an alert for a classified reading.

        Args:
            reading: The reading that was classified.
            severity: Its classification.
            resolver: Chooses the recipient.
            message: Alert text; the standard template when omitted.

        Returns:
            DispatchResult describing the terminal state.

        Raises:
            StorageError: If the notification could not be stored.
        """
        if not severity.is_alert:
            self._metrics.record_dispatch(DispatchStatus.SKIPPED.value)
            return DispatchResult(status=DispatchStatus.SKIPPED)

        recipient = await resolver(reading)
        if recipient is None:
            logger.warning(
                "No recipient for %s %s alert (reading %s)",
                reading.sensor_type.value, severity.value, reading.reading_id,
            )
            self._metrics.record_dispatch(DispatchStatus.NO_RECIPIENT.value)
            return DispatchResult(status=DispatchStatus.NO_RECIPIENT)

        notification = Notification(
            sensor_type=reading.sensor_type,
            severity=severity,
            message=message or Notification.default_message(
                reading.sensor_type, severity, reading.value,
            ),
            value=reading.value,
            timestamp=reading.timestamp,
            principal_id=recipient.principal_id,
        )
        try:
            stored = await self._store.save(notification)
        except StorageError:
            self._metrics.record_dispatch("storage_failed")
            raise

        email_sent = False
        if self._notifier is not None and recipient.email:
            try:
                await self._notifier.send_alert(stored, recipient)
                email_sent = True
            except Exception as e:
                logger.error(
                    "Notification %s stored but %s delivery failed: %s",
                    stored.notification_id, self._notifier.name, e,
                )

        self._metrics.record_dispatch(DispatchStatus.SENT.value)
        logger.info(
            "Dispatched %s alert %s to %s (email_sent=%s)",
            severity.value, stored.notification_id, recipient.principal_id, email_sent,
        )
        return DispatchResult(
            status=DispatchStatus.SENT,
            notification=stored,
            email_sent=email_sent,
        )
