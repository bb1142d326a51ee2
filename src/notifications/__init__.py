"""Alert notifications.

Components:
- Notification / DispatchResult: stored alerts and dispatch outcomes
- NotificationStore: persistence for the notifications table
- AlertDispatcher: severity gate, recipient resolution, store, notify
- EmailNotifier: SMTP delivery with bounded retries
- CallerResolver / FallbackRecipientResolver: recipient policies
"""

from src.notifications.dispatcher import AlertDispatcher
from src.notifications.notifier import (
    AlertNotifier,
    EmailConfig,
    EmailNotifier,
    render_alert_html,
)
from src.notifications.repository import NotificationStore
from src.notifications.resolvers import (
    AlertRoutingConfig,
    CallerResolver,
    FallbackRecipientResolver,
    RecipientResolver,
)
from src.notifications.schemas import (
    DispatchResult,
    DispatchStatus,
    Notification,
)

__all__ = [
    "AlertDispatcher",
    "AlertNotifier",
    "AlertRoutingConfig",
    "CallerResolver",
    "DispatchResult",
    "DispatchStatus",
    "EmailConfig",
    "EmailNotifier",
    "FallbackRecipientResolver",
    "Notification",
    "NotificationStore",
    "RecipientResolver",
    "render_alert_html",
]
