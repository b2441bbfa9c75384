"""Best-effort notification helpers.

Every call goes to every channel, and every channel is tried on its own. A
failure is logged and dropped; nothing here raises.
"""

import structlog

from commerce.notification import CHANNELS, get_channel
from commerce.notification.port import Severity

logger = structlog.get_logger(__name__)


def notify_user(user_id, title, message, severity=Severity.INFO, deep_link=None) -> int:
    """Returns the number of channels that accepted the notification."""
    delivered = 0
    for name in CHANNELS:
        try:
            get_channel(name).notify_user(str(user_id), title, message, severity, deep_link)
            delivered += 1
        except Exception as exc:
            logger.warning(
                "user_notification_failed",
                channel=name,
                user_id=str(user_id),
                title=title,
                error=str(exc),
            )
    return delivered


def notify_admins(title, message, severity=Severity.INFO, deep_link=None) -> int:
    delivered = 0
    for name in CHANNELS:
        try:
            get_channel(name).notify_admins(title, message, severity, deep_link)
            delivered += 1
        except Exception as exc:
            logger.warning("admin_notification_failed", channel=name, title=title, error=str(exc))
    return delivered
