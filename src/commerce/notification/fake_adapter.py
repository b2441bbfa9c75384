"""Fake dispatcher: records notifications in memory for test assertions."""

from commerce.notification.port import NotificationDispatcher, NotificationError, Severity


class FakeDispatcher(NotificationDispatcher):
    def __init__(self):
        self.user_notices: list[dict] = []
        self.admin_notices: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def notify_user(self, user_id, title, message, severity=Severity.INFO, deep_link=None):
        if not self.should_succeed:
            raise NotificationError(self.failure_reason)
        self.user_notices.append(
            {
                "user_id": str(user_id),
                "title": title,
                "message": message,
                "severity": Severity(severity).value,
                "deep_link": deep_link,
            }
        )

    def notify_admins(self, title, message, severity=Severity.INFO, deep_link=None):
        if not self.should_succeed:
            raise NotificationError(self.failure_reason)
        self.admin_notices.append(
            {
                "title": title,
                "message": message,
                "severity": Severity(severity).value,
                "deep_link": deep_link,
            }
        )

    def reset(self):
        self.user_notices.clear()
        self.admin_notices.clear()
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"
