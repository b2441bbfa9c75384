"""Tests for best-effort notification fan-out."""

from commerce.notification.helpers import notify_admins, notify_user
from commerce.notification.port import Severity


class TestNotifyUser:
    def test_every_channel_receives_it(self, in_app, email):
        delivered = notify_user("buyer-1", "Order placed", "Thanks!", Severity.SUCCESS, "/orders/1")

        assert delivered == 2
        assert in_app.user_notices == email.user_notices
        assert in_app.user_notices[0]["severity"] == "SUCCESS"

    def test_one_broken_channel_does_not_stop_the_other(self, in_app, email):
        in_app.configure(should_succeed=False)

        delivered = notify_user("buyer-1", "Order placed", "Thanks!")

        assert delivered == 1
        assert in_app.user_notices == []
        assert len(email.user_notices) == 1


class TestNotifyAdmins:
    def test_failures_never_raise(self, in_app, email):
        in_app.configure(should_succeed=False)
        email.configure(should_succeed=False)

        assert notify_admins("New order received", "Order #ABC123") == 0
