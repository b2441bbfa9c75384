"""Notification channel registry.

Each channel (in-app feed, email) is a separate dispatcher, and one broken channel
does not stop the others. Fake dispatchers are used unless something
else is registered.
"""

from commerce.notification.port import NotificationDispatcher

CHANNELS = ("in_app", "email")

_channel_instances: dict[str, NotificationDispatcher] = {}


def get_channel(name: str) -> NotificationDispatcher:
    if name not in CHANNELS:
        raise ValueError(f"Unknown notification channel: {name}")
    if name not in _channel_instances:
        from commerce.notification.fake_adapter import FakeDispatcher

        _channel_instances[name] = FakeDispatcher()
    return _channel_instances[name]


def set_channel(name: str, dispatcher: NotificationDispatcher) -> None:
    if name not in CHANNELS:
        raise ValueError(f"Unknown notification channel: {name}")
    _channel_instances[name] = dispatcher


def reset_channels() -> None:
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()
