"""Notification dispatcher port.

Delivery itself (email, SMS, in-app, sockets) happens outside this service.
The pipeline only needs these two calls.
"""

from abc import ABC, abstractmethod
from enum import Enum


class Severity(Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class NotificationError(Exception):
    """A channel refused or failed to deliver a notification."""


class NotificationDispatcher(ABC):
    @abstractmethod
    def notify_user(
        self,
        user_id: str,
        title: str,
        message: str,
        severity: Severity = Severity.INFO,
        deep_link: str | None = None,
    ) -> None: ...

    @abstractmethod
    def notify_admins(
        self,
        title: str,
        message: str,
        severity: Severity = Severity.INFO,
        deep_link: str | None = None,
    ) -> None: ...
