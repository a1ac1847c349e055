"""Error taxonomy for device registration, rendering and dispatch.

Client-flow errors carry a ``hint`` that is safe to show to the administrator
who triggered the action. Dispatch errors are logged server-side and reported
to the caller as warnings.
"""
from __future__ import annotations

from typing import Any


class NotificationError(Exception):
    hint: str = ""

    def __init__(self, message: str = "", *, hint: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)
        if hint is not None:
            self.hint = hint


class ConfigurationError(NotificationError):
    """Deployment secret is missing or malformed."""


class UnsupportedPlatformError(NotificationError):
    """This browser does not support notifications or service workers."""

    hint = "Use a browser that supports web push notifications."


class PermissionDeniedError(NotificationError):
    """Notification permission was denied."""

    hint = "Please enable notifications in your browser settings and try again."


class TokenUnavailableError(NotificationError):
    """The push platform did not return a device token."""

    hint = "Try enabling notifications again."


class NotificationsDisabledError(NotificationError):
    """Notifications are not enabled."""

    hint = "Enable notifications first."


class RegistryError(NotificationError):
    """Device registry read or write failed."""


class CredentialExchangeError(NotificationError):
    """Identity provider rejected the signed assertion."""

    def __init__(self, message: str = "", *, status_code: int | None = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DeliveryError(NotificationError):
    """Notification could not be delivered to any device."""

    def __init__(self, message: str = "", *, attempted: int = 0, failures: list | None = None):
        super().__init__(message)
        self.attempted = attempted
        self.failures = failures or []
