"""Browser-side opt-in flow for admin push notifications.

    Unregistered -> BackgroundContextRegistering -> PermissionPending
        -> PermissionGranted | PermissionDenied
        -> TokenPending -> Registered | TokenFailed

``Unsupported`` is entered directly when the platform lacks the required
APIs. Denial is terminal for the session; the user has to change the browser
setting before trying again.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Protocol

from rendplus.client.platform import BackgroundRegistration, BrowserPlatform, PermissionState
from rendplus.client.renderer import NotificationRenderer
from rendplus.config import settings
from rendplus.errors import (
    NotificationsDisabledError,
    PermissionDeniedError,
    RegistryError,
    TokenUnavailableError,
    UnsupportedPlatformError,
)
from rendplus.logging import token_preview
from rendplus.notifications.events import build_test_event

logger = logging.getLogger(__name__)

SERVICE_WORKER_URL = "/firebase-messaging-sw.js"
SERVICE_WORKER_SCOPE = "/"


class RegistrationState(str, Enum):
    UNREGISTERED = "unregistered"
    UNSUPPORTED = "unsupported"
    BACKGROUND_CONTEXT_REGISTERING = "background-context-registering"
    PERMISSION_PENDING = "permission-pending"
    PERMISSION_GRANTED = "permission-granted"
    PERMISSION_DENIED = "permission-denied"
    TOKEN_PENDING = "token-pending"
    REGISTERED = "registered"
    TOKEN_FAILED = "token-failed"


class DeviceRegistryPort(Protocol):
    async def upsert(self, owner_id: str, token: str) -> None: ...

    async def remove(self, owner_id: str) -> None: ...


class RegistrationFlow:
    def __init__(self, platform: BrowserPlatform, registry: DeviceRegistryPort, vapid_key: str,
                 renderer: NotificationRenderer | None = None,
                 permission_timeout: float | None = None):
        self.platform = platform
        self.registry = registry
        self.vapid_key = vapid_key
        self.renderer = renderer or NotificationRenderer(platform.get_registration)
        self.permission_timeout = (
            permission_timeout if permission_timeout is not None else settings.permission_timeout_seconds
        )
        self.state = RegistrationState.UNREGISTERED
        self.token: str | None = None
        self.persist_error: RegistryError | None = None

    @property
    def is_enabled(self) -> bool:
        return self.state == RegistrationState.REGISTERED

    def _transition(self, state: RegistrationState) -> None:
        logger.debug("Registration state %s -> %s", self.state.value, state.value)
        self.state = state

    def permission_status(self) -> PermissionState:
        if not self.platform.supports_notifications():
            return PermissionState.UNSUPPORTED
        return self.platform.permission()

    async def enable(self, owner_id: str) -> str:
        """Run the full opt-in and return the device token.

        If the token is obtained but persisting it fails, the flow still ends
        in ``Registered`` and the ``RegistryError`` is raised to the caller.
        """
        if not owner_id:
            raise ValueError("owner_id is required")
        if not (self.platform.supports_notifications() and self.platform.supports_background_context()):
            self._transition(RegistrationState.UNSUPPORTED)
            raise UnsupportedPlatformError("This browser does not support notifications or service workers")

        self._transition(RegistrationState.BACKGROUND_CONTEXT_REGISTERING)
        registration = await self.platform.register_background_context(SERVICE_WORKER_URL, SERVICE_WORKER_SCOPE)

        self._transition(RegistrationState.PERMISSION_PENDING)
        await self.platform.background_ready()
        permission = await self._resolve_permission()

        if permission == PermissionState.DENIED:
            self._transition(RegistrationState.PERMISSION_DENIED)
            logger.warning("Notification permission denied")
            raise PermissionDeniedError(
                "Notification permission was denied. Please enable notifications in your browser settings and try again."
            )
        if permission != PermissionState.GRANTED:
            # Prompt dismissed without a decision; the user may ask again
            self._transition(RegistrationState.UNREGISTERED)
            raise PermissionDeniedError(
                "Notification permission was not granted. Please allow notifications and try again."
            )
        self._transition(RegistrationState.PERMISSION_GRANTED)

        token = await self._obtain_token(registration)
        self.token = token
        self.persist_error = None
        self._transition(RegistrationState.REGISTERED)

        try:
            await self.registry.upsert(owner_id, token)
        except RegistryError as e:
            logger.warning("Device token obtained but could not be saved: %s", e)
            self.persist_error = e
            raise

        await self.renderer.render(
            "🔔 Notifications Enabled!",
            "You will now receive push notifications for new quote submissions on all your devices.",
        )
        return token

    async def _resolve_permission(self) -> PermissionState:
        permission = self.platform.permission()
        if permission != PermissionState.DEFAULT:
            return permission
        try:
            return await asyncio.wait_for(self.platform.request_permission(), self.permission_timeout)
        except asyncio.TimeoutError:
            self._transition(RegistrationState.UNREGISTERED)
            raise TimeoutError("Timed out waiting for a notification permission decision")

    async def _obtain_token(self, registration: BackgroundRegistration) -> str:
        self._transition(RegistrationState.TOKEN_PENDING)
        try:
            token = await self.platform.get_token(self.vapid_key, registration)
        except Exception as e:
            self._transition(RegistrationState.TOKEN_FAILED)
            raise TokenUnavailableError(f"An error occurred while retrieving token: {e}") from e
        if not token:
            self._transition(RegistrationState.TOKEN_FAILED)
            raise TokenUnavailableError("No registration token available")
        logger.info("Device token received: %s", token_preview(token))
        return token

    async def on_token_refresh(self, owner_id: str, token: str) -> bool:
        """Persist a rotated token. Ignored unless the flow is registered."""
        if not self.is_enabled or not token or token == self.token:
            return False
        self.token = token
        await self.registry.upsert(owner_id, token)
        return True

    async def disable(self, owner_id: str, unregister_background: bool = True) -> None:
        """Remove the registration and clear local state, even if removal fails."""
        error: RegistryError | None = None
        try:
            await self.registry.remove(owner_id)
        except RegistryError as e:
            logger.warning("Could not remove device token: %s", e)
            error = e

        self.token = None
        self.persist_error = None
        self._transition(RegistrationState.UNREGISTERED)

        if unregister_background and self.platform.supports_background_context():
            for registration in await self.platform.get_registrations():
                if registration.script_url.endswith(SERVICE_WORKER_URL):
                    await registration.unregister()
                    logger.info("Background context unregistered")
        if error is not None:
            raise error

    async def send_test(self, message: str) -> bool:
        """Render a test notification locally, without going through the gateway."""
        if not self.is_enabled:
            raise NotificationsDisabledError("Notifications are not enabled")
        return await self.renderer.render_event(build_test_event(message))
