"""Best-effort display of system notifications.

Both delivery paths end here: foreground messages received by an open page,
and push messages handled by the background context. Failures are logged and
reported as ``False``; they never propagate to the caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from rendplus.client.platform import BackgroundRegistration
from rendplus.config import settings
from rendplus.notifications.events import NotificationEvent

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Quote Submission"
DEFAULT_BODY = "You have a new quote submission to review"


@dataclass
class NotificationAction:
    action: str
    title: str


DEFAULT_ACTIONS = (
    NotificationAction("open", "Open App"),
    NotificationAction("dismiss", "Dismiss"),
)


@dataclass
class NotificationOptions:
    body: str = ""
    icon: str = field(default_factory=lambda: settings.notification_icon)
    badge: str = field(default_factory=lambda: settings.notification_icon)
    tag: str = field(default_factory=lambda: settings.notification_tag)
    require_interaction: bool = True
    silent: bool = False
    data: dict = field(default_factory=dict)
    actions: list[NotificationAction] = field(default_factory=lambda: list(DEFAULT_ACTIONS))

    def to_platform(self) -> dict:
        """Options in the shape the platform's showNotification expects."""
        return {
            "body": self.body,
            "icon": self.icon,
            "badge": self.badge,
            "tag": self.tag,
            "requireInteraction": self.require_interaction,
            "silent": self.silent,
            "data": {"url": settings.notification_link, **self.data},
            "actions": [{"action": a.action, "title": a.title} for a in self.actions],
        }


def title_and_body(payload: dict | None) -> tuple[str, str]:
    notification = (payload or {}).get("notification") or {}
    return notification.get("title") or DEFAULT_TITLE, notification.get("body") or DEFAULT_BODY


RegistrationProvider = Callable[[], Awaitable[BackgroundRegistration | None]]


class NotificationRenderer:
    def __init__(self, registration_provider: RegistrationProvider):
        self._registration_provider = registration_provider

    @classmethod
    def for_registration(cls, registration: BackgroundRegistration) -> "NotificationRenderer":
        async def provider() -> BackgroundRegistration:
            return registration
        return cls(provider)

    async def render(self, title: str, body: str, options: dict | None = None) -> bool:
        try:
            registration = await self._registration_provider()
            if registration is None:
                logger.info("No background context available; notification not shown: %s", title)
                return False
            opts = NotificationOptions(body=body, **(options or {}))
            await registration.show_notification(title, opts.to_platform())
            return True
        except Exception:
            logger.exception("Error showing notification %r", title)
            return False

    async def render_event(self, event: NotificationEvent, **options) -> bool:
        return await self.render(event.title, event.body, {"data": event.data(), **options})

    async def on_foreground_message(self, payload: dict) -> bool:
        """Render a message delivered while the page has focus."""
        logger.debug("Foreground message received: %s", payload)
        title, body = title_and_body(payload)
        return await self.render(title, body, {"data": dict(payload.get("data") or {})})
