import logging
from enum import Enum
from urllib.parse import urljoin
from rendplus.client.platform import Clients, DisplayedNotification
from rendplus.config import settings

logger = logging.getLogger(__name__)

class ClickOutcome(str, Enum):
    DISMISSED = "dismissed"
    FOCUSED = "focused"
    OPENED = "opened"
    NONE = "none"

class ClickRouter:
    """Routes a notification activation to an open tab or a new one.

    Relative targets such as ``/`` are resolved against ``origin`` (the
    ``site_origin`` setting by default) before being compared with client
    URLs, which are always absolute. An empty origin compares URLs as given.
    """

    def __init__(self, clients: Clients, origin: str | None = None):
        self.clients = clients
        self.origin = origin if origin is not None else settings.site_origin

    def target_url(self, notification: DisplayedNotification) -> str:
        url = notification.data.get("url") or "/"
        return urljoin(self.origin, url) if self.origin else url

    async def route(self, notification: DisplayedNotification, action: str = "") -> ClickOutcome:
        notification.close()
        if action == "dismiss":
            logger.debug("Notification dismissed")
            return ClickOutcome.DISMISSED

        url = self.target_url(notification)
        try:
            for client in await self.clients.match_all(include_uncontrolled=True):
                if client.url == url and client.can_focus:
                    await client.focus()
                    return ClickOutcome.FOCUSED
            opened = await self.clients.open_window(url)
        except Exception:
            logger.exception("Could not focus or open a window for %s", url)
            return ClickOutcome.NONE
        if opened is None:
            logger.info("Platform refused to open a window for %s", url)
            return ClickOutcome.NONE
        return ClickOutcome.OPENED
