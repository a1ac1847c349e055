"""The background execution context, modelled as a single actor.

The context holds no per-tab state. Events reach it only through ``post``;
each handler extends the event's lifetime with ``wait_until`` and the actor
waits for those extensions to settle before taking the next event, the same
way the platform keeps a service worker alive while notifications render.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable

from rendplus.client.platform import BackgroundRegistration, Clients, DisplayedNotification
from rendplus.client.renderer import NotificationRenderer, title_and_body
from rendplus.client.router import ClickRouter

logger = logging.getLogger(__name__)


class ExtendableEvent:
    def __init__(self):
        self._pending: list[asyncio.Future] = []

    def wait_until(self, awaitable: Awaitable) -> None:
        self._pending.append(asyncio.ensure_future(awaitable))

    async def settled(self) -> list:
        if not self._pending:
            return []
        return await asyncio.gather(*self._pending, return_exceptions=True)


class PushEvent(ExtendableEvent):
    def __init__(self, payload: dict | None):
        super().__init__()
        self.payload = payload


class NotificationClickEvent(ExtendableEvent):
    def __init__(self, notification: DisplayedNotification, action: str = ""):
        super().__init__()
        self.notification = notification
        self.action = action


class BackgroundContext:
    def __init__(self, registration: BackgroundRegistration, clients: Clients,
                 origin: str | None = None):
        self.renderer = NotificationRenderer.for_registration(registration)
        self.router = ClickRouter(clients, origin=origin)
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def post(self, event: ExtendableEvent) -> None:
        await self._inbox.put(event)

    async def run(self) -> None:
        """Process posted events until ``stop`` is called."""
        while True:
            event = await self._inbox.get()
            try:
                if event is None:
                    return
                await self.handle(event)
            finally:
                self._inbox.task_done()

    async def stop(self) -> None:
        await self._inbox.put(None)

    async def handle(self, event: ExtendableEvent) -> list:
        if isinstance(event, PushEvent):
            self.on_push(event)
        elif isinstance(event, NotificationClickEvent):
            self.on_notification_click(event)
        else:
            logger.warning("Ignoring unknown event %s", type(event).__name__)
        results = await event.settled()
        for result in results:
            if isinstance(result, BaseException):
                logger.error("Background handler failed: %s", result)
        return results

    def on_push(self, event: PushEvent) -> None:
        if not event.payload:
            logger.debug("Push event without payload")
            return
        title, body = title_and_body(event.payload)
        data = dict(event.payload.get("data") or {})
        event.wait_until(self.renderer.render(title, body, {"data": data}))

    def on_notification_click(self, event: NotificationClickEvent) -> None:
        event.wait_until(self.router.route(event.notification, event.action))
