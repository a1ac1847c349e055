"""Ports onto the browser APIs the notification client depends on.

Concrete adapters live with the embedding runtime; tests provide fakes.
Every operation is a coroutine with a single outcome. Callback-style
platform APIs are adapted with ``resolve_once``.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable


class PermissionState(str, Enum):
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"
    UNSUPPORTED = "unsupported"


class DisplayedNotification(ABC):
    """A notification the platform has put on screen."""

    title: str
    options: dict

    @property
    def data(self) -> dict:
        return self.options.get("data") or {}

    @abstractmethod
    def close(self) -> None:
        ...


class BackgroundRegistration(ABC):
    """The registered background execution context (service worker)."""

    scope: str
    script_url: str

    @abstractmethod
    async def show_notification(self, title: str, options: dict) -> None:
        ...

    @abstractmethod
    async def unregister(self) -> bool:
        ...


class WindowClient(ABC):
    url: str

    @property
    def can_focus(self) -> bool:
        return True

    @abstractmethod
    async def focus(self) -> "WindowClient":
        ...


class Clients(ABC):
    """Open tabs and windows controlled by this site."""

    @abstractmethod
    async def match_all(self, include_uncontrolled: bool = True) -> list[WindowClient]:
        ...

    @abstractmethod
    async def open_window(self, url: str) -> WindowClient | None:
        """Open a new window; ``None`` when the platform refuses."""


class BrowserPlatform(ABC):
    @abstractmethod
    def supports_notifications(self) -> bool:
        ...

    @abstractmethod
    def supports_background_context(self) -> bool:
        ...

    @abstractmethod
    async def register_background_context(self, script_url: str, scope: str) -> BackgroundRegistration:
        ...

    @abstractmethod
    async def background_ready(self) -> BackgroundRegistration:
        """Suspend until the registered context is active."""

    @abstractmethod
    async def get_registration(self) -> BackgroundRegistration | None:
        ...

    @abstractmethod
    async def get_registrations(self) -> list[BackgroundRegistration]:
        ...

    @abstractmethod
    def permission(self) -> PermissionState:
        ...

    @abstractmethod
    async def request_permission(self) -> PermissionState:
        """Prompt the user; suspends until they respond."""

    @abstractmethod
    async def get_token(self, vapid_key: str, registration: BackgroundRegistration) -> str | None:
        ...


def resolve_once(start: Callable[[Callable[[Any], None], Callable[[BaseException], None]], Any]) -> asyncio.Future:
    """Wrap a callback API in a future that settles exactly once.

    ``start`` receives ``(on_success, on_failure)``. Later calls to either
    callback are ignored, as are calls after the awaiting side cancelled.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def _settle(setter: Callable[[Any], None], value: Any) -> None:
        if not future.done():
            setter(value)

    def on_success(value: Any) -> None:
        loop.call_soon_threadsafe(_settle, future.set_result, value)

    def on_failure(exc: BaseException) -> None:
        loop.call_soon_threadsafe(_settle, future.set_exception, exc)

    try:
        start(on_success, on_failure)
    except Exception as e:
        future.set_exception(e)
    return future
