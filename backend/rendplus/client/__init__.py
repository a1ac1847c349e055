from rendplus.client.platform import BrowserPlatform, PermissionState, resolve_once
from rendplus.client.registration import RegistrationFlow, RegistrationState
from rendplus.client.renderer import NotificationRenderer
from rendplus.client.router import ClickOutcome, ClickRouter
from rendplus.client.worker import BackgroundContext, NotificationClickEvent, PushEvent

__all__ = [
    "BrowserPlatform", "PermissionState", "resolve_once",
    "RegistrationFlow", "RegistrationState", "NotificationRenderer",
    "ClickOutcome", "ClickRouter",
    "BackgroundContext", "NotificationClickEvent", "PushEvent",
]
