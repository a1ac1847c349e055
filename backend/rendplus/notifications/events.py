from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

TEST_SENDER_NAME = "Test Notification"

class EventKind(str, Enum):
    QUOTE_SUBMISSION = "quote-submission"
    TEST = "test"

@dataclass
class NotificationEvent:
    """A message produced by a business event. Never persisted."""
    kind: EventKind
    title: str
    body: str
    target_url: str = "/"
    metadata: dict[str, str] = field(default_factory=dict)

    def data(self) -> dict[str, str]:
        """String-only data map delivered alongside the notification."""
        return {
            "type": self.kind.value.replace("-", "_"),
            **{k: str(v) for k, v in self.metadata.items()},
            "url": self.target_url,
        }

def build_quote_event(user_name: str, user_email: str = "", target_url: str = "/",
                      now: datetime | None = None) -> NotificationEvent:
    now = now or datetime.now(timezone.utc)
    metadata = {"userName": user_name, "userEmail": user_email or "", "timestamp": now.isoformat()}
    if user_name == TEST_SENDER_NAME:
        return NotificationEvent(
            kind=EventKind.TEST,
            title="🧪 Test Notification Received",
            body=f"Triggered by {user_email}.",
            target_url=target_url,
            metadata=metadata,
        )
    return NotificationEvent(
        kind=EventKind.QUOTE_SUBMISSION,
        title="🔔 New Quote Submission",
        body=f"{user_name} has submitted a new quote request. Please check it!",
        target_url=target_url,
        metadata=metadata,
    )

def build_test_event(message: str, target_url: str = "/") -> NotificationEvent:
    return NotificationEvent(kind=EventKind.TEST, title="🧪 Test Notification", body=message, target_url=target_url)
