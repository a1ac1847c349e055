import asyncio
import logging
from dataclasses import dataclass, field, asdict
import httpx
from sqlalchemy.orm import Session
from rendplus.config import settings
from rendplus.errors import DeliveryError
from rendplus.logging import token_preview
from rendplus.notifications.credentials import CredentialExchange, GatewayCredential, ServiceAccount, load_signing_key
from rendplus.notifications.events import NotificationEvent, build_quote_event
from rendplus.services.device_registry import DeviceRegistry

logger = logging.getLogger(__name__)

FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"

@dataclass
class DeliveryFailure:
    token: str
    status_code: int | None
    error: str

@dataclass
class DispatchResult:
    delivered: int
    attempted: int
    failures: list[DeliveryFailure] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "delivered": self.delivered,
            "attempted": self.attempted,
            "failures": [
                {**asdict(f), "token": token_preview(f.token)} for f in self.failures
            ],
        }

def build_message(token: str, event: NotificationEvent) -> dict:
    return {
        "message": {
            "token": token,
            "notification": {"title": event.title, "body": event.body},
            "data": event.data(),
            "webpush": {"fcm_options": {"link": event.target_url}},
        }
    }

class DispatchService:
    """Fans one event out to every registered device through the FCM v1 send API."""

    def __init__(self, registry: DeviceRegistry, account: ServiceAccount,
                 exchange: CredentialExchange | None = None,
                 client: httpx.AsyncClient | None = None, timeout: float | None = None):
        # A bad key must surface even when there are no devices to notify
        load_signing_key(account.private_key)
        self.registry = registry
        self.account = account
        self.exchange = exchange or CredentialExchange(account)
        self.client = client
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds

    @property
    def send_url(self) -> str:
        return FCM_SEND_URL.format(project_id=self.account.project_id)

    async def dispatch(self, event: NotificationEvent) -> DispatchResult:
        tokens = await asyncio.to_thread(self.registry.list_all)
        if not tokens:
            logger.info("No admin devices to notify")
            return DispatchResult(delivered=0, attempted=0)

        if self.client is None:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await self._fan_out(client, tokens, event)
        return await self._fan_out(self.client, tokens, event)

    async def _fan_out(self, client: httpx.AsyncClient, tokens: list[str],
                       event: NotificationEvent) -> DispatchResult:
        credential = await self.exchange.fetch(client)
        outcomes = await asyncio.gather(
            *(self._send(client, credential, token, event) for token in tokens)
        )
        failures = [o for o in outcomes if o is not None]
        delivered = len(tokens) - len(failures)

        if delivered == 0:
            logger.error("Failed to send notification to any of %d devices", len(tokens))
            raise DeliveryError(
                "Failed to send notification to any device.",
                attempted=len(tokens),
                failures=failures,
            )
        logger.info("Notification sent: %d delivered, %d failed", delivered, len(failures))
        return DispatchResult(delivered=delivered, attempted=len(tokens), failures=failures)

    async def _send(self, client: httpx.AsyncClient, credential: GatewayCredential,
                    token: str, event: NotificationEvent) -> DeliveryFailure | None:
        try:
            response = await client.post(
                self.send_url,
                json=build_message(token, event),
                headers={"Authorization": credential.authorization},
            )
        except httpx.HTTPError as e:
            logger.warning("Push failed for %s: %s", token_preview(token), e)
            return DeliveryFailure(token=token, status_code=None, error=str(e) or type(e).__name__)

        if response.is_success:
            logger.debug("Push sent to %s", token_preview(token))
            return None
        # Stale tokens (404 UNREGISTERED) are reported but left in the registry
        logger.warning("Push failed for %s: %s %s", token_preview(token),
                       response.status_code, response.text[:200])
        return DeliveryFailure(token=token, status_code=response.status_code, error=response.text[:500])

async def send_quote_notification(db: Session, user_name: str, user_email: str = "",
                                  client: httpx.AsyncClient | None = None) -> DispatchResult:
    account = ServiceAccount.from_settings()
    event = build_quote_event(user_name, user_email, target_url=settings.notification_link)
    service = DispatchService(DeviceRegistry(db), account, client=client)
    return await service.dispatch(event)
