import logging
import httpx
from rendplus.config import settings
from rendplus.errors import RegistryError

logger = logging.getLogger(__name__)

class HttpRegistryClient:
    """Device Registry as seen from the browser: the API's device endpoints."""

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None,
                 timeout: float | None = None):
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds

    def _device_url(self, owner_id: str) -> str:
        return f"{self.base_url}/api/notifications/devices/{owner_id}"

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            if self.client is None:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, **kwargs)
            else:
                response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Device registry timed out: {e}") from e
        except httpx.HTTPError as e:
            raise RegistryError(f"Device registry unreachable: {e}") from e
        if not response.is_success:
            raise RegistryError(f"Device registry returned {response.status_code}: {response.text[:200]}")
        return response

    async def upsert(self, owner_id: str, token: str) -> None:
        await self._request("PUT", self._device_url(owner_id), json={"token": token})

    async def remove(self, owner_id: str) -> None:
        await self._request("DELETE", self._device_url(owner_id))

    async def vapid_key(self) -> str:
        response = await self._request("GET", f"{self.base_url}/api/notifications/vapid-key")
        return response.json()["publicKey"]
