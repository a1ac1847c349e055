"""Service-account credential exchange for the push gateway.

A signed JWT assertion (RS256) is traded at the identity provider's token
endpoint for a short-lived bearer token. Nothing here is cached: every
dispatch asks for a fresh credential.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import httpx
import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from rendplus.config import settings
from rendplus.errors import ConfigurationError, CredentialExchangeError

logger = logging.getLogger(__name__)

# Google rejects assertions valid for longer than one hour
ASSERTION_TTL_SECONDS = 3600
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


@dataclass(frozen=True)
class ServiceAccount:
    client_email: str
    private_key: str
    project_id: str
    token_uri: str = DEFAULT_TOKEN_URI

    @classmethod
    def from_json(cls, raw: str | dict, token_uri: str | None = None) -> "ServiceAccount":
        if not raw:
            raise ConfigurationError("Firebase service account secret not configured")
        if isinstance(raw, str):
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Service account secret is not valid JSON: {e}") from e
        else:
            data = raw
        missing = [k for k in ("client_email", "private_key", "project_id") if not data.get(k)]
        if missing:
            raise ConfigurationError(f"Service account secret is missing: {', '.join(missing)}")
        return cls(
            client_email=data["client_email"],
            private_key=data["private_key"],
            project_id=data["project_id"],
            token_uri=token_uri or data.get("token_uri") or DEFAULT_TOKEN_URI,
        )

    @classmethod
    def from_settings(cls) -> "ServiceAccount":
        return cls.from_json(settings.firebase_service_account, token_uri=settings.token_uri)


@dataclass(frozen=True)
class GatewayCredential:
    access_token: str
    issued_at: datetime
    expires_at: datetime
    token_type: str = "Bearer"

    @property
    def authorization(self) -> str:
        return f"{self.token_type} {self.access_token}"


def load_signing_key(pem: str) -> RSAPrivateKey:
    """Parse a PEM private key, accepting the escaped newlines env files often carry."""
    material = pem.replace("\\n", "\n").strip().encode()
    try:
        key = serialization.load_pem_private_key(material, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConfigurationError(f"Service account private key could not be parsed: {e}") from e
    if not isinstance(key, RSAPrivateKey):
        raise ConfigurationError("Service account private key must be an RSA key")
    return key


def build_assertion(account: ServiceAccount, scope: str,
                    now: datetime | None = None) -> tuple[str, datetime, datetime]:
    """Return the signed assertion together with its validity window."""
    key = load_signing_key(account.private_key)
    issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    expires_at = issued_at + timedelta(seconds=ASSERTION_TTL_SECONDS)
    claims = {
        "iss": account.client_email,
        "scope": scope,
        "aud": account.token_uri,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    assertion = jwt.encode(claims, key, algorithm="RS256", headers={"typ": "JWT"})
    return assertion, issued_at, expires_at


class CredentialExchange:
    def __init__(self, account: ServiceAccount, scope: str | None = None,
                 timeout: float | None = None):
        self.account = account
        self.scope = scope or settings.fcm_scope
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds

    async def fetch(self, client: httpx.AsyncClient | None = None,
                    now: datetime | None = None) -> GatewayCredential:
        """Exchange a fresh assertion for a bearer token.

        The key is parsed before any request is made, so a malformed key
        fails with ``ConfigurationError`` without touching the network.
        """
        assertion, issued_at, _ = build_assertion(self.account, self.scope, now=now)
        if client is None:
            async with httpx.AsyncClient(timeout=self.timeout) as own_client:
                return await self._exchange(own_client, assertion, issued_at)
        return await self._exchange(client, assertion, issued_at)

    async def _exchange(self, client: httpx.AsyncClient, assertion: str,
                        issued_at: datetime) -> GatewayCredential:
        try:
            response = await client.post(
                self.account.token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Token endpoint timed out: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise CredentialExchangeError(f"Token endpoint unreachable: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        if not response.is_success:
            logger.error("Error getting access token: %s %s", response.status_code, payload)
            raise CredentialExchangeError(
                "Failed to get access token from the identity provider",
                status_code=response.status_code,
                body=payload,
            )
        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            raise CredentialExchangeError(
                "Identity provider response has no access_token",
                status_code=response.status_code,
                body=payload,
            )
        try:
            expires_in = int(payload.get("expires_in") or ASSERTION_TTL_SECONDS)
        except (TypeError, ValueError) as e:
            raise CredentialExchangeError(
                f"Identity provider returned an invalid expires_in: {payload.get('expires_in')!r}",
                status_code=response.status_code,
                body=payload,
            ) from e
        return GatewayCredential(
            access_token=access_token,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=expires_in),
            token_type=payload.get("token_type") or "Bearer",
        )
