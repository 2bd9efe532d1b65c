"""GitHub identity resolution through Supabase Auth.

The frontend completes the GitHub OAuth flow with Supabase and hands us the
Supabase access token; we exchange it for the GitHub identity tuple.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from wocboard.config import get_settings
from wocboard.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class IdentityProviderError(ExternalServiceError):
    """Identity provider rejected the token or could not be reached.

    ``status`` is 401 for a rejected token, otherwise the provider is
    treated as unavailable.
    """

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 401 if self.status == 401 else 503


@dataclass(frozen=True)
class Identity:
    provider_id: str
    username: str
    email: str
    full_name: str
    avatar_url: str


def identity_from_user(data: dict[str, Any]) -> Identity:
    """Build an Identity from a Supabase ``/auth/v1/user`` payload."""
    meta = data.get("user_metadata") or {}
    username = meta.get("user_name") or meta.get("preferred_username")
    email = data.get("email") or meta.get("email")
    if not username or not email:
        msg = "Identity is missing a GitHub username or email"
        raise IdentityProviderError(msg, status=401)

    return Identity(
        provider_id=str(meta.get("provider_id") or data.get("id")),
        username=username,
        email=email,
        full_name=meta.get("full_name") or meta.get("name") or username,
        avatar_url=meta.get("avatar_url") or "",
    )


class SupabaseIdentityProvider:
    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_role_key = service_role_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> SupabaseIdentityProvider:
        settings = get_settings()
        return cls(
            base_url=settings.supabase_url,
            service_role_key=settings.supabase_service_role_key,
            timeout=settings.identity_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.service_role_key)

    async def get_identity(self, access_token: str) -> Identity:
        """Resolve a Supabase access token to a GitHub identity.

        Raises:
            IdentityProviderError: Token rejected, provider misconfigured or unreachable.
        """
        if not self.configured:
            logger.error("Supabase identity provider is not configured")
            msg = "Authentication service not available"
            raise IdentityProviderError(msg, status=503)

        url = f"{self.base_url}/auth/v1/user"
        headers = {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {access_token}",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Identity provider unreachable: %s", exc)
            msg = "Authentication service not available"
            raise IdentityProviderError(msg, status=503, url=url) from exc

        if resp.status_code in (401, 403):
            msg = "Invalid access token"
            raise IdentityProviderError(msg, status=401, url=url)
        if resp.status_code >= 400:
            logger.error("Identity provider error %d: %s", resp.status_code, resp.text[:200])
            msg = "Authentication service error"
            raise IdentityProviderError(msg, status=503, url=url)

        return identity_from_user(resp.json())
