"""Provider profile helpers: email extraction order and profile-picture lookup."""

from __future__ import annotations

import base64
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx

from app.application.dtos.auth import ProviderProfile
from app.domain.enums import AuthProvider
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

GRAPH_PHOTO_URL = "https://graph.microsoft.com/v1.0/me/photo/$value"


def _field(name: str) -> Callable[[dict[str, Any]], Any]:
    return lambda raw: raw.get(name)


def _first_listed_email(raw: dict[str, Any]) -> Any:
    emails = raw.get("emails")
    if isinstance(emails, list) and emails:
        first = emails[0]
        return first.get("value") if isinstance(first, dict) else first
    return None


# Ordered candidates per provider; the first usable address wins.
_EMAIL_SOURCES: dict[AuthProvider, tuple[Callable[[dict[str, Any]], Any], ...]] = {
    AuthProvider.GOOGLE: (_field("email"), _first_listed_email),
    AuthProvider.MICROSOFT: (_field("mail"), _field("userPrincipalName")),
    AuthProvider.YAHOO: (_field("email"), _first_listed_email),
}


def extract_email(provider: AuthProvider, profile: ProviderProfile) -> str | None:
    """Return the first usable email in the provider's fallback order, or None."""
    for source in _EMAIL_SOURCES.get(provider, ()):
        value = source(profile.raw)
        if isinstance(value, str) and "@" in value.strip():
            return value.strip()
    return None


class HttpProfilePictureFetcher:
    """Resolve a profile picture. Microsoft photos are inlined as data URIs."""

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._shared_http = http_client

    @asynccontextmanager
    async def _http_cm(self):
        if self._shared_http is not None:
            yield self._shared_http
            return
        async with httpx.AsyncClient(timeout=15.0) as client:
            yield client

    async def fetch(
        self, provider: AuthProvider, access_token: str, profile: ProviderProfile
    ) -> str | None:
        if provider is AuthProvider.MICROSOFT:
            photo = await self._graph_photo(access_token)
            if photo:
                return photo
            raw = profile.raw
            return raw.get("photo") or raw.get("picture") or None
        return profile.picture

    async def _graph_photo(self, access_token: str) -> str | None:
        async with self._http_cm() as client:
            response = await client.get(
                GRAPH_PHOTO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        if response.status_code != 200 or not response.content:
            logger.debug("Graph photo unavailable: status=%d", response.status_code)
            return None
        content_type = response.headers.get("content-type", "image/jpeg").split(";")[0]
        encoded = base64.b64encode(response.content).decode("ascii")
        return f"data:{content_type};base64,{encoded}"
