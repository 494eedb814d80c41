"""Immutable provider registry built once from settings at startup.

Providers without a configured client id are absent, so requests for them
fail as unsupported before any state is created.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import httpx

from app.core.config import Settings
from app.domain.enums import AuthProvider
from app.infrastructure.external.oauth.drivers import DRIVER_CLASSES, OAuthDriver
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

GOOGLE_SCOPES = (
    "openid",
    "email",
    "profile",
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/gmail.compose",
)
MICROSOFT_SCOPES = (
    "offline_access",
    "User.Read",
    "Mail.Read",
    "Mail.ReadWrite",
    "Mail.Send",
)
YAHOO_SCOPES = ("openid", "email", "profile", "mail-w")


@dataclass(frozen=True)
class ProviderConfig:
    """Static OAuth configuration of one provider."""

    provider: AuthProvider
    client_id: str
    client_secret: str
    redirect_uri: str
    scopes: tuple[str, ...]
    authorization_endpoint: str
    token_endpoint: str
    authorization_params: Mapping[str, str] = field(default_factory=dict)
    authority: str | None = None


class ProviderRegistry:
    """Read-only mapping of configured providers to their ProviderConfig."""

    def __init__(self, configs: Mapping[AuthProvider, ProviderConfig]) -> None:
        self._configs: Mapping[AuthProvider, ProviderConfig] = MappingProxyType(dict(configs))

    def __contains__(self, provider: object) -> bool:
        return provider in self._configs

    def get(self, provider: AuthProvider) -> ProviderConfig | None:
        return self._configs.get(provider)

    @property
    def providers(self) -> tuple[AuthProvider, ...]:
        return tuple(self._configs)

    def driver(
        self, provider: AuthProvider, *, http_client: httpx.AsyncClient | None = None
    ) -> OAuthDriver | None:
        """Return a driver for a configured provider, or None."""
        config = self._configs.get(provider)
        if config is None:
            return None
        return DRIVER_CLASSES[provider](config, http_client=http_client)


def build_provider_registry(settings: Settings) -> ProviderRegistry:
    """Build the registry from settings (called once in the lifespan)."""
    configs: dict[AuthProvider, ProviderConfig] = {}
    if settings.google_client_id:
        configs[AuthProvider.GOOGLE] = ProviderConfig(
            provider=AuthProvider.GOOGLE,
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret.get_secret_value(),
            redirect_uri=settings.google_redirect_uri,
            scopes=GOOGLE_SCOPES,
            authorization_endpoint="https://accounts.google.com/o/oauth2/v2/auth",
            token_endpoint="https://oauth2.googleapis.com/token",
            authorization_params=MappingProxyType(
                {
                    "access_type": "offline",
                    "prompt": "consent",
                    "include_granted_scopes": "true",
                }
            ),
        )
    if settings.microsoft_client_id:
        authority = f"https://login.microsoftonline.com/{settings.microsoft_tenant}"
        configs[AuthProvider.MICROSOFT] = ProviderConfig(
            provider=AuthProvider.MICROSOFT,
            client_id=settings.microsoft_client_id,
            client_secret=settings.microsoft_client_secret.get_secret_value(),
            redirect_uri=settings.microsoft_redirect_uri,
            scopes=MICROSOFT_SCOPES,
            authorization_endpoint=f"{authority}/oauth2/v2.0/authorize",
            token_endpoint=f"{authority}/oauth2/v2.0/token",
            authorization_params=MappingProxyType(
                {"response_mode": "query", "prompt": "select_account"}
            ),
            authority=authority,
        )
    if settings.yahoo_client_id:
        configs[AuthProvider.YAHOO] = ProviderConfig(
            provider=AuthProvider.YAHOO,
            client_id=settings.yahoo_client_id,
            client_secret=settings.yahoo_client_secret.get_secret_value(),
            redirect_uri=settings.yahoo_redirect_uri,
            scopes=YAHOO_SCOPES,
            authorization_endpoint="https://api.login.yahoo.com/oauth2/request_auth",
            token_endpoint="https://api.login.yahoo.com/oauth2/get_token",
        )
    logger.info(
        "OAuth providers configured: %s",
        ", ".join(p.value for p in configs) or "none",
    )
    return ProviderRegistry(configs)
