"""OAuth provider drivers: authorization URL, code exchange, refresh, profile.

Each driver is built from an immutable ProviderConfig and an optional shared
httpx.AsyncClient (connection reuse when shared).
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, ClassVar
from urllib.parse import urlencode

import httpx
from msal import ConfidentialClientApplication

from app.application.dtos.auth import ProviderProfile, ProviderTokens
from app.domain.enums import AuthProvider
from app.infrastructure.exceptions import ProviderAuthRejectedError, ProviderOperationError
from app.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from app.infrastructure.external.oauth.registry import ProviderConfig

logger = get_logger(__name__)


class OAuthDriver(ABC):
    """Abstract OAuth driver: auth URL, token exchange, refresh, user info."""

    PROVIDER: ClassVar[AuthProvider]
    USERINFO_ENDPOINT: ClassVar[str]
    _RESERVED_PARAMS: ClassVar[frozenset[str]] = frozenset(
        {"client_id", "redirect_uri", "response_type", "scope", "state"}
    )

    def __init__(
        self,
        config: ProviderConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._shared_http = http_client

    @property
    def provider_name(self) -> str:
        return self.PROVIDER.display_name

    @asynccontextmanager
    async def _http_cm(self):
        """Yield shared HTTP client or a short-lived one (connection reuse when shared)."""
        if self._shared_http is not None:
            yield self._shared_http
            return
        async with httpx.AsyncClient(timeout=30.0) as client:
            yield client

    def build_authorization_url(self, state: str) -> str:
        """Build OAuth authorization URL with state."""
        extra = dict(self.config.authorization_params)
        conflicts = self._RESERVED_PARAMS & set(extra)
        if conflicts:
            raise ValueError(f"Cannot override reserved OAuth params: {conflicts}")
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.config.scopes),
            "state": state,
            **extra,
        }
        return f"{self.config.authorization_endpoint}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> ProviderTokens:
        """Exchange authorization code for provider tokens."""
        return await self._token_request(
            "exchange_code",
            {
                "code": code,
                "redirect_uri": self.config.redirect_uri,
                "grant_type": "authorization_code",
            },
        )

    async def refresh_access_token(self, refresh_token: str) -> ProviderTokens:
        """Refresh access token. Keeps the old refresh token when none is returned."""
        tokens = await self._token_request(
            "refresh_token",
            {"refresh_token": refresh_token, "grant_type": "refresh_token"},
        )
        if not tokens.refresh_token:
            tokens = ProviderTokens(
                access_token=tokens.access_token,
                refresh_token=refresh_token,
                expires_in=tokens.expires_in,
                scope=tokens.scope,
            )
        return tokens

    async def _token_request(self, operation: str, data: dict[str, str]) -> ProviderTokens:
        async with self._http_cm() as client:
            try:
                response = await client.post(
                    self.config.token_endpoint,
                    data={
                        "client_id": self.config.client_id,
                        "client_secret": self.config.client_secret,
                        **data,
                    },
                )
            except httpx.HTTPError as e:
                raise ProviderOperationError(self.provider_name, operation, e) from e
        if response.status_code != 200:
            logger.error(
                "%s %s failed: status=%d",
                self.provider_name,
                operation,
                response.status_code,
            )
            raise ProviderOperationError(
                self.provider_name,
                operation,
                f"status {response.status_code}",
                status_code=response.status_code,
            )
        return self._normalize_token_response(response.json())

    def _normalize_token_response(self, token_data: dict[str, Any]) -> ProviderTokens:
        """Normalize provider response to ProviderTokens."""
        if "access_token" not in token_data:
            raise ProviderOperationError(
                self.provider_name, "exchange_code", "response has no access_token"
            )
        expires_in = token_data.get("expires_in")
        return ProviderTokens(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token"),
            expires_in=int(expires_in) if expires_in is not None else None,
            scope=token_data.get("scope"),
        )

    async def get_profile(self, access_token: str) -> ProviderProfile:
        """Fetch the raw user profile from the provider."""
        async with self._http_cm() as client:
            try:
                response = await client.get(
                    self.USERINFO_ENDPOINT,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            except httpx.HTTPError as e:
                raise ProviderOperationError(self.provider_name, "get_profile", e) from e
        if response.status_code == 401:
            raise ProviderAuthRejectedError(self.provider_name, "get_profile")
        if response.status_code != 200:
            logger.error(
                "%s get user info failed: status=%d",
                self.provider_name,
                response.status_code,
            )
            raise ProviderOperationError(
                self.provider_name, "get_profile", f"status {response.status_code}"
            )
        return self._to_profile(response.json())

    @abstractmethod
    def _to_profile(self, data: dict[str, Any]) -> ProviderProfile:
        """Map the provider's profile document to ProviderProfile."""
        ...


class GoogleDriver(OAuthDriver):
    """Google OAuth driver (Gmail scopes, offline access)."""

    PROVIDER = AuthProvider.GOOGLE
    USERINFO_ENDPOINT = "https://www.googleapis.com/oauth2/v3/userinfo"

    def _to_profile(self, data: dict[str, Any]) -> ProviderProfile:
        return ProviderProfile(
            provider_user_id=data.get("sub") or data.get("id"),
            display_name=data.get("name") or data.get("displayName"),
            picture=data.get("picture"),
            raw=data,
        )


class MicrosoftDriver(OAuthDriver):
    """Microsoft identity platform driver (Graph /me profile, MSAL refresh)."""

    PROVIDER = AuthProvider.MICROSOFT
    USERINFO_ENDPOINT = "https://graph.microsoft.com/v1.0/me"

    def _to_profile(self, data: dict[str, Any]) -> ProviderProfile:
        return ProviderProfile(
            provider_user_id=data.get("id"),
            display_name=data.get("displayName"),
            picture=None,
            raw=data,
        )

    def _msal_app(self) -> ConfidentialClientApplication:
        return ConfidentialClientApplication(
            self.config.client_id,
            authority=self.config.authority,
            client_credential=self.config.client_secret,
        )

    async def refresh_access_token(self, refresh_token: str) -> ProviderTokens:
        """Refresh through MSAL (blocking client, run in a worker thread)."""
        app = self._msal_app()
        scopes = [s for s in self.config.scopes if s not in {"offline_access", "openid", "profile"}]
        result = await asyncio.to_thread(
            app.acquire_token_by_refresh_token, refresh_token, scopes=scopes
        )
        if "access_token" not in result:
            logger.error(
                "%s token refresh failed: %s",
                self.provider_name,
                result.get("error"),
            )
            raise ProviderOperationError(
                self.provider_name, "refresh_token", result.get("error_description")
            )
        expires_in = result.get("expires_in")
        return ProviderTokens(
            access_token=result["access_token"],
            refresh_token=result.get("refresh_token") or refresh_token,
            expires_in=int(expires_in) if expires_in is not None else None,
            scope=result.get("scope"),
        )


class YahooDriver(OAuthDriver):
    """Yahoo OAuth driver (OpenID userinfo)."""

    PROVIDER = AuthProvider.YAHOO
    USERINFO_ENDPOINT = "https://api.login.yahoo.com/openid/v1/userinfo"

    def _to_profile(self, data: dict[str, Any]) -> ProviderProfile:
        return ProviderProfile(
            provider_user_id=data.get("sub"),
            display_name=data.get("name") or data.get("nickname"),
            picture=data.get("picture"),
            raw=data,
        )


DRIVER_CLASSES: dict[AuthProvider, type[OAuthDriver]] = {
    AuthProvider.GOOGLE: GoogleDriver,
    AuthProvider.MICROSOFT: MicrosoftDriver,
    AuthProvider.YAHOO: YahooDriver,
}
