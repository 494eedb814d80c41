"""OAuth login flow: build the provider redirect and resolve the callback.

complete() never raises for provider, gate or persistence failures; it
returns exactly one outcome so the endpoint can turn it into a browser
redirect (and decide whether to commit).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from app.application.dtos.auth import InternalTokenPair
from app.application.services.identity_linker import IdentityLinker
from app.application.services.waitlist_gate import WaitlistGate
from app.domain.enums import AuthProvider
from app.domain.exceptions import UnsupportedProviderException, WaitlistDeniedException
from app.infrastructure.external.oauth.drivers import OAuthDriver
from app.infrastructure.external.oauth.registry import ProviderRegistry
from app.infrastructure.security.state_codec import OAuthStateCodec
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import traced

if TYPE_CHECKING:
    from app.infrastructure.persistence.models.account import Account

logger = get_logger(__name__)

GENERIC_FAILURE_MESSAGE = "Authentication failed. Please try again."
PROVIDER_DENIED_MESSAGE = "Sign-in was cancelled or denied by {provider}."


@dataclass(frozen=True)
class LinkedOutcome:
    account: Account
    tokens: InternalTokenPair
    redirect: str
    created: bool = False
    welcome_due: bool = False


@dataclass(frozen=True)
class DeniedOutcome:
    reason: str
    redirect: str


@dataclass(frozen=True)
class FailedOutcome:
    message: str
    redirect: str


OAuthOutcome = LinkedOutcome | DeniedOutcome | FailedOutcome


class OAuthFlowController:
    """Drive one OAuth login from authorization redirect to linked account."""

    def __init__(
        self,
        registry: ProviderRegistry,
        state_codec: OAuthStateCodec,
        gate: WaitlistGate,
        linker: IdentityLinker,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.registry = registry
        self.state_codec = state_codec
        self.gate = gate
        self.linker = linker
        self._http_client = http_client

    def _driver(self, provider: str) -> tuple[AuthProvider, OAuthDriver]:
        tag = AuthProvider.parse(provider)
        driver = self.registry.driver(tag, http_client=self._http_client) if tag else None
        if tag is None or driver is None:
            raise UnsupportedProviderException(provider)
        return tag, driver

    def initiate(self, provider: str, redirect: str | None = None) -> str:
        """Return the provider authorization URL carrying a signed state.

        Raises:
            UnsupportedProviderException: provider unknown or not configured.
        """
        _, driver = self._driver(provider)
        return driver.build_authorization_url(self.state_codec.encode(redirect))

    @traced("oauth.complete")
    async def complete(
        self,
        provider: str,
        code: str | None,
        state: str | None,
        error: str | None = None,
    ) -> OAuthOutcome:
        """Resolve a provider callback into Linked, Denied or Failed."""
        redirect = self.state_codec.decode(state)
        try:
            tag, driver = self._driver(provider)
        except UnsupportedProviderException as e:
            logger.warning("OAuth callback for unsupported provider %s", provider)
            return FailedOutcome(message=e.message, redirect=redirect)

        if error:
            logger.info("%s returned error on callback: %s", tag.value, error)
            return DeniedOutcome(
                reason=PROVIDER_DENIED_MESSAGE.format(provider=tag.display_name),
                redirect=redirect,
            )
        if not code:
            logger.warning("%s callback without code", tag.value)
            return FailedOutcome(message=GENERIC_FAILURE_MESSAGE, redirect=redirect)

        try:
            tokens = await driver.exchange_code(code)
            profile = await driver.get_profile(tokens.access_token)
            email = self.linker.resolve_email(tag, profile)
            gate_result = await self.gate.ensure_approved(email)
            result = await self.linker.link(tag, profile, tokens, gate_result.entry)
        except WaitlistDeniedException as e:
            return DeniedOutcome(reason=e.message, redirect=redirect)
        except Exception as e:
            logger.error("OAuth callback for %s failed: %s", tag.value, e, exc_info=True)
            return FailedOutcome(message=GENERIC_FAILURE_MESSAGE, redirect=redirect)

        logger.info(
            "OAuth login linked account %s via %s (created=%s)",
            result.account.id,
            tag.value,
            result.created,
        )
        return LinkedOutcome(
            account=result.account,
            tokens=result.tokens,
            redirect=redirect,
            created=result.created,
            welcome_due=result.welcome_due,
        )

    async def after_commit(self, outcome: LinkedOutcome) -> None:
        """Side effects that must only follow a committed link."""
        if outcome.welcome_due:
            await self.linker.send_welcome(outcome.account)
