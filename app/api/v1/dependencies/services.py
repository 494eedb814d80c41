"""Application service dependencies (composition root).

Process-wide collaborators (provider registry, adapters, cipher, shared
HTTP client) are created in the lifespan and read from app.state; when the
lifespan did not run (e.g. ASGITransport in tests) they are built from
settings on first use and cached on app.state.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Any

import httpx
from fastapi import Depends, Request

from app.application.services.account_profile import AccountProfileService
from app.application.services.email_operations import EmailOperationsService
from app.application.services.identity_linker import IdentityLinker
from app.application.services.local_auth_service import LocalAuthService
from app.application.services.oauth_flow import OAuthFlowController
from app.application.services.token_service import TokenService
from app.application.services.waitlist_gate import WaitlistGate
from app.core.config import Settings, get_settings
from app.infrastructure.external.email.factory import EmailAdapterFactory
from app.infrastructure.external.notifications.welcome import build_welcome_notifier
from app.infrastructure.external.oauth.profile import HttpProfilePictureFetcher
from app.infrastructure.external.oauth.registry import ProviderRegistry, build_provider_registry
from app.infrastructure.external.summarizer import build_summarizer
from app.infrastructure.persistence.repositories import (
    AccountRepository,
    ProviderTokenStore,
    WaitlistRepository,
)
from app.infrastructure.security.state_codec import OAuthStateCodec
from app.infrastructure.security.token_cipher import build_token_cipher

from . import db as db_deps


def get_app_settings() -> Settings:
    return get_settings()


def _from_state(request: Request, name: str, factory: Callable[[], Any]) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        value = factory()
        setattr(request.app.state, name, value)
    return value


def get_http_client(request: Request) -> httpx.AsyncClient | None:
    """Shared outbound HTTP client from the lifespan (None outside it)."""
    return getattr(request.app.state, "oauth_http_client", None)


def get_provider_registry(request: Request) -> ProviderRegistry:
    return _from_state(request, "provider_registry", lambda: build_provider_registry(get_settings()))


def get_token_cipher(request: Request) -> Any:
    return _from_state(request, "token_cipher", lambda: build_token_cipher(get_settings()))


def get_email_adapters(request: Request) -> EmailAdapterFactory:
    return _from_state(
        request,
        "email_adapters",
        lambda: EmailAdapterFactory.from_settings(get_settings(), http_client=get_http_client(request)),
    )


def get_welcome_notifier(request: Request) -> Any:
    return _from_state(request, "welcome_notifier", lambda: build_welcome_notifier(get_settings()))


def get_summarizer(request: Request) -> Any:
    """Configured summarizer or None (summarize then answers 503)."""
    summarizer = getattr(request.app.state, "summarizer", None)
    if summarizer is None:
        summarizer = build_summarizer(get_settings(), http_client=get_http_client(request))
    return summarizer


def get_state_codec(settings: Annotated[Settings, Depends(get_app_settings)]) -> OAuthStateCodec:
    return OAuthStateCodec(
        settings.jwt_secret.get_secret_value(),
        default_redirect=settings.default_redirect,
    )


async def get_token_service(
    account_repo: Annotated[AccountRepository, Depends(db_deps.get_account_repo)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> TokenService:
    return TokenService.from_settings(account_repo, settings)


async def get_local_auth_service(
    account_repo: Annotated[AccountRepository, Depends(db_deps.get_account_repo)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
) -> LocalAuthService:
    return LocalAuthService(account_repo, token_service)


async def get_oauth_flow(
    request: Request,
    account_repo: Annotated[AccountRepository, Depends(db_deps.get_callback_account_repo)],
    waitlist_repo: Annotated[WaitlistRepository, Depends(db_deps.get_callback_waitlist_repo)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    state_codec: Annotated[OAuthStateCodec, Depends(get_state_codec)],
) -> OAuthFlowController:
    """OAuth controller bound to the callback's caller-committed session."""
    http_client = get_http_client(request)
    linker = IdentityLinker(
        account_repo,
        TokenService.from_settings(account_repo, settings),
        get_token_cipher(request),
        picture_fetcher=HttpProfilePictureFetcher(http_client),
        welcome_notifier=get_welcome_notifier(request),
    )
    return OAuthFlowController(
        get_provider_registry(request),
        state_codec,
        WaitlistGate(waitlist_repo),
        linker,
        http_client=http_client,
    )


async def get_email_operations(
    request: Request,
    account_repo: Annotated[AccountRepository, Depends(db_deps.get_account_repo)],
) -> EmailOperationsService:
    return EmailOperationsService(
        account_repo,
        get_email_adapters(request),
        get_token_cipher(request),
        get_provider_registry(request),
        summarizer=get_summarizer(request),
        http_client=get_http_client(request),
        token_store=ProviderTokenStore(),
    )


async def get_account_profile_service(
    account_repo: Annotated[AccountRepository, Depends(db_deps.get_account_repo)],
) -> AccountProfileService:
    return AccountProfileService(account_repo)
