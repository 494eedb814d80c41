"""Auth API: OAuth login, local login/registration, token refresh, logout, profile.

The OAuth callback never answers with JSON: every outcome becomes a
browser redirect to the frontend. It commits the session only when an
account was linked.
"""

from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.cookies import REFRESH_COOKIE, clear_auth_cookies, set_auth_cookies
from app.api.v1.dependencies import (
    get_account_profile_service,
    get_app_settings,
    get_current_account,
    get_db,
    get_local_auth_service,
    get_oauth_flow,
    get_token_service,
)
from app.application.dtos.auth import InternalTokenPair
from app.application.services.account_profile import AccountProfileService
from app.application.services.local_auth_service import LocalAuthService
from app.application.services.oauth_flow import LinkedOutcome, OAuthFlowController
from app.application.services.token_service import TokenService
from app.core.config import Settings
from app.core.limiter import limit_auth, limit_writes
from app.domain.exceptions import InvalidRefreshTokenException
from app.infrastructure.persistence.models.account import Account
from app.schemas.account import AccountResponse
from app.schemas.auth import (
    LoginRequest,
    MessageResponse,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
    TokenPairResponse,
)
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _token_response(
    account: Account, pair: InternalTokenPair, response: Response, settings: Settings
) -> TokenPairResponse:
    set_auth_cookies(response, pair, settings)
    return TokenPairResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        user=AccountResponse.model_validate(account),
    )


@router.get("/oauth/{provider}", status_code=307)
async def oauth_login(
    provider: str,
    flow: Annotated[OAuthFlowController, Depends(get_oauth_flow)],
    redirect: str | None = Query(None, description="Path to return to after login"),
) -> RedirectResponse:
    """Redirect the browser to the provider's consent screen (unknown provider: 400)."""
    return RedirectResponse(flow.initiate(provider, redirect), status_code=307)


@router.get("/{provider}/callback", status_code=302)
async def oauth_callback(
    provider: str,
    flow: Annotated[OAuthFlowController, Depends(get_oauth_flow)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    """Complete the OAuth flow and redirect to the frontend with tokens or a reason."""
    outcome = await flow.complete(provider, code, state, error)
    frontend = settings.frontend_url.rstrip("/")
    if isinstance(outcome, LinkedOutcome):
        await db.commit()
        await flow.after_commit(outcome)
        query = urlencode(
            {
                "accessToken": outcome.tokens.access_token,
                "refreshToken": outcome.tokens.refresh_token,
                "redirect": outcome.redirect,
            }
        )
        response = RedirectResponse(f"{frontend}{settings.oauth_callback_path}?{query}", status_code=302)
        set_auth_cookies(response, outcome.tokens, settings)
        return response

    await db.rollback()
    message = getattr(outcome, "reason", None) or getattr(outcome, "message", "")
    query = urlencode({"message": message})
    return RedirectResponse(f"{frontend}{settings.oauth_error_path}?{query}", status_code=302)


@router.post("/login", response_model=TokenPairResponse)
@limit_auth
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    auth_service: Annotated[LocalAuthService, Depends(get_local_auth_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
):
    """Authenticate with email and password; set session cookies."""
    account, pair = await auth_service.login(body.email, body.password)
    return _token_response(account, pair, response, settings)


@router.post("/register", response_model=TokenPairResponse, status_code=201)
@limit_auth
async def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    auth_service: Annotated[LocalAuthService, Depends(get_local_auth_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
):
    """Create a local account (duplicate email: 409) and start its session."""
    account, pair = await auth_service.register(body.email, body.password, body.name)
    return _token_response(account, pair, response, settings)


@router.post("/refresh", response_model=TokenPairResponse)
@limit_auth
async def refresh(
    request: Request,
    response: Response,
    token_service: Annotated[TokenService, Depends(get_token_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    body: RefreshRequest | None = None,
):
    """Rotate the refresh token from the body, or from the refreshToken cookie."""
    refresh_token = (body.refresh_token if body else None) or request.cookies.get(REFRESH_COOKIE)
    if not refresh_token:
        raise InvalidRefreshTokenException()
    account, pair = await token_service.refresh(refresh_token)
    return _token_response(account, pair, response, settings)


@router.get("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    account: Annotated[Account, Depends(get_current_account)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
):
    """Revoke the stored refresh token and clear both cookies."""
    await token_service.revoke(account.id)
    clear_auth_cookies(response, settings)
    logger.info("Account %s logged out", account.id)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=AccountResponse)
async def get_me(account: Annotated[Account, Depends(get_current_account)]):
    """Return the authenticated account's profile."""
    return AccountResponse.model_validate(account)


@router.put("/profile", response_model=AccountResponse)
@limit_writes
async def update_profile(
    request: Request,
    body: ProfileUpdate,
    account: Annotated[Account, Depends(get_current_account)],
    profile_service: Annotated[AccountProfileService, Depends(get_account_profile_service)],
):
    """Change the display name and/or profile picture ("" removes the picture)."""
    updated = await profile_service.update_profile(
        account, name=body.name, profile_picture=body.profile_picture
    )
    return AccountResponse.model_validate(updated)
