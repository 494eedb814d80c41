"""Authentication dependencies: current account and role checks.

The access token is read from the Authorization bearer header or the
accessToken cookie. When it is missing or expired and a refreshToken cookie
is present, a new access token is issued transparently (no rotation) and
set as a cookie on the response.
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from typing import Annotated, Any

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.api.v1.cookies import ACCESS_COOKIE, REFRESH_COOKIE, set_access_cookie
from app.application.services.token_service import TokenService
from app.core.config import Settings
from app.domain.enums import AccountRole
from app.domain.exceptions import (
    AuthenticationException,
    AuthorizationException,
    TokenExpiredException,
)
from app.infrastructure.persistence.models.account import Account
from app.shared.telemetry.logging import get_logger

from .services import get_app_settings, get_token_service

logger = get_logger(__name__)

_http_bearer = HTTPBearer(auto_error=False)


async def get_current_account(
    request: Request,
    response: Response,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> Account:
    """Return the active account for the request; raise 401 otherwise."""
    token = credentials.credentials if credentials else request.cookies.get(ACCESS_COOKIE)
    expired = False
    if token:
        try:
            claims = token_service.verify(token)
        except TokenExpiredException:
            expired = True
        else:
            account = await token_service.account_repo.get_by_id(claims.account_id)
            if account is None or not account.is_active:
                raise AuthenticationException("Account not found or inactive")
            return account

    refresh_token = request.cookies.get(REFRESH_COOKIE)
    if not refresh_token:
        if expired:
            raise TokenExpiredException()
        raise AuthenticationException("Not authenticated")
    account, access_token = await token_service.reissue_access(refresh_token)
    set_access_cookie(response, access_token, settings)
    logger.debug("Reissued access token for account %s", account.id)
    return account


def require_roles(
    *roles: AccountRole,
) -> Callable[..., Coroutine[Any, Any, Account]]:
    """Dependency factory: require an authenticated account with one of roles."""
    allowed = {r.value for r in roles}

    async def _require(
        account: Annotated[Account, Depends(get_current_account)],
    ) -> Account:
        if account.role not in allowed:
            raise AuthorizationException("manage", f"Requires role: {', '.join(sorted(allowed))}")
        return account

    return _require


require_admin = require_roles(AccountRole.ADMIN, AccountRole.SUPER_ADMIN)
