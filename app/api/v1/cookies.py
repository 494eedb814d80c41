"""Session cookies carrying the internal token pair.

Both cookies are httpOnly with path "/"; in production they are also
Secure with SameSite=lax.
"""

from fastapi import Response

from app.application.dtos.auth import InternalTokenPair
from app.core.config import Settings

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _cookie_kwargs(settings: Settings) -> dict:
    return {
        "httponly": True,
        "path": "/",
        "secure": settings.is_production,
        "samesite": "lax",
    }


def set_access_cookie(response: Response, access_token: str, settings: Settings) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        access_token,
        max_age=settings.access_token_expire_minutes * 60,
        **_cookie_kwargs(settings),
    )


def set_auth_cookies(response: Response, pair: InternalTokenPair, settings: Settings) -> None:
    set_access_cookie(response, pair.access_token, settings)
    response.set_cookie(
        REFRESH_COOKIE,
        pair.refresh_token,
        max_age=settings.refresh_token_expire_days * 86400,
        **_cookie_kwargs(settings),
    )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, **_cookie_kwargs(settings))
