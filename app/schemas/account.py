"""Account API schemas (never expose provider tokens or password hashes)."""

from datetime import datetime
from typing import Any

from pydantic import Field

from app.domain.enums import AccountStatus
from app.schemas.base import CamelModel


class AccountResponse(CamelModel):
    """Account profile returned by /auth/me and login responses."""

    id: str
    email: str
    name: str
    role: str
    auth_provider: str
    status: str
    verified: bool
    profile_picture: str | None = None
    inbox_list: list[str] = Field(default_factory=list)
    important_keywords: list[str] = Field(default_factory=list)
    subscription: dict[str, Any] = Field(default_factory=dict)
    has_google_auth: bool = False
    has_microsoft_auth: bool = False
    has_yahoo_auth: bool = False
    last_sync: datetime | None = None
    created_at: datetime | None = None


class AccountStatusUpdate(CamelModel):
    """Request body for PATCH /admin/accounts/{id}/status."""

    status: AccountStatus
