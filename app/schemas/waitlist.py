"""Waiting-list API schemas."""

from datetime import datetime

from pydantic import EmailStr, Field

from app.domain.enums import WaitlistStatus
from app.schemas.base import CamelModel


class WaitlistJoinRequest(CamelModel):
    """Request body for POST /waitlist (public)."""

    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    inbox: str | None = Field(default=None, max_length=320, description="Inbox alias to connect")
    description: str | None = Field(default=None, max_length=2000)


class WaitlistAdminCreate(WaitlistJoinRequest):
    """Request body for POST /admin/waitlist; admins may pre-approve."""

    status: WaitlistStatus = WaitlistStatus.PENDING


class WaitlistStatusUpdate(CamelModel):
    status: WaitlistStatus


class WaitlistEntryResponse(CamelModel):
    id: str
    email: str
    name: str
    inbox: str | None = None
    description: str | None = None
    status: str
    created_at: datetime | None = None
