"""Pydantic request/response schemas for the API."""

from app.schemas.account import AccountResponse, AccountStatusUpdate
from app.schemas.auth import (
    LoginRequest,
    MessageResponse,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
    TokenPairResponse,
)
from app.schemas.email import EmailListResponse, EmailResponse
from app.schemas.health import HealthResponse
from app.schemas.waitlist import WaitlistEntryResponse, WaitlistJoinRequest

__all__ = [
    "AccountResponse",
    "AccountStatusUpdate",
    "EmailListResponse",
    "EmailResponse",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "ProfileUpdate",
    "RefreshRequest",
    "RegisterRequest",
    "TokenPairResponse",
    "WaitlistEntryResponse",
    "WaitlistJoinRequest",
]
