"""Auth API schemas."""

from pydantic import EmailStr, Field, model_validator

from app.schemas.account import AccountResponse
from app.schemas.base import CamelModel


class LoginRequest(CamelModel):
    """Request body for local email/password login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(CamelModel):
    """Request body for local registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    name: str = Field(default="", max_length=255)


class RefreshRequest(CamelModel):
    """Optional body for POST /auth/refresh; the refreshToken cookie is used when absent."""

    refresh_token: str | None = None


class TokenPairResponse(CamelModel):
    """Internal access/refresh pair plus the account it belongs to."""

    access_token: str
    refresh_token: str
    user: AccountResponse


class MessageResponse(CamelModel):
    message: str


class ProfileUpdate(CamelModel):
    """Request body for PUT /auth/profile; omitted fields are left unchanged."""

    name: str | None = Field(default=None, max_length=255)
    profile_picture: str | None = Field(default=None, max_length=2_000_000)

    @model_validator(mode="after")
    def require_a_field(self) -> "ProfileUpdate":
        if self.name is None and self.profile_picture is None:
            raise ValueError("Provide name or profilePicture")
        return self
