"""Account ORM model: the credential store unifying local and federated identities."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.domain.enums import AccountRole, AccountStatus, AuthProvider
from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import CuidTimestampModel

# Column prefix per federated provider: <prefix>_id, _access_token, _refresh_token, _access_token_expires_at
_PROVIDER_PREFIX: dict[AuthProvider, str] = {
    AuthProvider.GOOGLE: "google",
    AuthProvider.MICROSOFT: "microsoft",
    AuthProvider.YAHOO: "yahoo",
}


class Account(CuidTimestampModel, Base):
    """Account model. Table: account. Email is unique and stored lowercased."""

    __tablename__ = "account"

    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(32), nullable=False, default=AccountRole.USER.value, server_default="user"
    )
    auth_provider: Mapped[str] = mapped_column(
        String(32), nullable=False, default=AuthProvider.LOCAL.value, server_default="local"
    )
    password_hash: Mapped[str | None] = mapped_column(String, nullable=True)

    google_id: Mapped[str | None] = mapped_column(String, nullable=True)
    google_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    google_refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    google_access_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    microsoft_id: Mapped[str | None] = mapped_column(String, nullable=True)
    microsoft_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    microsoft_refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    microsoft_access_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    yahoo_id: Mapped[str | None] = mapped_column(String, nullable=True)
    yahoo_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    yahoo_refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    yahoo_access_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    yahoo_app_password: Mapped[str | None] = mapped_column(Text, nullable=True)

    profile_picture: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=AccountStatus.ACTIVE.value, server_default="active"
    )
    verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    first_login: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    inbox_list: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    important_keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    subscription: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    last_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE.value

    @property
    def has_google_auth(self) -> bool:
        return bool(self.google_id or self.google_access_token)

    @property
    def has_microsoft_auth(self) -> bool:
        return bool(self.microsoft_id or self.microsoft_access_token)

    @property
    def has_yahoo_auth(self) -> bool:
        return bool(self.yahoo_id or self.yahoo_access_token or self.yahoo_app_password)

    def provider_credentials(
        self, provider: AuthProvider
    ) -> tuple[str | None, str | None, str | None, datetime | None]:
        """Return the stored (id, access_token, refresh_token, expires_at) for provider."""
        prefix = _PROVIDER_PREFIX[provider]
        return (
            getattr(self, f"{prefix}_id"),
            getattr(self, f"{prefix}_access_token"),
            getattr(self, f"{prefix}_refresh_token"),
            getattr(self, f"{prefix}_access_token_expires_at"),
        )

    def set_provider_credentials(
        self,
        provider: AuthProvider,
        *,
        provider_id: str | None,
        access_token: str,
        refresh_token: str | None,
        expires_at: datetime | None,
    ) -> None:
        """Write auth_provider together with its credential tuple.

        A None refresh_token keeps the stored one (providers omit it on re-consent).
        """
        prefix = _PROVIDER_PREFIX[provider]
        self.auth_provider = provider.value
        if provider_id:
            setattr(self, f"{prefix}_id", provider_id)
        setattr(self, f"{prefix}_access_token", access_token)
        if refresh_token:
            setattr(self, f"{prefix}_refresh_token", refresh_token)
        setattr(self, f"{prefix}_access_token_expires_at", expires_at)


def provider_columns(provider: AuthProvider) -> dict[str, str]:
    """Column names of a provider's credential tuple (for bulk UPDATE statements)."""
    prefix = _PROVIDER_PREFIX[provider]
    return {
        "id": f"{prefix}_id",
        "access_token": f"{prefix}_access_token",
        "refresh_token": f"{prefix}_refresh_token",
        "expires_at": f"{prefix}_access_token_expires_at",
    }
