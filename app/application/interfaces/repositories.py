"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

from app.domain.enums import AuthProvider, WaitlistStatus

if TYPE_CHECKING:
    from app.infrastructure.persistence.models.account import Account
    from app.infrastructure.persistence.models.waitlist_entry import WaitlistEntry


class IAccountRepository(Protocol):
    """Protocol for the account store (DIP)."""

    async def get_by_id(self, entity_id: str) -> Account | None:
        """Return account by id."""

    async def get_by_email(self, email: str) -> Account | None:
        """Return account by normalized email."""

    async def create_account(self, **fields: Any) -> Account:
        """Create an account (raises on duplicate email)."""

    async def save(self, obj: Account) -> Account:
        """Flush changes on an attached account."""

    async def set_refresh_token(self, account_id: str, token: str | None) -> None:
        """Store or clear the internal refresh token."""

    async def rotate_refresh_token(
        self, account_id: str, expected: str, new_token: str
    ) -> bool:
        """Compare-and-swap the refresh token."""

    async def consume_first_login(self, account_id: str) -> bool:
        """Clear first_login once; True for the winning caller."""

    async def update_provider_tokens(
        self,
        account_id: str,
        provider: AuthProvider,
        *,
        access_token: str,
        expires_at: datetime | None,
        refresh_token: str | None = None,
    ) -> None:
        """Persist a refreshed provider token."""


class IWaitlistRepository(Protocol):
    """Protocol for the waiting-list store (DIP)."""

    async def get_by_email(self, email: str) -> WaitlistEntry | None:
        """Return entry by normalized email."""

    async def create_entry(
        self,
        email: str,
        name: str,
        *,
        inbox: str | None = None,
        description: str | None = None,
        status: WaitlistStatus = WaitlistStatus.PENDING,
    ) -> WaitlistEntry:
        """Create an entry (raises on duplicate email)."""


class IProviderTokenStore(Protocol):
    """Protocol for persisting refreshed provider tokens."""

    async def update_provider_tokens(
        self,
        account_id: str,
        provider: AuthProvider,
        *,
        access_token: str,
        expires_at: datetime | None,
        refresh_token: str | None = None,
    ) -> None:
        """Store a refreshed access token (and a rotated refresh token, if any)."""
