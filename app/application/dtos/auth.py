"""DTOs for identity linking and session tokens (no dependency on ORM)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.domain.enums import AuthProvider, WaitlistDecision

if TYPE_CHECKING:
    from app.infrastructure.persistence.models.account import Account
    from app.infrastructure.persistence.models.waitlist_entry import WaitlistEntry


@dataclass(frozen=True)
class InternalTokenPair:
    """Access/refresh JWTs issued by this service."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AccessClaims:
    """Verified access-token claims. Capability flags are snapshotted at issuance."""

    account_id: str
    email: str
    name: str
    role: str
    auth_provider: str
    has_google_auth: bool
    has_microsoft_auth: bool
    expires_at: datetime | None = None


@dataclass(frozen=True)
class ProviderTokens:
    """Provider OAuth tokens after code exchange or refresh."""

    access_token: str
    refresh_token: str | None
    expires_in: int | None
    scope: str | None = None


@dataclass(frozen=True)
class ProviderProfile:
    """Raw provider profile plus the fields every provider exposes."""

    provider_user_id: str | None
    display_name: str | None
    picture: str | None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GateResult:
    """Waiting-list gate outcome for one email."""

    decision: WaitlistDecision
    email: str
    reason: str | None = None
    entry: WaitlistEntry | None = None

    @property
    def approved(self) -> bool:
        return self.decision is WaitlistDecision.APPROVED


@dataclass(frozen=True)
class LinkResult:
    """Result of linking a federated identity to an account."""

    account: Account
    tokens: InternalTokenPair
    created: bool
    provider: AuthProvider
    welcome_due: bool = False
