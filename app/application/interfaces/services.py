"""Service interfaces (ports) for collaborators injected into application services."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from app.domain.enums import AuthProvider

if TYPE_CHECKING:
    from app.application.dtos.auth import ProviderProfile
    from app.infrastructure.external.email.protocols import EmailMessage
    from app.infrastructure.persistence.models.account import Account


class ITokenCipher(Protocol):
    """Encrypts provider tokens before storage and decrypts them on use."""

    def encrypt(self, plaintext: str | None) -> str | None:
        """Return the stored form of plaintext (None passes through)."""

    def decrypt(self, stored: str | None) -> str | None:
        """Return the plaintext of a stored value (None passes through)."""


class IWelcomeNotifier(Protocol):
    """Sends the one-time welcome message after the first successful login."""

    async def send_welcome(self, account: Account) -> None:
        """Send the welcome message; may raise on delivery failure."""


class IProfilePictureFetcher(Protocol):
    """Best-effort lookup of the provider profile picture."""

    async def fetch(
        self, provider: AuthProvider, access_token: str, profile: ProviderProfile
    ) -> str | None:
        """Return a URL or data URI, or None."""


class IEmailSummarizer(Protocol):
    """Summarizes one message (external AI service)."""

    async def summarize(self, message: EmailMessage) -> str:
        """Return a short summary of message."""
