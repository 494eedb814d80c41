"""Email adapter protocol and data structures (provider-agnostic)."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Protocol

from app.domain.enums import AuthProvider, EmailFilter
from app.shared.utils.datetime import ensure_utc, utc_now

# Treat a token as expired this long before its recorded expiry.
EXPIRY_SKEW = timedelta(seconds=60)


@dataclass
class ProviderCredentials:
    """Decrypted credentials handed to an adapter for one operation."""

    provider: AuthProvider
    email_address: str
    access_token: str | None
    refresh_token: str | None = None
    expires_at: datetime | None = None
    password: str | None = None  # Yahoo app password

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utc_now()) >= ensure_utc(self.expires_at) - EXPIRY_SKEW


@dataclass
class AttachmentRef:
    """Attachment metadata (content fetched separately)."""

    id: str
    filename: str
    mime_type: str
    size: int | None = None


@dataclass
class EmailMessage:
    """Universal email message structure (provider-agnostic)."""

    id: str
    thread_id: str | None
    subject: str
    sender: str
    recipients: list[str]
    timestamp: datetime | None
    snippet: str = ""
    body: str = ""
    cc: list[str] = field(default_factory=list)
    is_read: bool = False
    is_starred: bool = False
    labels: list[str] = field(default_factory=list)
    attachments: list[AttachmentRef] = field(default_factory=list)
    provider_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class EmailPage:
    """One page of messages plus an opaque cursor for the next page."""

    messages: list[EmailMessage]
    next_page_token: str | None = None


@dataclass
class OutgoingAttachment:
    filename: str
    content: bytes
    mime_type: str = "application/octet-stream"


@dataclass
class OutgoingEmail:
    """Message to send or save as draft."""

    to: list[str]
    subject: str
    body: str
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    attachments: list[OutgoingAttachment] = field(default_factory=list)
    html: bool = False
    in_reply_to: str | None = None
    references: str | None = None
    thread_id: str | None = None


@dataclass
class SendResult:
    """Provider acknowledgement of a send, reply or draft."""

    id: str | None
    thread_id: str | None = None
    status: str = "sent"


@dataclass
class FolderInfo:
    id: str
    name: str


class IEmailAdapter(Protocol):
    """Uniform email operations implemented once per provider (DIP)."""

    provider: AuthProvider

    async def fetch_emails(
        self,
        creds: ProviderCredentials,
        email_filter: EmailFilter = EmailFilter.ALL,
        query: str | None = None,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> EmailPage:
        """Return one page of messages matching filter and query."""
        ...

    async def search_emails(
        self,
        creds: ProviderCredentials,
        query: str,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> EmailPage:
        """Full-text search across the mailbox."""
        ...

    async def read_email(self, creds: ProviderCredentials, email_id: str) -> EmailMessage:
        """Return one message with its body."""
        ...

    async def send_email(self, creds: ProviderCredentials, message: OutgoingEmail) -> SendResult:
        """Send a new message."""
        ...

    async def reply_to_email(
        self, creds: ProviderCredentials, email_id: str, message: OutgoingEmail
    ) -> SendResult:
        """Reply to a message in its thread."""
        ...

    async def create_draft(self, creds: ProviderCredentials, message: OutgoingEmail) -> SendResult:
        """Save a draft."""
        ...

    async def trash_email(self, creds: ProviderCredentials, email_id: str) -> None:
        """Move a message to the trash."""
        ...

    async def mark_as_read(self, creds: ProviderCredentials, email_id: str) -> None:
        """Mark a message as read."""
        ...

    async def move_to_folder(self, creds: ProviderCredentials, email_id: str, folder: str) -> None:
        """Move a message into folder (Gmail: label)."""
        ...

    async def create_folder(self, creds: ProviderCredentials, name: str) -> FolderInfo:
        """Create a folder (Gmail: label)."""
        ...

    async def count_emails(
        self,
        creds: ProviderCredentials,
        email_filter: EmailFilter = EmailFilter.ALL,
        query: str | None = None,
    ) -> int:
        """Return the (possibly estimated) number of matching messages."""
        ...
