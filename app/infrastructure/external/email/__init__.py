"""Email integration: adapter protocol, factory and provider adapters."""

from app.infrastructure.external.email.factory import EmailAdapterFactory
from app.infrastructure.external.email.protocols import (
    AttachmentRef,
    EmailMessage,
    EmailPage,
    FolderInfo,
    IEmailAdapter,
    OutgoingAttachment,
    OutgoingEmail,
    ProviderCredentials,
    SendResult,
)

__all__ = [
    "AttachmentRef",
    "EmailAdapterFactory",
    "EmailMessage",
    "EmailPage",
    "FolderInfo",
    "IEmailAdapter",
    "OutgoingAttachment",
    "OutgoingEmail",
    "ProviderCredentials",
    "SendResult",
]
