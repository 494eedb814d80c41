"""Email operation API schemas."""

from datetime import datetime
from typing import Any

from pydantic import Field

from app.schemas.base import CamelModel


class AttachmentResponse(CamelModel):
    id: str
    filename: str
    mime_type: str
    size: int | None = None


class EmailResponse(CamelModel):
    """Provider-agnostic message."""

    id: str
    thread_id: str | None = None
    subject: str
    sender: str = Field(serialization_alias="from")
    recipients: list[str] = Field(serialization_alias="to")
    cc: list[str] = Field(default_factory=list)
    timestamp: datetime | None = Field(default=None, serialization_alias="date")
    snippet: str = ""
    body: str = ""
    is_read: bool = False
    is_starred: bool = False
    labels: list[str] = Field(default_factory=list)
    attachments: list[AttachmentResponse] = Field(default_factory=list)


class EmailListResponse(CamelModel):
    messages: list[EmailResponse]
    next_page_token: str | None = None


class EmailCountResponse(CamelModel):
    count: int


class SendResultResponse(CamelModel):
    id: str | None = None
    thread_id: str | None = None
    status: str = "sent"


class SummaryResponse(CamelModel):
    summary: str


class KeywordsUpdate(CamelModel):
    keywords: list[str] = Field(..., max_length=200)


class KeywordsResponse(CamelModel):
    keywords: list[str]
    effective_keywords: list[str]


class AppPasswordUpdate(CamelModel):
    app_password: str = Field(..., min_length=1, max_length=256)


class MoveRequest(CamelModel):
    folder: str = Field(..., min_length=1, max_length=255)


class FolderCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)


class FolderResponse(CamelModel):
    id: str
    name: str


def to_email_response(message: Any) -> EmailResponse:
    """Build EmailResponse from an adapter EmailMessage dataclass."""
    return EmailResponse.model_validate(message)
