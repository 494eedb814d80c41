"""Email operations for the authenticated account's connected mailbox.

Every route resolves the adapter from the account's auth provider; local
accounts get 400 UNSUPPORTED_PROVIDER. Static paths are declared before
/{email_id} so they are not captured as message ids.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from app.api.v1.dependencies import get_current_account, get_email_operations
from app.application.services.email_operations import EmailOperationsService, parse_filter
from app.core.limiter import limit_send, limit_writes
from app.domain.exceptions import ValidationException
from app.infrastructure.external.email.protocols import EmailPage, OutgoingAttachment, OutgoingEmail
from app.infrastructure.persistence.models.account import Account
from app.schemas.auth import MessageResponse
from app.schemas.email import (
    AppPasswordUpdate,
    EmailCountResponse,
    EmailListResponse,
    EmailResponse,
    FolderCreateRequest,
    FolderResponse,
    KeywordsResponse,
    KeywordsUpdate,
    MoveRequest,
    SendResultResponse,
    SummaryResponse,
    to_email_response,
)
from app.shared.utils.sanitization import split_addresses

router = APIRouter()

CurrentAccount = Annotated[Account, Depends(get_current_account)]
EmailOps = Annotated[EmailOperationsService, Depends(get_email_operations)]

MAX_ATTACHMENTS_BYTES = 25 * 1024 * 1024


async def _read_attachments(files: list[UploadFile] | None) -> list[OutgoingAttachment]:
    attachments: list[OutgoingAttachment] = []
    total = 0
    for upload in files or []:
        if not upload.filename:
            continue
        content = await upload.read()
        total += len(content)
        if total > MAX_ATTACHMENTS_BYTES:
            raise ValidationException("Attachments exceed 25 MB", field="attachments")
        attachments.append(
            OutgoingAttachment(
                filename=upload.filename,
                content=content,
                mime_type=upload.content_type or "application/octet-stream",
            )
        )
    return attachments


def _page_response(page: EmailPage) -> EmailListResponse:
    return EmailListResponse(
        messages=[to_email_response(m) for m in page.messages],
        next_page_token=page.next_page_token,
    )


@router.get("", response_model=EmailListResponse)
async def fetch_emails(
    account: CurrentAccount,
    ops: EmailOps,
    email_filter: str | None = Query(None, alias="filter"),
    query: str | None = None,
    max_results: int = Query(20, alias="maxResults", ge=1),
    page_token: str | None = Query(None, alias="pageToken"),
):
    """One page of messages in the given view (all, unread, sent, ...)."""
    page = await ops.fetch_emails(account, parse_filter(email_filter), query, max_results, page_token)
    return _page_response(page)


@router.get("/important", response_model=EmailListResponse)
async def fetch_important_emails(
    account: CurrentAccount,
    ops: EmailOps,
    email_filter: str | None = Query(None, alias="filter"),
    query: str | None = None,
    keywords: str | None = Query(None, description="Comma-separated extra keywords"),
    max_results: int = Query(20, alias="maxResults", ge=1),
    page_token: str | None = Query(None, alias="pageToken"),
):
    """One page filtered down to messages matching the important keywords."""
    extra = [k for k in (keywords or "").split(",") if k.strip()]
    page = await ops.fetch_important(
        account, parse_filter(email_filter), query, extra, max_results, page_token
    )
    return _page_response(page)


@router.get("/count", response_model=EmailCountResponse)
async def count_emails(
    account: CurrentAccount,
    ops: EmailOps,
    email_filter: str | None = Query(None, alias="filter"),
    query: str | None = None,
):
    count = await ops.count_emails(account, parse_filter(email_filter), query)
    return EmailCountResponse(count=count)


@router.get("/search", response_model=EmailListResponse)
async def search_emails(
    account: CurrentAccount,
    ops: EmailOps,
    query: str = Query(..., min_length=1),
    max_results: int = Query(20, alias="maxResults", ge=1),
    page_token: str | None = Query(None, alias="pageToken"),
):
    """Provider-native search (Gmail q, Graph $search, IMAP TEXT)."""
    page = await ops.search_emails(account, query, max_results, page_token)
    return _page_response(page)


@router.get("/keywords", response_model=KeywordsResponse)
async def get_keywords(account: CurrentAccount, ops: EmailOps):
    keywords, effective = ops.get_keywords(account)
    return KeywordsResponse(keywords=keywords, effective_keywords=effective)


@router.put("/keywords", response_model=KeywordsResponse)
@limit_writes
async def set_keywords(
    request: Request,
    body: KeywordsUpdate,
    account: CurrentAccount,
    ops: EmailOps,
):
    """Replace the stored keywords (deduplicated case-insensitively)."""
    keywords = await ops.set_keywords(account, body.keywords)
    return KeywordsResponse(keywords=keywords, effective_keywords=ops.effective_keywords(account))


@router.put("/yahoo/app-password", response_model=MessageResponse)
@limit_writes
async def set_yahoo_app_password(
    request: Request,
    body: AppPasswordUpdate,
    account: CurrentAccount,
    ops: EmailOps,
):
    """Store an encrypted Yahoo app password for IMAP/SMTP fallback."""
    await ops.set_yahoo_app_password(account, body.app_password)
    return MessageResponse(message="Yahoo app password saved")


@router.get("/summarize/{email_id}", response_model=SummaryResponse)
async def summarize_email(email_id: str, account: CurrentAccount, ops: EmailOps):
    """Summarize one message (503 when no summarizer is configured)."""
    summary = await ops.summarize(account, email_id)
    return SummaryResponse(summary=summary)


@router.post("/send", response_model=SendResultResponse)
@limit_send
async def send_email(
    request: Request,
    account: CurrentAccount,
    ops: EmailOps,
    to: str = Form(...),
    subject: str = Form(""),
    message: str = Form(""),
    cc: str | None = Form(None),
    bcc: str | None = Form(None),
    attachments: list[UploadFile] | None = File(None),
):
    """Send a new message; to/cc/bcc are comma-separated addresses."""
    outgoing = OutgoingEmail(
        to=split_addresses(to),
        subject=subject,
        body=message,
        cc=split_addresses(cc),
        bcc=split_addresses(bcc),
        attachments=await _read_attachments(attachments),
    )
    result = await ops.send_email(account, outgoing)
    return SendResultResponse.model_validate(result)


@router.post("/drafts", response_model=SendResultResponse, status_code=201)
@limit_writes
async def create_draft(
    request: Request,
    account: CurrentAccount,
    ops: EmailOps,
    to: str | None = Form(None),
    subject: str = Form(""),
    message: str = Form(""),
    cc: str | None = Form(None),
    bcc: str | None = Form(None),
    attachments: list[UploadFile] | None = File(None),
):
    """Save a draft; recipients are optional."""
    outgoing = OutgoingEmail(
        to=split_addresses(to),
        subject=subject,
        body=message,
        cc=split_addresses(cc),
        bcc=split_addresses(bcc),
        attachments=await _read_attachments(attachments),
    )
    result = await ops.create_draft(account, outgoing)
    return SendResultResponse.model_validate(result)


@router.post("/reply/{email_id}", response_model=SendResultResponse)
@limit_send
async def reply_to_email(
    request: Request,
    email_id: str,
    account: CurrentAccount,
    ops: EmailOps,
    message: str = Form(...),
    attachments: list[UploadFile] | None = File(None),
):
    """Reply to the sender of email_id within its thread."""
    outgoing = OutgoingEmail(
        to=[],
        subject="",
        body=message,
        attachments=await _read_attachments(attachments),
    )
    result = await ops.reply_to_email(account, email_id, outgoing)
    return SendResultResponse.model_validate(result)


@router.delete("/trash/{email_id}", response_model=MessageResponse)
@limit_writes
async def trash_email(request: Request, email_id: str, account: CurrentAccount, ops: EmailOps):
    await ops.trash_email(account, email_id)
    return MessageResponse(message="Email moved to trash")


@router.patch("/mark-as-read/{email_id}", response_model=MessageResponse)
@limit_writes
async def mark_as_read(request: Request, email_id: str, account: CurrentAccount, ops: EmailOps):
    await ops.mark_as_read(account, email_id)
    return MessageResponse(message="Email marked as read")


@router.post("/move/{email_id}", response_model=MessageResponse)
@limit_writes
async def move_to_folder(
    request: Request,
    email_id: str,
    body: MoveRequest,
    account: CurrentAccount,
    ops: EmailOps,
):
    """Move a message to a folder (Gmail: label add/remove)."""
    await ops.move_to_folder(account, email_id, body.folder)
    return MessageResponse(message=f"Email moved to {body.folder}")


@router.post("/folders", response_model=FolderResponse, status_code=201)
@limit_writes
async def create_folder(
    request: Request,
    body: FolderCreateRequest,
    account: CurrentAccount,
    ops: EmailOps,
):
    folder = await ops.create_folder(account, body.name)
    return FolderResponse.model_validate(folder)


@router.get("/{email_id}", response_model=EmailResponse)
async def read_email(email_id: str, account: CurrentAccount, ops: EmailOps):
    """Full message including the plain-text body."""
    message = await ops.read_email(account, email_id)
    return to_email_response(message)
