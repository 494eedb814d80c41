"""Gmail adapter using the Gmail REST API (google-api-python-client).

The discovery client is blocking, so build() and every request.execute()
run in a worker thread. Gmail has labels rather than folders: moving a
message adds the target label and removes INBOX.
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Callable
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.domain.enums import AuthProvider, EmailFilter
from app.domain.exceptions import ResourceNotFoundException, ValidationException
from app.infrastructure.exceptions import ProviderAuthRejectedError, ProviderOperationError
from app.infrastructure.external.email.mime import (
    addresses,
    build_mime,
    reply_subject,
    to_base64url,
)
from app.infrastructure.external.email.protocols import (
    AttachmentRef,
    EmailMessage,
    EmailPage,
    FolderInfo,
    OutgoingEmail,
    ProviderCredentials,
    SendResult,
)
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import traced
from app.shared.utils.datetime import from_timestamp_ms_utc
from app.shared.utils.sanitization import html_to_text

logger = get_logger(__name__)

PROVIDER_NAME = "Gmail"
TOKEN_URI = "https://oauth2.googleapis.com/token"

# filter -> (labelIds, query, include spam/trash)
_FILTERS: dict[EmailFilter, tuple[list[str], str | None, bool]] = {
    EmailFilter.ALL: (["INBOX"], None, False),
    EmailFilter.READ: (["INBOX"], "is:read", False),
    EmailFilter.UNREAD: (["INBOX"], "is:unread", False),
    EmailFilter.ARCHIVED: ([], "-in:inbox -in:sent -in:drafts -in:trash -in:spam", False),
    EmailFilter.STARRED: (["STARRED"], None, False),
    EmailFilter.SENT: (["SENT"], None, False),
    EmailFilter.DRAFTS: (["DRAFT"], None, False),
    EmailFilter.IMPORTANT: (["IMPORTANT"], None, False),
    EmailFilter.TRASH: (["TRASH"], None, True),
}


def _decode_part_data(data: str | None) -> str:
    if not data:
        return ""
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4)).decode(
        "utf-8", errors="replace"
    )


def _walk_parts(payload: dict[str, Any]):
    yield payload
    for part in payload.get("parts", []) or []:
        yield from _walk_parts(part)


def parse_gmail_message(msg: dict[str, Any]) -> EmailMessage:
    """Parse a Gmail API message resource (format=full) into EmailMessage."""
    payload = msg.get("payload", {})
    headers = {h["name"].lower(): h["value"] for h in payload.get("headers", [])}
    label_ids = msg.get("labelIds", [])
    plain, html = "", ""
    attachments: list[AttachmentRef] = []
    for part in _walk_parts(payload):
        mime_type = part.get("mimeType", "")
        body = part.get("body", {}) or {}
        if part.get("filename"):
            attachments.append(
                AttachmentRef(
                    id=body.get("attachmentId", ""),
                    filename=part["filename"],
                    mime_type=mime_type or "application/octet-stream",
                    size=body.get("size"),
                )
            )
        elif mime_type == "text/plain" and not plain:
            plain = _decode_part_data(body.get("data"))
        elif mime_type == "text/html" and not html:
            html = _decode_part_data(body.get("data"))
    internal_date = msg.get("internalDate")
    return EmailMessage(
        id=msg["id"],
        thread_id=msg.get("threadId"),
        subject=headers.get("subject", ""),
        sender=headers.get("from", ""),
        recipients=addresses(headers.get("to")),
        cc=addresses(headers.get("cc")),
        timestamp=from_timestamp_ms_utc(int(internal_date)) if internal_date else None,
        snippet=msg.get("snippet", ""),
        body=plain.strip() or html_to_text(html),
        is_read="UNREAD" not in label_ids,
        is_starred="STARRED" in label_ids,
        labels=label_ids,
        attachments=attachments,
        provider_metadata={
            "message_id_header": headers.get("message-id"),
            "references": headers.get("references"),
            "history_id": msg.get("historyId"),
        },
    )


class GmailAdapter:
    """Gmail implementation of IEmailAdapter."""

    provider = AuthProvider.GOOGLE

    def __init__(
        self,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        service_builder: Callable[[ProviderCredentials], Any] | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._service_builder = service_builder

    def _build_service(self, creds: ProviderCredentials) -> Any:
        if self._service_builder is not None:
            return self._service_builder(creds)
        credentials = Credentials(
            token=creds.access_token,
            refresh_token=creds.refresh_token,
            token_uri=TOKEN_URI,
            client_id=self._client_id,
            client_secret=self._client_secret,
        )
        return build("gmail", "v1", credentials=credentials, cache_discovery=False)

    async def _service(self, creds: ProviderCredentials) -> Any:
        return await asyncio.to_thread(self._build_service, creds)

    async def _execute(self, request: Any, operation: str) -> Any:
        """Run a discovery request in a thread, mapping HttpError to provider errors."""
        try:
            return await asyncio.to_thread(request.execute)
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            logger.warning("Gmail %s failed: status=%s", operation, status)
            if status == 401:
                raise ProviderAuthRejectedError(PROVIDER_NAME, operation, e) from e
            raise ProviderOperationError(
                PROVIDER_NAME, operation, e, status_code=status
            ) from e

    async def _list_page(
        self,
        service: Any,
        operation: str,
        *,
        label_ids: list[str],
        query: str | None,
        include_spam_trash: bool,
        max_results: int,
        page_token: str | None,
    ) -> EmailPage:
        params: dict[str, Any] = {"userId": "me", "maxResults": max_results}
        if label_ids:
            params["labelIds"] = label_ids
        if query:
            params["q"] = query
        if include_spam_trash:
            params["includeSpamTrash"] = True
        if page_token:
            params["pageToken"] = page_token
        listing = await self._execute(service.users().messages().list(**params), operation)
        ids = [m["id"] for m in listing.get("messages", [])]
        raw_messages = await asyncio.gather(
            *(
                self._execute(
                    service.users().messages().get(userId="me", id=msg_id, format="full"),
                    operation,
                )
                for msg_id in ids
            )
        )
        return EmailPage(
            messages=[parse_gmail_message(m) for m in raw_messages],
            next_page_token=listing.get("nextPageToken"),
        )

    @staticmethod
    def _filter_params(
        email_filter: EmailFilter, query: str | None
    ) -> tuple[list[str], str | None, bool]:
        if email_filter not in _FILTERS:
            raise ValidationException(f"Unknown filter: {email_filter}", field="filter")
        label_ids, filter_query, include = _FILTERS[email_filter]
        combined = " ".join(q for q in (filter_query, query) if q) or None
        return list(label_ids), combined, include

    @traced("gmail.fetch_emails")
    async def fetch_emails(
        self,
        creds: ProviderCredentials,
        email_filter: EmailFilter = EmailFilter.ALL,
        query: str | None = None,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> EmailPage:
        label_ids, q, include = self._filter_params(email_filter, query)
        service = await self._service(creds)
        return await self._list_page(
            service,
            "fetch_emails",
            label_ids=label_ids,
            query=q,
            include_spam_trash=include,
            max_results=max_results,
            page_token=page_token,
        )

    @traced("gmail.search_emails")
    async def search_emails(
        self,
        creds: ProviderCredentials,
        query: str,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> EmailPage:
        service = await self._service(creds)
        return await self._list_page(
            service,
            "search_emails",
            label_ids=[],
            query=query,
            include_spam_trash=False,
            max_results=max_results,
            page_token=page_token,
        )

    @traced("gmail.read_email")
    async def read_email(self, creds: ProviderCredentials, email_id: str) -> EmailMessage:
        service = await self._service(creds)
        raw = await self._execute(
            service.users().messages().get(userId="me", id=email_id, format="full"),
            "read_email",
        )
        return parse_gmail_message(raw)

    @traced("gmail.send_email")
    async def send_email(self, creds: ProviderCredentials, message: OutgoingEmail) -> SendResult:
        service = await self._service(creds)
        body: dict[str, Any] = {"raw": to_base64url(build_mime(creds.email_address, message))}
        if message.thread_id:
            body["threadId"] = message.thread_id
        sent = await self._execute(
            service.users().messages().send(userId="me", body=body), "send_email"
        )
        return SendResult(id=sent.get("id"), thread_id=sent.get("threadId"))

    @traced("gmail.reply_to_email")
    async def reply_to_email(
        self, creds: ProviderCredentials, email_id: str, message: OutgoingEmail
    ) -> SendResult:
        original = await self.read_email(creds, email_id)
        message_id = original.provider_metadata.get("message_id_header")
        references = original.provider_metadata.get("references")
        reply = OutgoingEmail(
            to=message.to or [original.sender],
            subject=message.subject or reply_subject(original.subject),
            body=message.body,
            cc=message.cc,
            bcc=message.bcc,
            attachments=message.attachments,
            html=message.html,
            in_reply_to=message_id,
            references=f"{references} {message_id}".strip() if references else message_id,
            thread_id=original.thread_id,
        )
        return await self.send_email(creds, reply)

    @traced("gmail.create_draft")
    async def create_draft(self, creds: ProviderCredentials, message: OutgoingEmail) -> SendResult:
        service = await self._service(creds)
        draft_message: dict[str, Any] = {
            "raw": to_base64url(build_mime(creds.email_address, message))
        }
        if message.thread_id:
            draft_message["threadId"] = message.thread_id
        draft = await self._execute(
            service.users().drafts().create(userId="me", body={"message": draft_message}),
            "create_draft",
        )
        inner = draft.get("message", {}) or {}
        return SendResult(id=draft.get("id"), thread_id=inner.get("threadId"), status="draft")

    @traced("gmail.trash_email")
    async def trash_email(self, creds: ProviderCredentials, email_id: str) -> None:
        service = await self._service(creds)
        await self._execute(
            service.users().messages().trash(userId="me", id=email_id), "trash_email"
        )

    @traced("gmail.mark_as_read")
    async def mark_as_read(self, creds: ProviderCredentials, email_id: str) -> None:
        service = await self._service(creds)
        await self._execute(
            service.users().messages().modify(
                userId="me", id=email_id, body={"removeLabelIds": ["UNREAD"]}
            ),
            "mark_as_read",
        )

    async def _resolve_label(self, service: Any, folder: str) -> str:
        labels = await self._execute(service.users().labels().list(userId="me"), "move_to_folder")
        wanted = folder.strip().casefold()
        for label in labels.get("labels", []):
            if label.get("id", "").casefold() == wanted or label.get("name", "").casefold() == wanted:
                return label["id"]
        raise ResourceNotFoundException("folder", folder)

    @traced("gmail.move_to_folder")
    async def move_to_folder(self, creds: ProviderCredentials, email_id: str, folder: str) -> None:
        service = await self._service(creds)
        label_id = await self._resolve_label(service, folder)
        if label_id == "INBOX":
            body: dict[str, Any] = {"addLabelIds": ["INBOX"]}
        else:
            body = {"addLabelIds": [label_id], "removeLabelIds": ["INBOX"]}
        await self._execute(
            service.users().messages().modify(userId="me", id=email_id, body=body),
            "move_to_folder",
        )

    @traced("gmail.create_folder")
    async def create_folder(self, creds: ProviderCredentials, name: str) -> FolderInfo:
        service = await self._service(creds)
        label = await self._execute(
            service.users().labels().create(
                userId="me",
                body={
                    "name": name,
                    "labelListVisibility": "labelShow",
                    "messageListVisibility": "show",
                },
            ),
            "create_folder",
        )
        return FolderInfo(id=label["id"], name=label.get("name", name))

    @traced("gmail.count_emails")
    async def count_emails(
        self,
        creds: ProviderCredentials,
        email_filter: EmailFilter = EmailFilter.ALL,
        query: str | None = None,
    ) -> int:
        label_ids, q, include = self._filter_params(email_filter, query)
        service = await self._service(creds)
        params: dict[str, Any] = {"userId": "me", "maxResults": 1}
        if label_ids:
            params["labelIds"] = label_ids
        if q:
            params["q"] = q
        if include:
            params["includeSpamTrash"] = True
        listing = await self._execute(service.users().messages().list(**params), "count_emails")
        return int(listing.get("resultSizeEstimate", 0))
