"""Outlook/Office 365 adapter using the Microsoft Graph REST API."""

from __future__ import annotations

import base64
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import httpx

from app.domain.enums import AuthProvider, EmailFilter
from app.domain.exceptions import ResourceNotFoundException, ValidationException
from app.infrastructure.exceptions import ProviderAuthRejectedError, ProviderOperationError
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
from app.shared.utils.sanitization import html_to_text, sanitize_header_value

logger = get_logger(__name__)

PROVIDER_NAME = "Outlook"
GRAPH_URL = "https://graph.microsoft.com/v1.0"

_SELECT = (
    "id,conversationId,subject,from,toRecipients,ccRecipients,receivedDateTime,"
    "bodyPreview,body,isRead,flag,categories,hasAttachments,parentFolderId,"
    "internetMessageId,importance"
)

# Graph well-known folder names
_WELL_KNOWN_FOLDERS = {
    "inbox": "inbox",
    "sent": "sentitems",
    "sentitems": "sentitems",
    "drafts": "drafts",
    "trash": "deleteditems",
    "deleteditems": "deleteditems",
    "archive": "archive",
    "junk": "junkemail",
    "junkemail": "junkemail",
}

# filter -> (folder or None for the whole mailbox, $filter)
_FILTERS: dict[EmailFilter, tuple[str | None, str | None]] = {
    EmailFilter.ALL: ("inbox", None),
    EmailFilter.READ: ("inbox", "isRead eq true"),
    EmailFilter.UNREAD: ("inbox", "isRead eq false"),
    EmailFilter.ARCHIVED: ("archive", None),
    EmailFilter.STARRED: (None, "flag/flagStatus eq 'flagged'"),
    EmailFilter.SENT: ("sentitems", None),
    EmailFilter.DRAFTS: ("drafts", None),
    EmailFilter.IMPORTANT: (None, "importance eq 'high'"),
    EmailFilter.TRASH: ("deleteditems", None),
}


def _recipient(address: str) -> dict[str, Any]:
    return {"emailAddress": {"address": sanitize_header_value(address)}}


def _format_address(entry: dict[str, Any] | None) -> str:
    email = (entry or {}).get("emailAddress", {}) or {}
    address = email.get("address", "")
    name = email.get("name")
    return f"{name} <{address}>" if name and name != address else address


def parse_graph_message(item: dict[str, Any]) -> EmailMessage:
    """Parse a Graph message resource into EmailMessage."""
    received = item.get("receivedDateTime")
    timestamp = datetime.fromisoformat(received.replace("Z", "+00:00")) if received else None
    body = item.get("body", {}) or {}
    content = body.get("content", "") or ""
    text = html_to_text(content) if body.get("contentType", "").lower() == "html" else content
    labels = list(item.get("categories", []))
    if item.get("importance") == "high":
        labels.append("IMPORTANT")
    return EmailMessage(
        id=item["id"],
        thread_id=item.get("conversationId"),
        subject=item.get("subject") or "",
        sender=_format_address(item.get("from")),
        recipients=[_format_address(r) for r in item.get("toRecipients", [])],
        cc=[_format_address(r) for r in item.get("ccRecipients", [])],
        timestamp=timestamp,
        snippet=item.get("bodyPreview", ""),
        body=text.strip(),
        is_read=item.get("isRead", False),
        is_starred=(item.get("flag", {}) or {}).get("flagStatus") == "flagged",
        labels=labels,
        attachments=[
            AttachmentRef(
                id=a.get("id", ""),
                filename=a.get("name", ""),
                mime_type=a.get("contentType", "application/octet-stream"),
                size=a.get("size"),
            )
            for a in item.get("attachments", [])
        ],
        provider_metadata={
            "parent_folder_id": item.get("parentFolderId"),
            "internet_message_id": item.get("internetMessageId"),
            "has_attachments": item.get("hasAttachments", False),
        },
    )


def _graph_message(message: OutgoingEmail) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "subject": sanitize_header_value(message.subject),
        "body": {"contentType": "HTML" if message.html else "Text", "content": message.body},
        "toRecipients": [_recipient(a) for a in message.to],
    }
    if message.cc:
        payload["ccRecipients"] = [_recipient(a) for a in message.cc]
    if message.bcc:
        payload["bccRecipients"] = [_recipient(a) for a in message.bcc]
    if message.attachments:
        payload["attachments"] = [
            {
                "@odata.type": "#microsoft.graph.fileAttachment",
                "name": a.filename,
                "contentType": a.mime_type,
                "contentBytes": base64.b64encode(a.content).decode("ascii"),
            }
            for a in message.attachments
        ]
    return payload


class OutlookAdapter:
    """Microsoft Graph implementation of IEmailAdapter."""

    provider = AuthProvider.MICROSOFT

    def __init__(self, *, http_client: httpx.AsyncClient | None = None) -> None:
        self._shared_http = http_client
        self._graph_url = GRAPH_URL

    @asynccontextmanager
    async def _http_cm(self):
        """Yield shared HTTP client or a short-lived one."""
        if self._shared_http is not None:
            yield self._shared_http
            return
        async with httpx.AsyncClient(timeout=30.0) as client:
            yield client

    async def _request(
        self,
        creds: ProviderCredentials,
        method: str,
        url: str,
        operation: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        request_headers = {"Authorization": f"Bearer {creds.access_token}"}
        if headers:
            request_headers.update(headers)
        if not url.startswith("http"):
            url = f"{self._graph_url}{url}"
        try:
            async with self._http_cm() as client:
                response = await client.request(
                    method, url, params=params, json=json, headers=request_headers
                )
        except httpx.HTTPError as e:
            logger.warning("Graph %s transport error: %s", operation, e)
            raise ProviderOperationError(PROVIDER_NAME, operation, e) from e
        if response.status_code == 401:
            raise ProviderAuthRejectedError(PROVIDER_NAME, operation, None)
        if response.status_code == 404:
            raise ResourceNotFoundException("email", url.rsplit("/", 1)[-1])
        if response.status_code >= 400:
            logger.warning(
                "Graph %s failed: status=%d body=%s",
                operation,
                response.status_code,
                response.text[:200],
            )
            raise ProviderOperationError(
                PROVIDER_NAME, operation, status_code=response.status_code
            )
        return response

    def _messages_url(self, folder: str | None) -> str:
        if folder is None:
            return "/me/messages"
        return f"/me/mailFolders/{folder}/messages"

    async def _list_page(
        self,
        creds: ProviderCredentials,
        operation: str,
        url: str,
        params: dict[str, Any],
        page_token: str | None,
    ) -> EmailPage:
        if page_token:
            # nextLink carries the full query
            if not page_token.startswith(self._graph_url):
                raise ValidationException("Invalid page token", field="page_token")
            response = await self._request(creds, "GET", page_token, operation)
        else:
            response = await self._request(creds, "GET", url, operation, params=params)
        data = response.json()
        return EmailPage(
            messages=[parse_graph_message(item) for item in data.get("value", [])],
            next_page_token=data.get("@odata.nextLink"),
        )

    @staticmethod
    def _filter_params(email_filter: EmailFilter) -> tuple[str | None, str | None]:
        if email_filter not in _FILTERS:
            raise ValidationException(f"Unknown filter: {email_filter}", field="filter")
        return _FILTERS[email_filter]

    @traced("outlook.fetch_emails")
    async def fetch_emails(
        self,
        creds: ProviderCredentials,
        email_filter: EmailFilter = EmailFilter.ALL,
        query: str | None = None,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> EmailPage:
        folder, odata_filter = self._filter_params(email_filter)
        params: dict[str, Any] = {"$top": max_results, "$select": _SELECT}
        if query:
            # $search cannot be combined with $orderby
            params["$search"] = f'"{query.replace(chr(34), "")}"'
        else:
            params["$orderby"] = "receivedDateTime DESC"
        if odata_filter:
            params["$filter"] = odata_filter
        return await self._list_page(
            creds, "fetch_emails", self._messages_url(folder), params, page_token
        )

    @traced("outlook.search_emails")
    async def search_emails(
        self,
        creds: ProviderCredentials,
        query: str,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> EmailPage:
        params = {
            "$top": max_results,
            "$select": _SELECT,
            "$search": f'"{query.replace(chr(34), "")}"',
        }
        return await self._list_page(creds, "search_emails", "/me/messages", params, page_token)

    @traced("outlook.read_email")
    async def read_email(self, creds: ProviderCredentials, email_id: str) -> EmailMessage:
        response = await self._request(
            creds,
            "GET",
            f"/me/messages/{email_id}",
            "read_email",
            params={"$select": _SELECT, "$expand": "attachments($select=id,name,contentType,size)"},
        )
        return parse_graph_message(response.json())

    @traced("outlook.send_email")
    async def send_email(self, creds: ProviderCredentials, message: OutgoingEmail) -> SendResult:
        await self._request(
            creds,
            "POST",
            "/me/sendMail",
            "send_email",
            json={"message": _graph_message(message), "saveToSentItems": True},
        )
        # sendMail returns 202 with no body
        return SendResult(id=None, thread_id=message.thread_id)

    @traced("outlook.reply_to_email")
    async def reply_to_email(
        self, creds: ProviderCredentials, email_id: str, message: OutgoingEmail
    ) -> SendResult:
        payload: dict[str, Any] = {"comment": message.body}
        if message.to or message.cc or message.attachments:
            reply = _graph_message(message)
            reply.pop("subject", None)
            reply.pop("body", None)
            if not message.to:
                reply.pop("toRecipients", None)
            payload["message"] = reply
        await self._request(creds, "POST", f"/me/messages/{email_id}/reply", "reply_to_email", json=payload)
        return SendResult(id=None, thread_id=message.thread_id)

    @traced("outlook.create_draft")
    async def create_draft(self, creds: ProviderCredentials, message: OutgoingEmail) -> SendResult:
        response = await self._request(
            creds, "POST", "/me/messages", "create_draft", json=_graph_message(message)
        )
        data = response.json()
        return SendResult(id=data.get("id"), thread_id=data.get("conversationId"), status="draft")

    @traced("outlook.trash_email")
    async def trash_email(self, creds: ProviderCredentials, email_id: str) -> None:
        await self._request(
            creds,
            "POST",
            f"/me/messages/{email_id}/move",
            "trash_email",
            json={"destinationId": "deleteditems"},
        )

    @traced("outlook.mark_as_read")
    async def mark_as_read(self, creds: ProviderCredentials, email_id: str) -> None:
        await self._request(
            creds, "PATCH", f"/me/messages/{email_id}", "mark_as_read", json={"isRead": True}
        )

    async def _resolve_folder(self, creds: ProviderCredentials, folder: str) -> str:
        key = folder.strip().casefold()
        if key in _WELL_KNOWN_FOLDERS:
            return _WELL_KNOWN_FOLDERS[key]
        escaped = folder.strip().replace("'", "''")
        response = await self._request(
            creds,
            "GET",
            "/me/mailFolders",
            "move_to_folder",
            params={"$filter": f"displayName eq '{escaped}'", "$select": "id,displayName"},
        )
        folders = response.json().get("value", [])
        if not folders:
            raise ResourceNotFoundException("folder", folder)
        return folders[0]["id"]

    @traced("outlook.move_to_folder")
    async def move_to_folder(self, creds: ProviderCredentials, email_id: str, folder: str) -> None:
        destination = await self._resolve_folder(creds, folder)
        await self._request(
            creds,
            "POST",
            f"/me/messages/{email_id}/move",
            "move_to_folder",
            json={"destinationId": destination},
        )

    @traced("outlook.create_folder")
    async def create_folder(self, creds: ProviderCredentials, name: str) -> FolderInfo:
        response = await self._request(
            creds, "POST", "/me/mailFolders", "create_folder", json={"displayName": name}
        )
        data = response.json()
        return FolderInfo(id=data["id"], name=data.get("displayName", name))

    @traced("outlook.count_emails")
    async def count_emails(
        self,
        creds: ProviderCredentials,
        email_filter: EmailFilter = EmailFilter.ALL,
        query: str | None = None,
    ) -> int:
        folder, odata_filter = self._filter_params(email_filter)
        params: dict[str, Any] = {"$count": "true", "$top": 1, "$select": "id"}
        if odata_filter:
            params["$filter"] = odata_filter
        if query:
            params["$search"] = f'"{query.replace(chr(34), "")}"'
        response = await self._request(
            creds,
            "GET",
            self._messages_url(folder),
            "count_emails",
            params=params,
            headers={"ConsistencyLevel": "eventual"},
        )
        return int(response.json().get("@odata.count", 0))
