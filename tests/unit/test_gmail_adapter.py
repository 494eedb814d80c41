"""Tests for GmailAdapter against a mocked discovery service."""

import base64
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from app.domain.enums import AuthProvider, EmailFilter
from app.domain.exceptions import ResourceNotFoundException
from app.infrastructure.exceptions import ProviderAuthRejectedError, ProviderOperationError
from app.infrastructure.external.email.adapters.gmail_adapter import (
    GmailAdapter,
    parse_gmail_message,
)
from app.infrastructure.external.email.protocols import OutgoingEmail, ProviderCredentials

CREDS = ProviderCredentials(
    provider=AuthProvider.GOOGLE, email_address="ada@gmail.com", access_token="token"
)


def b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode()).decode().rstrip("=")


RAW_MESSAGE = {
    "id": "m-1",
    "threadId": "t-1",
    "labelIds": ["INBOX", "UNREAD", "STARRED"],
    "snippet": "Hello there",
    "internalDate": "1700000000000",
    "payload": {
        "mimeType": "multipart/mixed",
        "headers": [
            {"name": "Subject", "value": "Greetings"},
            {"name": "From", "value": "Bob <bob@example.com>"},
            {"name": "To", "value": "ada@gmail.com, eve@example.com"},
            {"name": "Message-ID", "value": "<abc@mail.gmail.com>"},
        ],
        "parts": [
            {"mimeType": "text/plain", "body": {"data": b64("Hello there, Ada")}},
            {
                "mimeType": "application/pdf",
                "filename": "report.pdf",
                "body": {"attachmentId": "att-1", "size": 1024},
            },
        ],
    },
}


def http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": str(status)}), b'{"error": "x"}')


@pytest.fixture
def service() -> MagicMock:
    return MagicMock()


@pytest.fixture
def adapter(service: MagicMock) -> GmailAdapter:
    return GmailAdapter(service_builder=lambda creds: service)


def test_parse_gmail_message() -> None:
    message = parse_gmail_message(RAW_MESSAGE)
    assert message.subject == "Greetings"
    assert message.sender == "Bob <bob@example.com>"
    assert message.recipients == ["ada@gmail.com", "eve@example.com"]
    assert message.body == "Hello there, Ada"
    assert message.is_read is False
    assert message.is_starred is True
    assert message.attachments[0].filename == "report.pdf"
    assert message.provider_metadata["message_id_header"] == "<abc@mail.gmail.com>"
    assert message.timestamp is not None and message.timestamp.year == 2023


async def test_fetch_unread_uses_inbox_label_and_query(adapter, service) -> None:
    messages = service.users.return_value.messages.return_value
    messages.list.return_value.execute.return_value = {
        "messages": [{"id": "m-1"}],
        "nextPageToken": "next",
    }
    messages.get.return_value.execute.return_value = RAW_MESSAGE

    page = await adapter.fetch_emails(CREDS, EmailFilter.UNREAD, "invoice", 10, None)

    assert [m.id for m in page.messages] == ["m-1"]
    assert page.next_page_token == "next"
    messages.list.assert_called_once_with(
        userId="me", maxResults=10, labelIds=["INBOX"], q="is:unread invoice"
    )


async def test_unauthorized_maps_to_rejected(adapter, service) -> None:
    service.users.return_value.messages.return_value.get.return_value.execute.side_effect = (
        http_error(401)
    )
    with pytest.raises(ProviderAuthRejectedError):
        await adapter.read_email(CREDS, "m-1")


async def test_other_http_errors_map_to_operation_error(adapter, service) -> None:
    service.users.return_value.messages.return_value.trash.return_value.execute.side_effect = (
        http_error(500)
    )
    with pytest.raises(ProviderOperationError) as exc_info:
        await adapter.trash_email(CREDS, "m-1")
    assert exc_info.value.status_code == 500


async def test_move_adds_label_and_removes_inbox(adapter, service) -> None:
    users = service.users.return_value
    users.labels.return_value.list.return_value.execute.return_value = {
        "labels": [{"id": "INBOX", "name": "INBOX"}, {"id": "Label_7", "name": "Receipts"}]
    }

    await adapter.move_to_folder(CREDS, "m-1", "receipts")

    users.messages.return_value.modify.assert_called_once_with(
        userId="me",
        id="m-1",
        body={"addLabelIds": ["Label_7"], "removeLabelIds": ["INBOX"]},
    )


async def test_move_to_unknown_label(adapter, service) -> None:
    service.users.return_value.labels.return_value.list.return_value.execute.return_value = {
        "labels": []
    }
    with pytest.raises(ResourceNotFoundException):
        await adapter.move_to_folder(CREDS, "m-1", "Nowhere")


async def test_send_encodes_raw_mime(adapter, service) -> None:
    send = service.users.return_value.messages.return_value.send
    send.return_value.execute.return_value = {"id": "s-1", "threadId": "t-9"}

    result = await adapter.send_email(
        CREDS, OutgoingEmail(to=["bob@example.com"], subject="Hi", body="Hello")
    )

    assert result.id == "s-1"
    raw = send.call_args.kwargs["body"]["raw"]
    decoded = base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)).decode()
    assert "To: bob@example.com" in decoded
    assert "Subject: Hi" in decoded


async def test_count_returns_result_size_estimate(adapter, service) -> None:
    service.users.return_value.messages.return_value.list.return_value.execute.return_value = {
        "resultSizeEstimate": 42
    }
    assert await adapter.count_emails(CREDS, EmailFilter.STARRED) == 42


async def test_same_page_token_returns_same_page(adapter, service) -> None:
    messages = service.users.return_value.messages.return_value

    def list_page(**params):
        ids = ["m-3", "m-4"] if params.get("pageToken") == "page-2" else ["m-1", "m-2"]
        request = MagicMock()
        request.execute.return_value = {
            "messages": [{"id": i} for i in ids],
            "nextPageToken": "page-3" if params.get("pageToken") else "page-2",
        }
        return request

    def get_message(**params):
        request = MagicMock()
        request.execute.return_value = {**RAW_MESSAGE, "id": params["id"]}
        return request

    messages.list.side_effect = list_page
    messages.get.side_effect = get_message

    first = await adapter.fetch_emails(CREDS, EmailFilter.ALL, None, 2, None)
    again = await adapter.fetch_emails(CREDS, EmailFilter.ALL, None, 2, first.next_page_token)
    twice = await adapter.fetch_emails(CREDS, EmailFilter.ALL, None, 2, first.next_page_token)

    assert [m.id for m in again.messages] == ["m-3", "m-4"]
    assert [m.id for m in twice.messages] == [m.id for m in again.messages]
    assert twice.next_page_token == again.next_page_token == "page-3"
