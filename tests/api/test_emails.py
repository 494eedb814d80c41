"""Email endpoints against a fake Gmail adapter installed on app.state."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from app.application.dtos.auth import ProviderTokens
from app.domain.enums import AuthProvider, EmailFilter
from app.infrastructure.exceptions import ProviderAuthRejectedError
from app.infrastructure.external.email.factory import EmailAdapterFactory
from app.infrastructure.external.email.protocols import (
    EmailMessage,
    EmailPage,
    FolderInfo,
    SendResult,
)
from app.infrastructure.external.oauth.registry import ProviderRegistry
from app.shared.utils.datetime import utc_now
from tests.helpers import bearer_for, create_account, load_account


def inbox_message(message_id: str, subject: str) -> EmailMessage:
    return EmailMessage(
        id=message_id,
        thread_id=f"t-{message_id}",
        subject=subject,
        sender="Bob <bob@example.com>",
        recipients=["ada@gmail.com"],
        timestamp=utc_now(),
        snippet=subject,
        body=f"Body of {subject}",
    )


@pytest.fixture
def adapter() -> MagicMock:
    fake = MagicMock()
    fake.fetch_emails = AsyncMock(
        return_value=EmailPage(
            messages=[inbox_message("m-1", "Invoice overdue"), inbox_message("m-2", "Lunch")],
            next_page_token="page-2",
        )
    )
    fake.read_email = AsyncMock(return_value=inbox_message("m-1", "Invoice overdue"))
    fake.count_emails = AsyncMock(return_value=12)
    fake.send_email = AsyncMock(return_value=SendResult(id="sent-1", thread_id="t-1"))
    fake.trash_email = AsyncMock(return_value=None)
    fake.move_to_folder = AsyncMock(return_value=None)
    fake.create_folder = AsyncMock(return_value=FolderInfo(id="Label_1", name="Receipts"))
    return fake


@pytest.fixture
def mail_app(app: FastAPI, adapter: MagicMock) -> FastAPI:
    app.state.email_adapters = EmailAdapterFactory({AuthProvider.GOOGLE: adapter})
    return app


@pytest.fixture
async def gmail_headers() -> dict[str, str]:
    account = await create_account(
        email="ada@gmail.com",
        auth_provider="google",
        google_id="g-1",
        google_access_token="ya29.valid",
        google_refresh_token="1//refresh",
        google_access_token_expires_at=utc_now() + timedelta(hours=1),
    )
    return bearer_for(account)


async def test_fetch_emails(mail_app, client: AsyncClient, adapter, gmail_headers) -> None:
    response = await client.get(
        "/api/v1/emails?filter=unread&maxResults=5", headers=gmail_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["nextPageToken"] == "page-2"
    first = body["messages"][0]
    assert first["from"] == "Bob <bob@example.com>"
    assert first["to"] == ["ada@gmail.com"]
    assert first["threadId"] == "t-m-1"
    args = adapter.fetch_emails.await_args.args
    assert args[1] is EmailFilter.UNREAD
    assert args[3] == 5


async def test_unknown_filter_is_rejected(mail_app, client: AsyncClient, gmail_headers) -> None:
    response = await client.get("/api/v1/emails?filter=spam", headers=gmail_headers)
    assert response.status_code == 400


async def test_important_keeps_keyword_matches(mail_app, client: AsyncClient, gmail_headers) -> None:
    response = await client.get("/api/v1/emails/important", headers=gmail_headers)
    assert [m["subject"] for m in response.json()["messages"]] == ["Invoice overdue"]


async def test_count_and_read(mail_app, client: AsyncClient, gmail_headers) -> None:
    count = await client.get("/api/v1/emails/count", headers=gmail_headers)
    read = await client.get("/api/v1/emails/m-1", headers=gmail_headers)
    assert count.json() == {"count": 12}
    assert read.json()["body"] == "Body of Invoice overdue"


async def test_send_with_form_and_attachment(
    mail_app, client: AsyncClient, adapter, gmail_headers
) -> None:
    response = await client.post(
        "/api/v1/emails/send",
        data={"to": "bob@example.com, eve@example.com", "subject": "Hi", "message": "Hello"},
        files={"attachments": ("notes.txt", b"hello", "text/plain")},
        headers=gmail_headers,
    )

    assert response.status_code == 200
    assert response.json()["id"] == "sent-1"
    outgoing = adapter.send_email.await_args.args[1]
    assert outgoing.to == ["bob@example.com", "eve@example.com"]
    assert outgoing.attachments[0].filename == "notes.txt"
    assert outgoing.attachments[0].content == b"hello"


async def test_move_and_folders(mail_app, client: AsyncClient, adapter, gmail_headers) -> None:
    moved = await client.post(
        "/api/v1/emails/move/m-1", json={"folder": "Receipts"}, headers=gmail_headers
    )
    created = await client.post(
        "/api/v1/emails/folders", json={"name": "Receipts"}, headers=gmail_headers
    )
    trashed = await client.delete("/api/v1/emails/trash/m-1", headers=gmail_headers)

    assert moved.status_code == 200
    assert created.status_code == 201
    assert created.json() == {"id": "Label_1", "name": "Receipts"}
    assert trashed.json() == {"message": "Email moved to trash"}
    adapter.move_to_folder.assert_awaited_once()


async def test_keywords_round_trip(mail_app, client: AsyncClient, gmail_headers) -> None:
    updated = await client.put(
        "/api/v1/emails/keywords", json={"keywords": ["Budget", "budget", " "]}, headers=gmail_headers
    )
    fetched = await client.get("/api/v1/emails/keywords", headers=gmail_headers)

    assert updated.json()["keywords"] == ["Budget"]
    assert fetched.json()["keywords"] == ["Budget"]
    assert "urgent" in fetched.json()["effectiveKeywords"]


async def test_summarize_without_summarizer(mail_app, client: AsyncClient, gmail_headers) -> None:
    response = await client.get("/api/v1/emails/summarize/m-1", headers=gmail_headers)
    assert response.status_code == 503


async def test_rejected_token_without_refresh_path_requires_sign_in(
    mail_app, client: AsyncClient, adapter
) -> None:
    account = await create_account(
        email="ada@gmail.com",
        auth_provider="google",
        google_access_token="ya29.revoked",
    )
    adapter.read_email.side_effect = ProviderAuthRejectedError("Gmail", "read_email")

    response = await client.get("/api/v1/emails/m-1", headers=bearer_for(account))

    assert response.status_code == 401
    assert response.json()["error"] == "PROVIDER_AUTH_EXPIRED"


async def test_local_account_has_no_mailbox(mail_app, client: AsyncClient) -> None:
    account = await create_account(email="local@example.com", auth_provider="local")
    response = await client.get("/api/v1/emails", headers=bearer_for(account))
    assert response.status_code == 400
    assert response.json()["error"] == "UNSUPPORTED_PROVIDER"


async def test_yahoo_app_password_is_stored(mail_app, client: AsyncClient) -> None:
    account = await create_account(email="hopper@yahoo.com", auth_provider="yahoo")
    response = await client.put(
        "/api/v1/emails/yahoo/app-password",
        json={"appPassword": "abcd efgh"},
        headers=bearer_for(account),
    )
    assert response.status_code == 200
    stored = await load_account(account.id)
    assert stored is not None and stored.yahoo_app_password == "abcd efgh"


class RefreshingRegistry(ProviderRegistry):
    """Registry whose Google driver hands out one refreshed token pair."""

    def __init__(self, driver) -> None:
        super().__init__({})
        self._driver = driver

    def driver(self, provider, http_client=None):
        return self._driver if provider is AuthProvider.GOOGLE else None


async def test_refreshed_tokens_survive_a_failed_retry(
    mail_app, client: AsyncClient, adapter
) -> None:
    account = await create_account(
        email="ada@gmail.com",
        auth_provider="google",
        google_id="g-1",
        google_access_token="ya29.revoked",
        google_refresh_token="1//refresh",
        google_access_token_expires_at=utc_now() + timedelta(hours=1),
    )
    driver = MagicMock()
    driver.refresh_access_token = AsyncMock(
        return_value=ProviderTokens(
            access_token="ya29.fresh", refresh_token="1//rotated", expires_in=3600
        )
    )
    mail_app.state.provider_registry = RefreshingRegistry(driver)
    adapter.read_email.side_effect = ProviderAuthRejectedError("Gmail", "read_email")

    response = await client.get("/api/v1/emails/m-1", headers=bearer_for(account))

    assert response.status_code == 401
    assert response.json()["error"] == "PROVIDER_AUTH_EXPIRED"
    assert adapter.read_email.await_count == 2
    driver.refresh_access_token.assert_awaited_once_with("1//refresh")
    stored = await load_account(account.id)
    assert stored is not None
    assert stored.google_access_token == "ya29.fresh"
    assert stored.google_refresh_token == "1//rotated"
