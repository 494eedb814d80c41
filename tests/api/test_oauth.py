"""OAuth initiate and callback: every callback outcome is a redirect to the frontend."""

from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from app.application.dtos.auth import ProviderProfile, ProviderTokens
from app.domain.enums import AuthProvider
from app.infrastructure.external.oauth.registry import ProviderRegistry
from app.infrastructure.persistence import database
from app.infrastructure.persistence.repositories import AccountRepository
from tests.helpers import create_waitlist_entry


class FakeRegistry(ProviderRegistry):
    """Registry whose Google driver is a scripted mock."""

    def __init__(self, driver) -> None:
        super().__init__({})
        self._driver = driver

    def driver(self, provider, http_client=None):
        return self._driver if provider is AuthProvider.GOOGLE else None


@pytest.fixture
def driver() -> MagicMock:
    fake = MagicMock()
    fake.build_authorization_url.side_effect = (
        lambda state: f"https://accounts.google.test/o/oauth2/auth?state={state}"
    )
    fake.exchange_code = AsyncMock(
        return_value=ProviderTokens(access_token="g-access", refresh_token="g-refresh", expires_in=3599)
    )
    fake.get_profile = AsyncMock(
        return_value=ProviderProfile(
            provider_user_id="g-sub-1",
            display_name="Ada Lovelace",
            picture=None,
            raw={"email": "ada@example.com", "sub": "g-sub-1"},
        )
    )
    return fake


@pytest.fixture
def oauth_app(app: FastAPI, driver: MagicMock) -> FastAPI:
    app.state.provider_registry = FakeRegistry(driver)
    return app


def query_of(location: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(location).query).items()}


async def start_login(client: AsyncClient, redirect: str = "/inbox") -> str:
    response = await client.get(f"/api/v1/auth/oauth/google?redirect={redirect}")
    assert response.status_code == 307
    return query_of(response.headers["location"])["state"]


async def test_initiate_redirects_to_provider(oauth_app: FastAPI, client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/oauth/google")
    assert response.status_code == 307
    assert response.headers["location"].startswith("https://accounts.google.test/")


async def test_initiate_unknown_provider(oauth_app: FastAPI, client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/oauth/myspace")
    assert response.status_code == 400
    assert response.json()["error"] == "UNSUPPORTED_PROVIDER"


async def test_approved_callback_links_and_redirects_with_tokens(
    oauth_app: FastAPI, client: AsyncClient
) -> None:
    await create_waitlist_entry("ada@example.com")
    state = await start_login(client)

    response = await client.get(f"/api/v1/auth/google/callback?code=abc&state={state}")

    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith("http://frontend.test/auth-callback?")
    params = query_of(location)
    assert params["redirect"] == "/inbox"
    assert params["accessToken"] and params["refreshToken"]
    assert response.cookies.get("refreshToken") == params["refreshToken"]

    async with database.AsyncSessionLocal() as session:
        account = await AccountRepository(session).get_by_email("ada@example.com")
    assert account is not None
    assert account.google_id == "g-sub-1"
    assert account.google_access_token == "g-access"
    assert account.refresh_token == params["refreshToken"]
    assert account.first_login is False


async def test_callback_for_unlisted_email_is_denied(
    oauth_app: FastAPI, client: AsyncClient
) -> None:
    response = await client.get("/api/v1/auth/google/callback?code=abc")

    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith("http://frontend.test/login?")
    assert "not found in our waiting list" in query_of(location)["message"]
    async with database.AsyncSessionLocal() as session:
        assert await AccountRepository(session).get_by_email("ada@example.com") is None


async def test_callback_for_pending_email_is_denied(
    oauth_app: FastAPI, client: AsyncClient
) -> None:
    await create_waitlist_entry("ada@example.com", status="pending")
    response = await client.get("/api/v1/auth/google/callback?code=abc")
    assert "not yet approved" in query_of(response.headers["location"])["message"]


async def test_provider_error_redirects_with_message(
    oauth_app: FastAPI, client: AsyncClient, driver: MagicMock
) -> None:
    response = await client.get("/api/v1/auth/google/callback?error=access_denied")
    assert response.status_code == 302
    assert "Google" in query_of(response.headers["location"])["message"]
    driver.exchange_code.assert_not_awaited()


async def test_exchange_failure_redirects_with_generic_message(
    oauth_app: FastAPI, client: AsyncClient, driver: MagicMock
) -> None:
    await create_waitlist_entry("ada@example.com")
    driver.exchange_code.side_effect = RuntimeError("boom")
    response = await client.get("/api/v1/auth/google/callback?code=abc")
    assert query_of(response.headers["location"])["message"] == (
        "Authentication failed. Please try again."
    )


async def test_welcome_is_sent_once_after_the_link_commits(
    oauth_app: FastAPI, client: AsyncClient
) -> None:
    await create_waitlist_entry("ada@example.com")
    committed_first_login: list[bool] = []

    async def record(account) -> None:
        async with database.AsyncSessionLocal() as session:
            stored = await AccountRepository(session).get_by_email(account.email)
        committed_first_login.append(stored.first_login)

    notifier = AsyncMock()
    notifier.send_welcome.side_effect = record
    oauth_app.state.welcome_notifier = notifier

    for _ in range(2):
        state = await start_login(client)
        response = await client.get(f"/api/v1/auth/google/callback?code=abc&state={state}")
        assert response.status_code == 302

    assert committed_first_login == [False]
