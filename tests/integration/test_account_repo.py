"""Integration tests for AccountRepository and WaitlistRepository (SQLite via aiosqlite)."""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.services.identity_linker import new_account_fields
from app.domain.enums import AuthProvider, WaitlistStatus
from app.domain.exceptions import (
    AccountAlreadyExistsException,
    ResourceNotFoundException,
    WaitlistEntryExistsException,
)
from app.infrastructure.persistence.repositories import AccountRepository, WaitlistRepository
from app.shared.utils.datetime import utc_now


@pytest.fixture
def accounts(db_session: AsyncSession) -> AccountRepository:
    return AccountRepository(db_session)


@pytest.fixture
def waitlist(db_session: AsyncSession) -> WaitlistRepository:
    return WaitlistRepository(db_session)


async def test_create_account_normalizes_email(accounts: AccountRepository) -> None:
    account = await accounts.create_account(**new_account_fields(" Ada@Example.COM ", "Ada"))
    assert account.id
    assert account.email == "ada@example.com"
    assert account.auth_provider == "local"
    assert (await accounts.get_by_email("ADA@example.com")) is account


async def test_duplicate_email_is_rejected(accounts: AccountRepository) -> None:
    await accounts.create_account(**new_account_fields("ada@example.com", "Ada"))
    with pytest.raises(AccountAlreadyExistsException):
        await accounts.create_account(**new_account_fields("ADA@example.com", "Ada Again"))


async def test_rotate_refresh_token_is_compare_and_swap(accounts: AccountRepository) -> None:
    account = await accounts.create_account(**new_account_fields("ada@example.com", "Ada"))
    await accounts.set_refresh_token(account.id, "r1")

    assert await accounts.rotate_refresh_token(account.id, "r1", "r2") is True
    assert await accounts.rotate_refresh_token(account.id, "r1", "r3") is False
    assert account.refresh_token == "r2"


async def test_consume_first_login_succeeds_once(accounts: AccountRepository) -> None:
    account = await accounts.create_account(**new_account_fields("ada@example.com", "Ada"))
    assert account.first_login is True

    assert await accounts.consume_first_login(account.id) is True
    assert await accounts.consume_first_login(account.id) is False
    assert account.first_login is False


async def test_update_provider_tokens_keeps_refresh_token(accounts: AccountRepository) -> None:
    fields = new_account_fields("ada@example.com", "Ada")
    fields.update(google_access_token="old", google_refresh_token="rt-1")
    account = await accounts.create_account(**fields)
    expires = utc_now() + timedelta(hours=1)

    await accounts.update_provider_tokens(
        account.id, AuthProvider.GOOGLE, access_token="new", expires_at=expires
    )

    assert account.google_access_token == "new"
    assert account.google_refresh_token == "rt-1"
    assert account.last_sync is not None


async def test_list_accounts_by_status(accounts: AccountRepository) -> None:
    await accounts.create_account(**new_account_fields("a@example.com", "A"))
    blocked = new_account_fields("b@example.com", "B")
    blocked["status"] = "blocked"
    await accounts.create_account(**blocked)

    listed = await accounts.list_accounts(status="blocked")

    assert [a.email for a in listed] == ["b@example.com"]


async def test_waitlist_entry_lifecycle(waitlist: WaitlistRepository) -> None:
    entry = await waitlist.create_entry("Grace@Example.com", "Grace", inbox="Grace@Work.com")
    assert entry.status == "pending"
    assert entry.inbox == "grace@work.com"

    with pytest.raises(WaitlistEntryExistsException):
        await waitlist.create_entry("grace@example.com", "Grace")

    approved = await waitlist.set_status(entry.id, WaitlistStatus.APPROVED)
    assert approved.status == "approved"
    assert [e.email for e in await waitlist.list_entries(WaitlistStatus.APPROVED)] == [
        "grace@example.com"
    ]
    assert await waitlist.list_entries(WaitlistStatus.PENDING) == []


async def test_set_status_on_missing_entry(waitlist: WaitlistRepository) -> None:
    with pytest.raises(ResourceNotFoundException):
        await waitlist.set_status("missing", WaitlistStatus.APPROVED)
