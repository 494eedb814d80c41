"""In-memory collaborators for unit tests."""

from datetime import datetime
from typing import Any

from app.application.services.identity_linker import new_account_fields
from app.domain.enums import AuthProvider
from app.infrastructure.persistence.models import Account, WaitlistEntry
from app.infrastructure.persistence.models.account import provider_columns
from app.shared.utils.generators import generate_cuid


def make_account(**overrides: Any) -> Account:
    """Transient Account with creation defaults and an id."""
    email = overrides.pop("email", "user@example.com")
    fields = new_account_fields(email, overrides.pop("name", "Test User"))
    fields.update(overrides)
    fields.setdefault("id", generate_cuid())
    fields.setdefault("auth_provider", AuthProvider.LOCAL.value)
    return Account(**fields)


class FakeAccountRepository:
    """Dict-backed account repository with conditional updates like the SQL one."""

    def __init__(self, *accounts: Account) -> None:
        self.accounts: dict[str, Account] = {a.id: a for a in accounts}
        self.saved: list[Account] = []
        self.provider_updates: list[dict[str, Any]] = []

    async def get_by_id(self, entity_id: str) -> Account | None:
        return self.accounts.get(entity_id)

    async def get_by_email(self, email: str) -> Account | None:
        return next((a for a in self.accounts.values() if a.email == email), None)

    async def create_account(self, **fields: Any) -> Account:
        account = make_account(**fields)
        self.accounts[account.id] = account
        return account

    async def save(self, obj: Account) -> Account:
        self.accounts[obj.id] = obj
        self.saved.append(obj)
        return obj

    async def set_refresh_token(self, account_id: str, token: str | None) -> None:
        self.accounts[account_id].refresh_token = token

    async def rotate_refresh_token(self, account_id: str, expected: str, new_token: str) -> bool:
        account = self.accounts.get(account_id)
        if account is None or account.refresh_token != expected:
            return False
        account.refresh_token = new_token
        return True

    async def consume_first_login(self, account_id: str) -> bool:
        account = self.accounts.get(account_id)
        if account is None or not account.first_login:
            return False
        account.first_login = False
        return True

    async def update_provider_tokens(
        self,
        account_id: str,
        provider: AuthProvider,
        *,
        access_token: str,
        expires_at: datetime | None,
        refresh_token: str | None = None,
    ) -> None:
        cols = provider_columns(provider)
        account = self.accounts[account_id]
        setattr(account, cols["access_token"], access_token)
        setattr(account, cols["expires_at"], expires_at)
        if refresh_token:
            setattr(account, cols["refresh_token"], refresh_token)
        self.provider_updates.append(
            {"provider": provider, "access_token": access_token, "refresh_token": refresh_token}
        )


class FakeWaitlistRepository:
    def __init__(self, *entries: WaitlistEntry) -> None:
        self.entries = {e.email: e for e in entries}

    async def get_by_email(self, email: str) -> WaitlistEntry | None:
        return self.entries.get(email)


def make_entry(email: str, status: str = "approved", inbox: str | None = None) -> WaitlistEntry:
    return WaitlistEntry(id=generate_cuid(), email=email, name="Waiting", status=status, inbox=inbox)
