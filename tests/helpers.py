"""Test data helpers shared by API and integration tests."""

from typing import Any

from app.application.services.identity_linker import new_account_fields
from app.application.services.token_service import TokenService
from app.core.config import get_settings
from app.infrastructure.persistence import database
from app.infrastructure.persistence.models import Account, WaitlistEntry


async def create_account(**overrides: Any) -> Account:
    """Insert and commit an account with creation defaults plus overrides."""
    email = overrides.pop("email", "user@example.com")
    fields = new_account_fields(email, overrides.pop("name", "Test User"))
    fields.update(overrides)
    assert database.AsyncSessionLocal is not None
    async with database.AsyncSessionLocal() as session:
        account = Account(**fields)
        session.add(account)
        await session.commit()
        return account


async def create_waitlist_entry(
    email: str, status: str = "approved", **extra: Any
) -> WaitlistEntry:
    assert database.AsyncSessionLocal is not None
    async with database.AsyncSessionLocal() as session:
        entry = WaitlistEntry(
            email=email, name=extra.pop("name", "Waiting User"), status=status, **extra
        )
        session.add(entry)
        await session.commit()
        return entry


async def load_account(account_id: str) -> Account | None:
    assert database.AsyncSessionLocal is not None
    async with database.AsyncSessionLocal() as session:
        return await session.get(Account, account_id)


def token_service() -> TokenService:
    """TokenService for minting tokens only (no repository calls)."""
    return TokenService.from_settings(None, get_settings())  # type: ignore[arg-type]


def bearer_for(account: Account) -> dict[str, str]:
    """Authorization header with a freshly minted access token for account."""
    return {"Authorization": f"Bearer {token_service().issue_access(account)}"}
