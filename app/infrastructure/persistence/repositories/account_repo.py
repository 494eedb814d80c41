"""Account repository: lookups by normalized email and atomic token updates.

Refresh-token rotation and first-login clearing are single conditional
UPDATE statements, so concurrent requests cannot both succeed. After a
bulk UPDATE the already-loaded Account (if any) is synced as committed
state, so a later flush does not write the same columns again.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import attributes
from sqlalchemy.orm.util import identity_key

from app.domain.enums import AuthProvider
from app.domain.exceptions import AccountAlreadyExistsException
from app.infrastructure.persistence.database import independent_transaction
from app.infrastructure.persistence.models.account import Account, provider_columns
from app.infrastructure.persistence.repositories.base import BaseRepository
from app.shared.utils.datetime import utc_now
from app.shared.utils.sanitization import normalize_email


class AccountRepository(BaseRepository[Account]):
    """Account repository. Emails are normalized on every read and write."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Account)

    async def get_by_email(self, email: str) -> Account | None:
        result = await self.db.execute(
            select(Account).where(Account.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def create_account(self, **fields: Any) -> Account:
        """Create an account; raise AccountAlreadyExistsException on duplicate email."""
        fields["email"] = normalize_email(fields["email"])
        if await self.get_by_email(fields["email"]) is not None:
            raise AccountAlreadyExistsException()
        try:
            return await self.create(Account(**fields))
        except IntegrityError:
            raise AccountAlreadyExistsException() from None

    async def list_accounts(
        self, skip: int = 0, limit: int = 100, status: str | None = None
    ) -> list[Account]:
        stmt = select(Account).order_by(Account.created_at.desc())
        if status:
            stmt = stmt.where(Account.status == status)
        result = await self.db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def _update_where(self, account_id: str, *criteria: Any, **values: Any) -> bool:
        """Run UPDATE account SET values WHERE id = account_id AND criteria.

        Returns True when exactly one row changed; syncs the loaded instance.
        """
        result = await self.db.execute(
            update(Account)
            .where(Account.id == account_id, *criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        loaded = self.db.sync_session.identity_map.get(identity_key(Account, account_id))
        if loaded is not None:
            for key, value in values.items():
                attributes.set_committed_value(loaded, key, value)
        return True

    async def set_refresh_token(self, account_id: str, token: str | None) -> None:
        """Unconditionally store (or clear, with None) the internal refresh token."""
        await self._update_where(account_id, refresh_token=token)

    async def rotate_refresh_token(
        self, account_id: str, expected: str, new_token: str
    ) -> bool:
        """Compare-and-swap the refresh token. Returns False when another request rotated first."""
        return await self._update_where(
            account_id, Account.refresh_token == expected, refresh_token=new_token
        )

    async def consume_first_login(self, account_id: str) -> bool:
        """Clear first_login; True only for the caller whose update flipped it."""
        return await self._update_where(
            account_id, Account.first_login.is_(True), first_login=False
        )

    async def update_provider_tokens(
        self,
        account_id: str,
        provider: AuthProvider,
        *,
        access_token: str,
        expires_at: datetime | None,
        refresh_token: str | None = None,
    ) -> None:
        """Persist a refreshed provider token (refresh token kept unless a new one is given)."""
        cols = provider_columns(provider)
        values: dict[str, Any] = {
            cols["access_token"]: access_token,
            cols["expires_at"]: expires_at,
            "last_sync": utc_now(),
        }
        if refresh_token:
            values[cols["refresh_token"]] = refresh_token
        await self._update_where(account_id, **values)


class ProviderTokenStore:
    """Writes refreshed provider tokens in their own committed transaction.

    Once a provider has issued a new token pair the old refresh token may be
    dead, so the new pair is stored even when the request that triggered the
    refresh fails and rolls back.
    """

    def __init__(
        self,
        session_scope: Callable[
            [], AbstractAsyncContextManager[AsyncSession]
        ] = independent_transaction,
    ) -> None:
        self._session_scope = session_scope

    async def update_provider_tokens(
        self,
        account_id: str,
        provider: AuthProvider,
        *,
        access_token: str,
        expires_at: datetime | None,
        refresh_token: str | None = None,
    ) -> None:
        async with self._session_scope() as session:
            await AccountRepository(session).update_provider_tokens(
                account_id,
                provider,
                access_token=access_token,
                expires_at=expires_at,
                refresh_token=refresh_token,
            )
