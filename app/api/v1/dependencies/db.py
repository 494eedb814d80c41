"""Database session and repository dependencies.

Authenticated routes share one transactional session per request (FastAPI
caches dependencies per request), so the current Account and every
repository operate on the same unit of work.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.persistence.database import get_db, get_db_transactional
from app.infrastructure.persistence.repositories import AccountRepository, WaitlistRepository

__all__ = [
    "get_account_repo",
    "get_callback_account_repo",
    "get_callback_waitlist_repo",
    "get_db",
    "get_db_transactional",
    "get_waitlist_repo",
]


async def get_account_repo(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> AccountRepository:
    """Account repository on the request's transactional session."""
    return AccountRepository(db)


async def get_waitlist_repo(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> WaitlistRepository:
    """Waiting-list repository on the request's transactional session."""
    return WaitlistRepository(db)


async def get_callback_account_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccountRepository:
    """Account repository for the OAuth callback (endpoint decides commit/rollback)."""
    return AccountRepository(db)


async def get_callback_waitlist_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WaitlistRepository:
    return WaitlistRepository(db)
