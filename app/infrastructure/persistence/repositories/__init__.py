"""Persistence repositories. Re-exports for dependency injection."""

from app.infrastructure.persistence.repositories.account_repo import (
    AccountRepository,
    ProviderTokenStore,
)
from app.infrastructure.persistence.repositories.base import BaseRepository
from app.infrastructure.persistence.repositories.waitlist_repo import WaitlistRepository

__all__ = [
    "AccountRepository",
    "BaseRepository",
    "ProviderTokenStore",
    "WaitlistRepository",
]
