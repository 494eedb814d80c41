"""Waiting-list repository."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.enums import WaitlistStatus
from app.domain.exceptions import ResourceNotFoundException, WaitlistEntryExistsException
from app.infrastructure.persistence.models.waitlist_entry import WaitlistEntry
from app.infrastructure.persistence.repositories.base import BaseRepository
from app.shared.utils.sanitization import normalize_email


class WaitlistRepository(BaseRepository[WaitlistEntry]):
    """Waiting-list repository. Emails are normalized on every read and write."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, WaitlistEntry)

    async def get_by_email(self, email: str) -> WaitlistEntry | None:
        result = await self.db.execute(
            select(WaitlistEntry).where(WaitlistEntry.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def create_entry(
        self,
        email: str,
        name: str,
        *,
        inbox: str | None = None,
        description: str | None = None,
        status: WaitlistStatus = WaitlistStatus.PENDING,
    ) -> WaitlistEntry:
        """Create an entry; raise WaitlistEntryExistsException on duplicate email."""
        normalized = normalize_email(email)
        if await self.get_by_email(normalized) is not None:
            raise WaitlistEntryExistsException(normalized)
        entry = WaitlistEntry(
            email=normalized,
            name=name,
            inbox=normalize_email(inbox) if inbox else None,
            description=description,
            status=status.value,
        )
        try:
            return await self.create(entry)
        except IntegrityError:
            raise WaitlistEntryExistsException(normalized) from None

    async def list_entries(
        self, status: WaitlistStatus | None = None, skip: int = 0, limit: int = 100
    ) -> list[WaitlistEntry]:
        stmt = select(WaitlistEntry).order_by(WaitlistEntry.created_at.desc())
        if status is not None:
            stmt = stmt.where(WaitlistEntry.status == status.value)
        result = await self.db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def set_status(self, entry_id: str, status: WaitlistStatus) -> WaitlistEntry:
        entry = await self.get_by_id(entry_id)
        if entry is None:
            raise ResourceNotFoundException("waitlist_entry", entry_id)
        entry.status = status.value
        return await self.save(entry)
