"""Waiting-list ORM model. Gates federated signup."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.domain.enums import WaitlistStatus
from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import CuidTimestampModel


class WaitlistEntry(CuidTimestampModel, Base):
    """Pre-approval record. Table: waitlist_entry. Email unique and lowercased."""

    __tablename__ = "waitlist_entry"

    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    inbox: Mapped[str | None] = mapped_column(String(320), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=WaitlistStatus.PENDING.value,
        server_default="pending",
    )

    @property
    def is_approved(self) -> bool:
        return self.status == WaitlistStatus.APPROVED.value
