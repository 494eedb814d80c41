"""Persistence models: ORM entities and mixins."""

from app.infrastructure.persistence.models.account import Account
from app.infrastructure.persistence.models.mixins import (
    CuidMixin,
    CuidTimestampModel,
    TimestampMixin,
)
from app.infrastructure.persistence.models.waitlist_entry import WaitlistEntry

__all__ = [
    "Account",
    "CuidMixin",
    "CuidTimestampModel",
    "TimestampMixin",
    "WaitlistEntry",
]
