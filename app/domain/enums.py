"""Domain enumerations for the gateway.

Enums represent fixed sets of domain values (roles, statuses, providers).
"""

from enum import Enum


class AccountRole(str, Enum):
    """Account role; admin and super_admin may manage the waiting list."""

    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class AccountStatus(str, Enum):
    """Account lifecycle status. Only ACTIVE accounts authenticate."""

    ACTIVE = "active"
    PENDING = "pending"
    CANCELED = "canceled"
    BLOCKED = "blocked"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid status values as strings.

        Returns:
            List of enum value strings (e.g. for validation or serialization).
        """
        return [status.value for status in cls]


class AuthProvider(str, Enum):
    """How an account last authenticated."""

    LOCAL = "local"
    GOOGLE = "google"
    MICROSOFT = "microsoft"
    YAHOO = "yahoo"

    @property
    def is_federated(self) -> bool:
        return self is not AuthProvider.LOCAL

    @property
    def display_name(self) -> str:
        return _PROVIDER_DISPLAY_NAMES[self]

    @classmethod
    def federated(cls) -> tuple["AuthProvider", ...]:
        """Providers that carry an OAuth credential tuple and a mailbox."""
        return (cls.GOOGLE, cls.MICROSOFT, cls.YAHOO)

    @classmethod
    def parse(cls, value: str) -> "AuthProvider | None":
        """Return the provider for a case-insensitive tag, or None."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


_PROVIDER_DISPLAY_NAMES = {
    AuthProvider.LOCAL: "Local",
    AuthProvider.GOOGLE: "Google",
    AuthProvider.MICROSOFT: "Microsoft",
    AuthProvider.YAHOO: "Yahoo",
}


class WaitlistStatus(str, Enum):
    """Waiting-list entry status. Only APPROVED lets federated login proceed."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]


class WaitlistDecision(str, Enum):
    """Outcome of the waiting-list gate for one email."""

    APPROVED = "approved"
    NOT_FOUND = "not_found"
    PENDING_APPROVAL = "pending_approval"


class EmailFilter(str, Enum):
    """Mailbox view selectors understood by every email adapter."""

    ALL = "all"
    READ = "read"
    UNREAD = "unread"
    ARCHIVED = "archived"
    STARRED = "starred"
    SENT = "sent"
    DRAFTS = "drafts"
    IMPORTANT = "important"
    TRASH = "trash"
