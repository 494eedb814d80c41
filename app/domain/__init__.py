"""Domain layer: enums, keyword rules, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from app.domain.enums import (
    AccountRole,
    AccountStatus,
    AuthProvider,
    EmailFilter,
    WaitlistDecision,
    WaitlistStatus,
)
from app.domain.exceptions import (
    AuthenticationException,
    AuthorizationException,
    GatewayException,
    ResourceNotFoundException,
    ValidationException,
)
from app.domain.keywords import DEFAULT_IMPORTANT_KEYWORDS, merge_keywords

__all__ = [
    # Enums
    "AccountRole",
    "AccountStatus",
    "AuthProvider",
    "EmailFilter",
    "WaitlistDecision",
    "WaitlistStatus",
    # Exceptions
    "AuthenticationException",
    "AuthorizationException",
    "GatewayException",
    "ResourceNotFoundException",
    "ValidationException",
    # Keywords
    "DEFAULT_IMPORTANT_KEYWORDS",
    "merge_keywords",
]
