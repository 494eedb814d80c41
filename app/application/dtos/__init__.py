"""Application DTOs (no dependency on ORM at runtime)."""

from app.application.dtos.auth import (
    AccessClaims,
    GateResult,
    InternalTokenPair,
    LinkResult,
    ProviderProfile,
    ProviderTokens,
)

__all__ = [
    "AccessClaims",
    "GateResult",
    "InternalTokenPair",
    "LinkResult",
    "ProviderProfile",
    "ProviderTokens",
]
