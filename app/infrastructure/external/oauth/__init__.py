"""OAuth integration: provider drivers, registry, and profile helpers."""

from app.infrastructure.external.oauth.drivers import (
    GoogleDriver,
    MicrosoftDriver,
    OAuthDriver,
    YahooDriver,
)
from app.infrastructure.external.oauth.profile import (
    HttpProfilePictureFetcher,
    extract_email,
)
from app.infrastructure.external.oauth.registry import (
    ProviderConfig,
    ProviderRegistry,
    build_provider_registry,
)

__all__ = [
    "GoogleDriver",
    "HttpProfilePictureFetcher",
    "MicrosoftDriver",
    "OAuthDriver",
    "ProviderConfig",
    "ProviderRegistry",
    "YahooDriver",
    "build_provider_registry",
    "extract_email",
]
