"""Application interfaces (ports) implemented by infrastructure."""

from app.application.interfaces.repositories import (
    IAccountRepository,
    IProviderTokenStore,
    IWaitlistRepository,
)
from app.application.interfaces.services import (
    IEmailSummarizer,
    IProfilePictureFetcher,
    ITokenCipher,
    IWelcomeNotifier,
)

__all__ = [
    "IAccountRepository",
    "IEmailSummarizer",
    "IProfilePictureFetcher",
    "IProviderTokenStore",
    "ITokenCipher",
    "IWaitlistRepository",
    "IWelcomeNotifier",
]
