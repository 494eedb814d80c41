"""Application services: waiting-list gate, tokens, identity linking, OAuth flow, mail."""

from app.application.services.account_profile import AccountProfileService
from app.application.services.email_operations import EmailOperationsService, parse_filter
from app.application.services.identity_linker import IdentityLinker, new_account_fields
from app.application.services.local_auth_service import LocalAuthService
from app.application.services.oauth_flow import (
    DeniedOutcome,
    FailedOutcome,
    LinkedOutcome,
    OAuthFlowController,
    OAuthOutcome,
)
from app.application.services.token_service import TokenService
from app.application.services.waitlist_gate import WaitlistGate

__all__ = [
    "AccountProfileService",
    "DeniedOutcome",
    "EmailOperationsService",
    "FailedOutcome",
    "IdentityLinker",
    "LinkedOutcome",
    "LocalAuthService",
    "OAuthFlowController",
    "OAuthOutcome",
    "TokenService",
    "WaitlistGate",
    "new_account_fields",
    "parse_filter",
]
