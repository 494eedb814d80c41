"""Email/password accounts: registration and login."""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.application.dtos.auth import InternalTokenPair
from app.application.interfaces.repositories import IAccountRepository
from app.application.services.identity_linker import new_account_fields
from app.application.services.token_service import TokenService
from app.domain.enums import AuthProvider
from app.domain.exceptions import AuthenticationException
from app.infrastructure.security.password import hash_password_async, verify_password_async
from app.shared.telemetry.logging import get_logger
from app.shared.utils.datetime import utc_now
from app.shared.utils.sanitization import normalize_email

if TYPE_CHECKING:
    from app.infrastructure.persistence.models.account import Account

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class LocalAuthService:
    """Register and authenticate accounts that use a local password."""

    def __init__(self, account_repo: IAccountRepository, token_service: TokenService) -> None:
        self.account_repo = account_repo
        self.token_service = token_service

    async def register(
        self, email: str, password: str, name: str
    ) -> tuple[Account, InternalTokenPair]:
        """Create a local account and start its session.

        Raises:
            AccountAlreadyExistsException: Email already in use.
        """
        normalized = normalize_email(email)
        fields = new_account_fields(normalized, name.strip() or normalized.split("@", 1)[0])
        fields["auth_provider"] = AuthProvider.LOCAL.value
        fields["password_hash"] = await hash_password_async(password)
        # Registration is the first login
        fields["first_login"] = False
        account = await self.account_repo.create_account(**fields)
        pair = await self.token_service.start_session(account)
        logger.info("Registered local account %s", account.id)
        return account, pair

    async def login(self, email: str, password: str) -> tuple[Account, InternalTokenPair]:
        """Verify the password and start a session.

        Unknown email, missing password hash, wrong password and inactive
        account all raise the same AuthenticationException.
        """
        account = await self.account_repo.get_by_email(normalize_email(email))
        hashed = account.password_hash if account is not None else None
        if not await verify_password_async(password, hashed) or account is None:
            raise AuthenticationException(INVALID_CREDENTIALS)
        if not account.is_active:
            raise AuthenticationException(INVALID_CREDENTIALS)
        account.last_sync = utc_now()
        await self.account_repo.save(account)
        pair = await self.token_service.start_session(account)
        return account, pair
