"""Internal token lifecycle: issue, verify, refresh with rotation, revoke.

Access tokens carry a snapshot of the account (role, provider, capability
flags); refresh tokens carry only the account id plus a nonce and are valid
only while they equal the value stored on the account.
"""

from datetime import UTC, datetime, timedelta

from app.application.dtos.auth import AccessClaims, InternalTokenPair
from app.application.interfaces.repositories import IAccountRepository
from app.core.config import Settings
from app.domain.exceptions import (
    AuthenticationException,
    ConfigurationException,
    InvalidRefreshTokenException,
    TokenExpiredException,
)
from app.infrastructure.persistence.models.account import Account
from app.infrastructure.security.jwt import TokenExpiredError, decode_token, encode_token
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class TokenService:
    """Issue and rotate the internal access/refresh token pair."""

    def __init__(
        self,
        account_repo: IAccountRepository,
        *,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(days=1),
        refresh_ttl: timedelta = timedelta(days=30),
        algorithm: str = "HS256",
    ) -> None:
        if not access_secret or not refresh_secret:
            raise ConfigurationException(
                "JWT_SECRET and REFRESH_TOKEN_SECRET must both be configured"
            )
        self.account_repo = account_repo
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, account_repo: IAccountRepository, settings: Settings) -> "TokenService":
        return cls(
            account_repo,
            access_secret=settings.jwt_secret.get_secret_value(),
            refresh_secret=settings.refresh_token_secret.get_secret_value(),
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
            algorithm=settings.algorithm,
        )

    def issue_access(self, account: Account) -> str:
        claims = {
            "sub": account.id,
            "id": account.id,
            "email": account.email,
            "name": account.name,
            "role": account.role,
            "authProvider": account.auth_provider,
            "hasGoogleAuth": account.has_google_auth,
            "hasMicrosoftAuth": account.has_microsoft_auth,
        }
        return encode_token(claims, self._access_secret, self.access_ttl, algorithm=self.algorithm)

    def issue_refresh(self, account: Account) -> str:
        return encode_token(
            {"sub": account.id, "id": account.id},
            self._refresh_secret,
            self.refresh_ttl,
            algorithm=self.algorithm,
            with_nonce=True,
        )

    def issue(self, account: Account) -> InternalTokenPair:
        """Mint a new pair without persisting anything."""
        return InternalTokenPair(
            access_token=self.issue_access(account),
            refresh_token=self.issue_refresh(account),
        )

    async def start_session(self, account: Account) -> InternalTokenPair:
        """Issue a pair and store its refresh token (replaces any previous session)."""
        pair = self.issue(account)
        await self.account_repo.set_refresh_token(account.id, pair.refresh_token)
        account.refresh_token = pair.refresh_token
        return pair

    def verify(self, access_token: str) -> AccessClaims:
        """Verify signature and expiry of an access token. No account lookup.

        Raises:
            TokenExpiredException: Token expired.
            AuthenticationException: Token malformed or signed with another key.
        """
        try:
            payload = decode_token(access_token, self._access_secret, algorithm=self.algorithm)
        except TokenExpiredError as e:
            raise TokenExpiredException() from e
        except ValueError as e:
            raise AuthenticationException("Invalid access token") from e
        exp = payload.get("exp")
        return AccessClaims(
            account_id=str(payload.get("id") or payload["sub"]),
            email=payload.get("email", ""),
            name=payload.get("name", ""),
            role=payload.get("role", "user"),
            auth_provider=payload.get("authProvider", "local"),
            has_google_auth=bool(payload.get("hasGoogleAuth")),
            has_microsoft_auth=bool(payload.get("hasMicrosoftAuth")),
            expires_at=datetime.fromtimestamp(exp, tz=UTC) if isinstance(exp, (int, float)) else None,
        )

    async def verify_refresh(self, refresh_token: str) -> Account:
        """Return the active account whose stored refresh token equals refresh_token.

        Raises:
            InvalidRefreshTokenException: Bad signature, expired, unknown account,
                inactive account, or token no longer current.
        """
        try:
            payload = decode_token(refresh_token, self._refresh_secret, algorithm=self.algorithm)
        except ValueError as e:
            raise InvalidRefreshTokenException() from e
        account = await self.account_repo.get_by_id(str(payload.get("id") or payload["sub"]))
        if account is None or not account.is_active:
            raise InvalidRefreshTokenException()
        if account.refresh_token != refresh_token:
            logger.info("Refresh token for account %s is not current", account.id)
            raise InvalidRefreshTokenException()
        return account

    async def refresh(self, refresh_token: str) -> tuple[Account, InternalTokenPair]:
        """Rotate: verify, mint a new pair, and swap it in atomically.

        The old refresh token is invalid afterwards; a concurrent refresh with
        the same token loses the compare-and-swap and gets InvalidRefreshTokenException.
        """
        account = await self.verify_refresh(refresh_token)
        pair = self.issue(account)
        swapped = await self.account_repo.rotate_refresh_token(
            account.id, refresh_token, pair.refresh_token
        )
        if not swapped:
            raise InvalidRefreshTokenException()
        account.refresh_token = pair.refresh_token
        return account, pair

    async def reissue_access(self, refresh_token: str) -> tuple[Account, str]:
        """Mint a fresh access token from a current refresh token (no rotation)."""
        account = await self.verify_refresh(refresh_token)
        return account, self.issue_access(account)

    async def revoke(self, account_id: str) -> None:
        """Log out: clear the stored refresh token."""
        await self.account_repo.set_refresh_token(account_id, None)
