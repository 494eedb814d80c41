"""Identity linking: map a provider profile onto exactly one Account.

The waiting-list gate has already approved the email when link() runs.
Provider tokens pass through the token cipher before they are stored.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from app.application.dtos.auth import LinkResult, ProviderProfile, ProviderTokens
from app.application.interfaces.repositories import IAccountRepository
from app.application.interfaces.services import (
    IProfilePictureFetcher,
    ITokenCipher,
    IWelcomeNotifier,
)
from app.application.services.token_service import TokenService
from app.domain.enums import AccountRole, AccountStatus, AuthProvider
from app.domain.exceptions import ProfileExtractionException, UnsupportedProviderException
from app.domain.keywords import DEFAULT_IMPORTANT_KEYWORDS
from app.infrastructure.external.oauth.profile import extract_email
from app.shared.telemetry.logging import get_logger
from app.shared.utils.datetime import utc_now
from app.shared.utils.sanitization import normalize_email

if TYPE_CHECKING:
    from app.infrastructure.persistence.models.account import Account
    from app.infrastructure.persistence.models.waitlist_entry import WaitlistEntry

logger = get_logger(__name__)

# Used when the provider does not report expires_in
DEFAULT_PROVIDER_TOKEN_TTL = timedelta(hours=24)
FREE_PLAN_QUERIES = 5
SUBSCRIPTION_TERM = timedelta(days=3650)


def default_subscription() -> dict[str, Any]:
    now = utc_now()
    return {
        "plan": "free",
        "dailyQueries": FREE_PLAN_QUERIES,
        "remainingQueries": FREE_PLAN_QUERIES,
        "status": "active",
        "startDate": now.isoformat(),
        "endDate": (now + SUBSCRIPTION_TERM).isoformat(),
    }


def new_account_fields(email: str, name: str) -> dict[str, Any]:
    """Defaults shared by federated and local account creation."""
    return {
        "email": email,
        "name": name,
        "role": AccountRole.USER.value,
        "status": AccountStatus.ACTIVE.value,
        "first_login": True,
        "inbox_list": [email],
        "important_keywords": list(DEFAULT_IMPORTANT_KEYWORDS),
        "subscription": default_subscription(),
    }


class IdentityLinker:
    """Create or update the Account for a federated login and start a session."""

    def __init__(
        self,
        account_repo: IAccountRepository,
        token_service: TokenService,
        token_cipher: ITokenCipher,
        *,
        picture_fetcher: IProfilePictureFetcher | None = None,
        welcome_notifier: IWelcomeNotifier | None = None,
    ) -> None:
        self.account_repo = account_repo
        self.token_service = token_service
        self.token_cipher = token_cipher
        self.picture_fetcher = picture_fetcher
        self.welcome_notifier = welcome_notifier

    @staticmethod
    def _require_federated(provider: AuthProvider | str) -> AuthProvider:
        tag = AuthProvider.parse(provider) if isinstance(provider, str) else provider
        if tag is None or not tag.is_federated:
            name = provider.value if isinstance(provider, AuthProvider) else str(provider)
            raise UnsupportedProviderException(name)
        return tag

    def resolve_email(self, provider: AuthProvider | str, profile: ProviderProfile) -> str:
        """Return the normalized login email for profile.

        Raises:
            UnsupportedProviderException: provider is not google, microsoft or yahoo.
            ProfileExtractionException: profile carries no usable address.
        """
        tag = self._require_federated(provider)
        email = extract_email(tag, profile)
        if email is None:
            raise ProfileExtractionException(tag.value)
        return normalize_email(email)

    async def _fetch_picture(
        self, provider: AuthProvider, access_token: str, profile: ProviderProfile
    ) -> str | None:
        if self.picture_fetcher is None:
            return profile.picture
        try:
            return await self.picture_fetcher.fetch(provider, access_token, profile)
        except Exception as e:
            logger.warning("Profile picture lookup failed for %s: %s", provider.value, e)
            return None

    def _store_credentials(
        self,
        account: Account,
        provider: AuthProvider,
        profile: ProviderProfile,
        tokens: ProviderTokens,
    ) -> None:
        ttl = timedelta(seconds=tokens.expires_in) if tokens.expires_in else DEFAULT_PROVIDER_TOKEN_TTL
        account.set_provider_credentials(
            provider,
            provider_id=profile.provider_user_id,
            access_token=self.token_cipher.encrypt(tokens.access_token) or "",
            refresh_token=self.token_cipher.encrypt(tokens.refresh_token),
            expires_at=utc_now() + ttl,
        )

    async def link(
        self,
        provider: AuthProvider | str,
        profile: ProviderProfile,
        tokens: ProviderTokens,
        waitlist_entry: WaitlistEntry | None = None,
    ) -> LinkResult:
        """Create or update the account for profile and issue an internal token pair.

        Caller owns the transaction: everything here is flushed, not committed.
        A first login is claimed here (welcome_due) but the welcome itself is
        sent by the caller through send_welcome once the transaction commits.
        """
        tag = self._require_federated(provider)
        email = self.resolve_email(tag, profile)
        picture = await self._fetch_picture(tag, tokens.access_token, profile)

        account = await self.account_repo.get_by_email(email)
        created = account is None
        if account is None:
            name = (profile.display_name or "").strip() or email.split("@", 1)[0]
            account = await self.account_repo.create_account(**new_account_fields(email, name))
            logger.info("Created account %s via %s", account.id, tag.value)

        self._store_credentials(account, tag, profile, tokens)
        account.verified = True
        account.last_sync = utc_now()
        alias = waitlist_entry.inbox if waitlist_entry is not None else None
        inboxes = list(account.inbox_list or [])
        if email not in inboxes and (alias is None or alias not in inboxes):
            account.inbox_list = [*inboxes, alias or email]
        if not account.important_keywords:
            account.important_keywords = list(DEFAULT_IMPORTANT_KEYWORDS)
        if picture:
            account.profile_picture = picture
        await self.account_repo.save(account)

        pair = await self.token_service.start_session(account)
        welcome_due = await self._claim_first_login(account)
        return LinkResult(
            account=account,
            tokens=pair,
            created=created,
            provider=tag,
            welcome_due=welcome_due,
        )

    async def _claim_first_login(self, account: Account) -> bool:
        if not account.first_login:
            return False
        return await self.account_repo.consume_first_login(account.id)

    async def send_welcome(self, account: Account) -> None:
        """Best-effort welcome notification; call only after the link is committed."""
        if self.welcome_notifier is None:
            return
        try:
            await self.welcome_notifier.send_welcome(account)
        except Exception as e:
            logger.warning("Welcome notification failed for account %s: %s", account.id, e)
