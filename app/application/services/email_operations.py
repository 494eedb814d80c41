"""Mailbox operations on behalf of an authenticated account.

Selects the adapter for the account's auth provider, decrypts its stored
credentials and applies the refresh-once policy: an expired access token,
or one the provider rejects with 401, is refreshed a single time with the
stored provider refresh token and the operation is retried once.
Refreshed tokens are written through a token store that commits on its own,
so they persist even when the retried operation fails.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import replace
from datetime import timedelta
from typing import TYPE_CHECKING, TypeVar

import httpx

from app.application.interfaces.repositories import IAccountRepository, IProviderTokenStore
from app.application.interfaces.services import IEmailSummarizer, ITokenCipher
from app.domain.enums import AuthProvider, EmailFilter
from app.domain.exceptions import (
    ServiceUnavailableException,
    UnsupportedProviderException,
    ValidationException,
)
from app.domain.keywords import DEFAULT_IMPORTANT_KEYWORDS, matches_any, merge_keywords
from app.infrastructure.exceptions import (
    ProviderAuthExpiredError,
    ProviderAuthRejectedError,
    ProviderOperationError,
)
from app.infrastructure.external.email.factory import (
    EMAIL_OPERATIONS_MESSAGE,
    EmailAdapterFactory,
)
from app.infrastructure.external.email.protocols import (
    EmailMessage,
    EmailPage,
    FolderInfo,
    IEmailAdapter,
    OutgoingEmail,
    ProviderCredentials,
    SendResult,
)
from app.infrastructure.external.oauth.registry import ProviderRegistry
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import add_span_attributes
from app.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from app.infrastructure.persistence.models.account import Account

logger = get_logger(__name__)

T = TypeVar("T")

EMPTY_EMAIL_SUMMARY = "This email is empty, nothing to summarize."
EMAIL_PROVIDERS = frozenset({AuthProvider.GOOGLE, AuthProvider.MICROSOFT, AuthProvider.YAHOO})
DEFAULT_PROVIDER_TOKEN_TTL = timedelta(hours=1)
MAX_PAGE_SIZE = 100


def parse_filter(value: str | None) -> EmailFilter:
    """Map a query-string filter to EmailFilter (default all)."""
    if not value:
        return EmailFilter.ALL
    try:
        return EmailFilter(value.strip().lower())
    except ValueError:
        raise ValidationException(
            f"Unsupported filter: {value}. Supported: {', '.join(f.value for f in EmailFilter)}",
            field="filter",
        ) from None


class EmailOperationsService:
    """Uniform email operations across Gmail, Outlook and Yahoo."""

    def __init__(
        self,
        account_repo: IAccountRepository,
        adapters: EmailAdapterFactory,
        token_cipher: ITokenCipher,
        registry: ProviderRegistry,
        *,
        summarizer: IEmailSummarizer | None = None,
        http_client: httpx.AsyncClient | None = None,
        token_store: IProviderTokenStore | None = None,
    ) -> None:
        self.account_repo = account_repo
        self.token_store = token_store or account_repo
        self.adapters = adapters
        self.token_cipher = token_cipher
        self.registry = registry
        self.summarizer = summarizer
        self._http_client = http_client

    @staticmethod
    def _provider(account: Account) -> AuthProvider:
        tag = AuthProvider.parse(account.auth_provider or "")
        if tag not in EMAIL_PROVIDERS:
            raise UnsupportedProviderException(account.auth_provider, EMAIL_OPERATIONS_MESSAGE)
        return tag

    def _credentials(self, account: Account, provider: AuthProvider) -> ProviderCredentials:
        _, access, refresh, expires_at = account.provider_credentials(provider)
        password = None
        if provider is AuthProvider.YAHOO:
            password = self.token_cipher.decrypt(account.yahoo_app_password)
        creds = ProviderCredentials(
            provider=provider,
            email_address=account.email,
            access_token=self.token_cipher.decrypt(access),
            refresh_token=self.token_cipher.decrypt(refresh),
            expires_at=expires_at,
            password=password,
        )
        if not creds.access_token and not creds.password:
            raise ProviderAuthExpiredError(provider.display_name)
        return creds

    async def _refresh(self, account: Account, creds: ProviderCredentials) -> ProviderCredentials:
        """Refresh the provider access token once and persist it."""
        provider = creds.provider
        driver = self.registry.driver(provider, http_client=self._http_client)
        if driver is None or not creds.refresh_token:
            raise ProviderAuthExpiredError(provider.display_name)
        try:
            tokens = await driver.refresh_access_token(creds.refresh_token)
        except ProviderOperationError as e:
            logger.warning("%s token refresh failed for account %s", provider.value, account.id)
            raise ProviderAuthExpiredError(provider.display_name) from e
        ttl = timedelta(seconds=tokens.expires_in) if tokens.expires_in else DEFAULT_PROVIDER_TOKEN_TTL
        expires_at = utc_now() + ttl
        rotated = tokens.refresh_token if tokens.refresh_token != creds.refresh_token else None
        await self.token_store.update_provider_tokens(
            account.id,
            provider,
            access_token=self.token_cipher.encrypt(tokens.access_token) or "",
            expires_at=expires_at,
            refresh_token=self.token_cipher.encrypt(rotated),
        )
        logger.info("Refreshed %s access token for account %s", provider.value, account.id)
        return replace(
            creds,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token or creds.refresh_token,
            expires_at=expires_at,
        )

    async def _run(
        self,
        account: Account,
        operation: Callable[[IEmailAdapter, ProviderCredentials], Awaitable[T]],
    ) -> T:
        provider = self._provider(account)
        add_span_attributes(**{"email.provider": provider.value})
        adapter = self.adapters.get_adapter(provider)
        creds = self._credentials(account, provider)
        refreshed = False
        if creds.access_token and creds.is_expired():
            if creds.refresh_token:
                creds = await self._refresh(account, creds)
                refreshed = True
            elif creds.password:
                creds = replace(creds, access_token=None)
            else:
                raise ProviderAuthExpiredError(provider.display_name)
        try:
            return await operation(adapter, creds)
        except ProviderAuthRejectedError as e:
            if refreshed or not creds.refresh_token:
                raise ProviderAuthExpiredError(provider.display_name) from e
            logger.info("%s rejected access token; refreshing once", provider.value)
        creds = await self._refresh(account, creds)
        try:
            return await operation(adapter, creds)
        except ProviderAuthRejectedError as e:
            raise ProviderAuthExpiredError(provider.display_name) from e

    @staticmethod
    def _page_size(max_results: int) -> int:
        if max_results < 1:
            raise ValidationException("maxResults must be positive", field="maxResults")
        return min(max_results, MAX_PAGE_SIZE)

    async def fetch_emails(
        self,
        account: Account,
        email_filter: EmailFilter = EmailFilter.ALL,
        query: str | None = None,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> EmailPage:
        size = self._page_size(max_results)
        return await self._run(
            account,
            lambda a, c: a.fetch_emails(c, email_filter, query, size, page_token),
        )

    def effective_keywords(self, account: Account, extra: Iterable[str] | None = None) -> list[str]:
        return merge_keywords(DEFAULT_IMPORTANT_KEYWORDS, account.important_keywords, extra)

    async def fetch_important(
        self,
        account: Account,
        email_filter: EmailFilter = EmailFilter.ALL,
        query: str | None = None,
        keywords: Iterable[str] | None = None,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> EmailPage:
        """Fetch one page and keep messages whose subject, sender or snippet hits a keyword."""
        merged = self.effective_keywords(account, keywords)
        page = await self.fetch_emails(account, email_filter, query, max_results, page_token)
        important = [
            m
            for m in page.messages
            if matches_any(" ".join((m.subject, m.sender, m.snippet)), merged)
        ]
        return EmailPage(messages=important, next_page_token=page.next_page_token)

    async def search_emails(
        self,
        account: Account,
        query: str,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> EmailPage:
        if not query or not query.strip():
            raise ValidationException("Search query is required", field="query")
        size = self._page_size(max_results)
        return await self._run(
            account, lambda a, c: a.search_emails(c, query.strip(), size, page_token)
        )

    async def count_emails(
        self,
        account: Account,
        email_filter: EmailFilter = EmailFilter.ALL,
        query: str | None = None,
    ) -> int:
        return await self._run(account, lambda a, c: a.count_emails(c, email_filter, query))

    async def read_email(self, account: Account, email_id: str) -> EmailMessage:
        return await self._run(account, lambda a, c: a.read_email(c, email_id))

    @staticmethod
    def _validate_outgoing(message: OutgoingEmail, *, require_recipient: bool = True) -> None:
        if require_recipient and not message.to:
            raise ValidationException("At least one recipient is required", field="to")
        for address in [*message.to, *message.cc, *message.bcc]:
            if "@" not in address:
                raise ValidationException(f"Invalid email address: {address}", field="to")

    async def send_email(self, account: Account, message: OutgoingEmail) -> SendResult:
        self._validate_outgoing(message)
        return await self._run(account, lambda a, c: a.send_email(c, message))

    async def reply_to_email(
        self, account: Account, email_id: str, message: OutgoingEmail
    ) -> SendResult:
        self._validate_outgoing(message, require_recipient=False)
        return await self._run(account, lambda a, c: a.reply_to_email(c, email_id, message))

    async def create_draft(self, account: Account, message: OutgoingEmail) -> SendResult:
        self._validate_outgoing(message, require_recipient=False)
        return await self._run(account, lambda a, c: a.create_draft(c, message))

    async def trash_email(self, account: Account, email_id: str) -> None:
        await self._run(account, lambda a, c: a.trash_email(c, email_id))

    async def mark_as_read(self, account: Account, email_id: str) -> None:
        await self._run(account, lambda a, c: a.mark_as_read(c, email_id))

    async def move_to_folder(self, account: Account, email_id: str, folder: str) -> None:
        if not folder or not folder.strip():
            raise ValidationException("Folder name is required", field="folder")
        await self._run(account, lambda a, c: a.move_to_folder(c, email_id, folder.strip()))

    async def create_folder(self, account: Account, name: str) -> FolderInfo:
        if not name or not name.strip():
            raise ValidationException("Folder name is required", field="name")
        return await self._run(account, lambda a, c: a.create_folder(c, name.strip()))

    async def summarize(self, account: Account, email_id: str) -> str:
        """Summarize one message; empty bodies short-circuit without calling the summarizer."""
        if self.summarizer is None:
            raise ServiceUnavailableException("summarizer")
        message = await self.read_email(account, email_id)
        if not message.body.strip():
            return EMPTY_EMAIL_SUMMARY
        return await self.summarizer.summarize(message)

    def get_keywords(self, account: Account) -> tuple[list[str], list[str]]:
        """Return (stored keywords, effective merged keywords)."""
        stored = list(account.important_keywords or [])
        return stored, self.effective_keywords(account)

    async def set_keywords(self, account: Account, keywords: Iterable[str]) -> list[str]:
        account.important_keywords = merge_keywords(keywords)
        await self.account_repo.save(account)
        return list(account.important_keywords)

    async def set_yahoo_app_password(self, account: Account, app_password: str) -> None:
        if not app_password or not app_password.strip():
            raise ValidationException("App password is required", field="appPassword")
        account.yahoo_app_password = self.token_cipher.encrypt(app_password.strip())
        await self.account_repo.save(account)
        logger.info("Stored Yahoo app password for account %s", account.id)
