"""Email adapter factory: selects the Gmail, Outlook or Yahoo adapter by provider."""

from collections.abc import Mapping

import httpx

from app.core.config import Settings
from app.domain.enums import AuthProvider
from app.domain.exceptions import UnsupportedProviderException
from app.infrastructure.external.email.adapters.gmail_adapter import GmailAdapter
from app.infrastructure.external.email.adapters.outlook_adapter import OutlookAdapter
from app.infrastructure.external.email.adapters.yahoo_imap_adapter import YahooImapAdapter
from app.infrastructure.external.email.protocols import IEmailAdapter
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

EMAIL_OPERATIONS_MESSAGE = "Unsupported auth provider for email operations"


class EmailAdapterFactory:
    """Adapter instances keyed by provider tag.

    Adapters are stateless per call (credentials are passed to every
    operation), so one instance per provider is shared across requests.
    """

    def __init__(self, adapters: Mapping[AuthProvider, IEmailAdapter]) -> None:
        self._adapters = dict(adapters)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> "EmailAdapterFactory":
        """Build the default adapters.

        Args:
            settings: Application settings (client credentials, IMAP/SMTP hosts).
            http_client: Optional shared httpx.AsyncClient used for Graph calls.
        """
        return cls(
            {
                AuthProvider.GOOGLE: GmailAdapter(
                    client_id=settings.google_client_id or None,
                    client_secret=settings.google_client_secret.get_secret_value() or None,
                ),
                AuthProvider.MICROSOFT: OutlookAdapter(http_client=http_client),
                AuthProvider.YAHOO: YahooImapAdapter(
                    imap_host=settings.yahoo_imap_host,
                    imap_port=settings.yahoo_imap_port,
                    smtp_host=settings.yahoo_smtp_host,
                    smtp_port=settings.yahoo_smtp_port,
                    timeout=float(settings.imap_timeout_seconds),
                ),
            }
        )

    def get_adapter(self, provider: AuthProvider | str) -> IEmailAdapter:
        """Return the adapter for provider.

        Raises:
            UnsupportedProviderException: If provider has no email adapter.
        """
        tag = AuthProvider.parse(provider) if isinstance(provider, str) else provider
        adapter = self._adapters.get(tag) if tag is not None else None
        if adapter is None:
            name = provider.value if isinstance(provider, AuthProvider) else str(provider)
            raise UnsupportedProviderException(name, EMAIL_OPERATIONS_MESSAGE)
        logger.debug("Using %s for %s", type(adapter).__name__, tag)
        return adapter

    def supported_providers(self) -> list[AuthProvider]:
        return list(self._adapters)
