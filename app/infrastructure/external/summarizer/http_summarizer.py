"""Summarizer client for an external HTTP summarization service."""

from contextlib import asynccontextmanager

import httpx

from app.core.config import Settings
from app.domain.exceptions import ServiceUnavailableException
from app.infrastructure.external.email.protocols import EmailMessage
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import traced

logger = get_logger(__name__)


class HttpEmailSummarizer:
    """POST the message to ``summarizer_url`` and return the ``summary`` field."""

    def __init__(
        self,
        url: str,
        *,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._shared_http = http_client
        self._timeout = timeout

    @asynccontextmanager
    async def _http_cm(self):
        if self._shared_http is not None:
            yield self._shared_http
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    @traced("summarizer.summarize")
    async def summarize(self, message: EmailMessage) -> str:
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
        payload = {
            "subject": message.subject,
            "sender": message.sender,
            "body": message.body,
        }
        try:
            async with self._http_cm() as client:
                response = await client.post(self._url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Summarizer request failed: %s", e)
            raise ServiceUnavailableException("summarizer") from e
        if response.status_code != 200:
            logger.warning("Summarizer returned status=%d", response.status_code)
            raise ServiceUnavailableException("summarizer")
        summary = response.json().get("summary")
        if not isinstance(summary, str):
            raise ServiceUnavailableException("summarizer")
        return summary.strip()


def build_summarizer(
    settings: Settings, *, http_client: httpx.AsyncClient | None = None
) -> HttpEmailSummarizer | None:
    """Return a summarizer when SUMMARIZER_URL is set, else None."""
    if not settings.summarizer_url:
        return None
    api_key = settings.summarizer_api_key.get_secret_value() if settings.summarizer_api_key else None
    return HttpEmailSummarizer(
        settings.summarizer_url,
        api_key=api_key,
        http_client=http_client,
        timeout=settings.http_timeout_seconds,
    )
