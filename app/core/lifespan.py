"""Application lifespan: startup and shutdown.

Single place for startup/shutdown wiring (SRP): the shared HTTP client,
the immutable OAuth provider registry, email adapters, token cipher,
telemetry and the database engine.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI

from app.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup: shared HTTP client, provider registry, email adapter factory,
    token cipher, summarizer, welcome notifier, telemetry (if enabled).
    Shutdown: HTTP client close, telemetry shutdown, engine dispose.
    """
    from app.infrastructure.external.email.factory import EmailAdapterFactory
    from app.infrastructure.external.notifications.welcome import build_welcome_notifier
    from app.infrastructure.external.oauth.registry import build_provider_registry
    from app.infrastructure.external.summarizer import build_summarizer
    from app.infrastructure.persistence import database
    from app.infrastructure.security.token_cipher import build_token_cipher
    from app.shared.telemetry.logging import setup_logging

    settings = get_settings()
    setup_logging()

    # ---- Startup ----
    # Shared HTTP client for OAuth, Graph and summarizer calls (connection reuse).
    http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    app.state.oauth_http_client = http_client
    app.state.provider_registry = build_provider_registry(settings)
    app.state.email_adapters = EmailAdapterFactory.from_settings(settings, http_client=http_client)
    app.state.token_cipher = build_token_cipher(settings)
    app.state.summarizer = build_summarizer(settings, http_client=http_client)
    app.state.welcome_notifier = build_welcome_notifier(settings)

    if settings.telemetry_enabled:
        from app.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            enabled=True,
            environment=settings.environment,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        set_telemetry(telemetry)
        telemetry.instrument_fastapi(app)
        database.ensure_engine()
        telemetry.instrument_sqlalchemy(database.engine)
        logger.info("Telemetry initialized")

    yield

    # ---- Shutdown ----
    await http_client.aclose()
    app.state.oauth_http_client = None
    logger.info("Shared HTTP client closed")

    from app.shared.telemetry.telemetry import get_telemetry, set_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()
        set_telemetry(None)
        logger.info("Telemetry shutdown complete")

    await database.dispose_engine()
    logger.info("Database engine disposed")
