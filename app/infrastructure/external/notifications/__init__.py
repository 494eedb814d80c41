"""Outbound notifications."""

from app.infrastructure.external.notifications.welcome import (
    LoggingWelcomeNotifier,
    SmtpWelcomeNotifier,
    build_welcome_notifier,
    render_welcome,
)

__all__ = [
    "LoggingWelcomeNotifier",
    "SmtpWelcomeNotifier",
    "build_welcome_notifier",
    "render_welcome",
]
