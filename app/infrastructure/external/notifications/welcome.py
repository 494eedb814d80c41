"""Welcome notification sent once, after an account's first federated login."""

import asyncio
import smtplib
from email.message import EmailMessage as MimeMessage

from app.core.config import Settings
from app.infrastructure.persistence.models.account import Account
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

WELCOME_SUBJECT = "Welcome to {app_name}"
WELCOME_BODY = """Hi {name},

Your {app_name} account is ready. You signed in with {provider} as {email}.

You can manage the inboxes you connected and your important keywords from
your dashboard at {frontend_url}.

The {app_name} team
"""


def render_welcome(account: Account, *, app_name: str, frontend_url: str) -> MimeMessage:
    """Build the plain-text welcome message for account."""
    message = MimeMessage()
    message["Subject"] = WELCOME_SUBJECT.format(app_name=app_name)
    message["To"] = account.email
    message.set_content(
        WELCOME_BODY.format(
            name=account.name or account.email,
            app_name=app_name,
            provider=account.auth_provider.capitalize(),
            email=account.email,
            frontend_url=frontend_url,
        )
    )
    return message


class SmtpWelcomeNotifier:
    """Send the welcome email over SMTP (blocking smtplib runs in a thread)."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _deliver(self, message: MimeMessage) -> None:
        s = self._settings
        message["From"] = s.smtp_from
        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.http_timeout_seconds) as server:
            if s.smtp_use_tls:
                server.starttls()
            if s.smtp_username:
                server.login(s.smtp_username, s.smtp_password.get_secret_value())
            server.send_message(message)

    async def send_welcome(self, account: Account) -> None:
        message = render_welcome(
            account,
            app_name=self._settings.app_name,
            frontend_url=self._settings.frontend_url,
        )
        await asyncio.to_thread(self._deliver, message)
        logger.info("Welcome email sent to account %s", account.id)


class LoggingWelcomeNotifier:
    """Fallback notifier when no SMTP host is configured."""

    async def send_welcome(self, account: Account) -> None:
        logger.info("Welcome notification (SMTP disabled) for account %s", account.id)


def build_welcome_notifier(settings: Settings) -> SmtpWelcomeNotifier | LoggingWelcomeNotifier:
    if settings.smtp_host:
        return SmtpWelcomeNotifier(settings)
    return LoggingWelcomeNotifier()
