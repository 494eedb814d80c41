"""Yahoo Mail adapter over IMAP (aioimaplib) and SMTP submission (smtplib).

Message ids are ``<mailbox>:<uid>`` because IMAP UIDs are only unique within
one mailbox. Listing cursors are offsets into the newest-first UID list of a
single UID SEARCH.
"""

from __future__ import annotations

import asyncio
import re
import smtplib
import ssl
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from typing import Any

import aioimaplib

from app.domain.enums import AuthProvider, EmailFilter
from app.domain.exceptions import ResourceNotFoundException, ValidationException
from app.infrastructure.exceptions import (
    ProviderAuthExpiredError,
    ProviderAuthRejectedError,
    ProviderOperationError,
)
from app.infrastructure.external.email.mime import (
    addresses,
    build_mime,
    extract_attachments,
    extract_body,
    header_date,
    parse_rfc822,
    reply_subject,
)
from app.infrastructure.external.email.protocols import (
    EmailMessage,
    EmailPage,
    FolderInfo,
    OutgoingEmail,
    ProviderCredentials,
    SendResult,
)
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import traced

logger = get_logger(__name__)

PROVIDER_NAME = "Yahoo"
INBOX = "INBOX"
_LOGOUT_STATES = frozenset({"NONAUTH", "AUTH", "SELECTED"})

# Yahoo mailbox names for common folder aliases
_MAILBOX_ALIASES = {
    "inbox": INBOX,
    "sent": "Sent",
    "drafts": "Draft",
    "draft": "Draft",
    "trash": "Trash",
    "archive": "Archive",
    "spam": "Bulk",
    "junk": "Bulk",
}

# filter -> (mailbox, search criteria)
_FILTERS: dict[EmailFilter, tuple[str, str]] = {
    EmailFilter.ALL: (INBOX, "ALL"),
    EmailFilter.READ: (INBOX, "SEEN"),
    EmailFilter.UNREAD: (INBOX, "UNSEEN"),
    EmailFilter.ARCHIVED: ("Archive", "ALL"),
    EmailFilter.STARRED: (INBOX, "FLAGGED"),
    EmailFilter.SENT: ("Sent", "ALL"),
    EmailFilter.DRAFTS: ("Draft", "ALL"),
    EmailFilter.IMPORTANT: (INBOX, "FLAGGED"),
    EmailFilter.TRASH: ("Trash", "ALL"),
}

_UID_RE = re.compile(rb"UID (\d+)")
_FLAGS_RE = re.compile(rb"FLAGS \(([^)]*)\)")

ImapClientFactory = Callable[[str, int, float], Any]


def _default_client_factory(host: str, port: int, timeout: float) -> Any:
    return aioimaplib.IMAP4_SSL(host=host, port=port, timeout=timeout)


def xoauth2_string(email_address: str, access_token: str) -> str:
    return f"user={email_address}\x01auth=Bearer {access_token}\x01\x01"


def quote_imap(value: str) -> str:
    """Quote a search term as an IMAP string."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def make_message_id(mailbox: str, uid: str) -> str:
    return f"{mailbox}:{uid}"


def split_message_id(email_id: str) -> tuple[str, str]:
    mailbox, sep, uid = email_id.rpartition(":")
    if not sep:
        mailbox = INBOX
    if not uid.isdigit():
        raise ValidationException("Invalid email id", field="email_id")
    return mailbox or INBOX, uid


def parse_fetch_lines(lines: Sequence[Any]) -> list[tuple[str, set[str], bytes]]:
    """Extract (uid, flags, raw message) triples from UID FETCH response lines."""
    results: list[tuple[str, set[str], bytes]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if (
            isinstance(line, (bytes, bytearray))
            and b"FETCH" in line
            and bytes(line).rstrip().endswith(b"}")
            and i + 1 < len(lines)
        ):
            raw = bytes(lines[i + 1])
            meta = bytes(line)
            i += 2
            # FLAGS may follow the literal
            if i < len(lines) and b"FETCH" not in bytes(lines[i]):
                meta += b" " + bytes(lines[i])
                i += 1
            uid = _UID_RE.search(meta)
            flags = _FLAGS_RE.search(meta)
            results.append(
                (
                    uid.group(1).decode() if uid else "",
                    set(flags.group(1).decode().split()) if flags else set(),
                    raw,
                )
            )
            continue
        i += 1
    return results


def parse_imap_message(mailbox: str, uid: str, flags: set[str], raw: bytes) -> EmailMessage:
    mime = parse_rfc822(raw)
    body = extract_body(mime)
    labels = [mailbox]
    if "\\Flagged" in flags:
        labels.append("STARRED")
    return EmailMessage(
        id=make_message_id(mailbox, uid),
        thread_id=mime.get("In-Reply-To"),
        subject=str(mime.get("Subject", "")),
        sender=str(mime.get("From", "")),
        recipients=addresses(mime.get("To")),
        cc=addresses(mime.get("Cc")),
        timestamp=header_date(mime.get("Date")),
        snippet=" ".join(body.split())[:200],
        body=body,
        is_read="\\Seen" in flags,
        is_starred="\\Flagged" in flags,
        labels=labels,
        attachments=extract_attachments(mime),
        provider_metadata={
            "imap_uid": uid,
            "mailbox": mailbox,
            "message_id_header": mime.get("Message-ID"),
            "references": mime.get("References"),
        },
    )


class YahooImapAdapter:
    """Yahoo implementation of IEmailAdapter.

    Authenticates with XOAUTH2 when an access token is present, otherwise
    with the account's app password. Every operation opens its own IMAP
    session and logs it out on exit.
    """

    provider = AuthProvider.YAHOO

    def __init__(
        self,
        *,
        imap_host: str = "imap.mail.yahoo.com",
        imap_port: int = 993,
        smtp_host: str = "smtp.mail.yahoo.com",
        smtp_port: int = 465,
        timeout: float = 30.0,
        client_factory: ImapClientFactory | None = None,
        smtp_factory: Callable[..., smtplib.SMTP] | None = None,
    ) -> None:
        self._imap_host = imap_host
        self._imap_port = imap_port
        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._timeout = timeout
        self._client_factory = client_factory or _default_client_factory
        self._smtp_factory = smtp_factory or smtplib.SMTP_SSL

    async def _authenticate(self, client: Any, creds: ProviderCredentials) -> None:
        if creds.access_token:
            response = await client.xoauth2(creds.email_address, creds.access_token)
        elif creds.password:
            response = await client.login(creds.email_address, creds.password)
        else:
            raise ProviderAuthExpiredError(PROVIDER_NAME)
        if response.result != "OK":
            logger.warning("Yahoo IMAP login rejected for %s", creds.email_address)
            raise ProviderAuthRejectedError(PROVIDER_NAME, "login", None)

    @staticmethod
    async def _close(client: Any) -> None:
        """Log out when the protocol allows it, else drop the connection."""
        try:
            if client.get_state() in _LOGOUT_STATES:
                await client.logout()
                return
        except (aioimaplib.AioImapException, OSError, asyncio.TimeoutError) as e:
            logger.debug("Yahoo IMAP logout failed: %s", e)
        transport = getattr(getattr(client, "protocol", None), "transport", None)
        if transport is not None:
            transport.close()

    @asynccontextmanager
    async def imap_session(self, creds: ProviderCredentials) -> AsyncIterator[Any]:
        """Open an authenticated IMAP session; always closed on exit."""
        client = self._client_factory(self._imap_host, self._imap_port, self._timeout)
        try:
            await client.wait_hello_from_server()
            await self._authenticate(client, creds)
            yield client
        except (aioimaplib.AioImapException, OSError, asyncio.TimeoutError) as e:
            logger.warning("Yahoo IMAP transport error: %s", e)
            raise ProviderOperationError(PROVIDER_NAME, "imap", e) from e
        finally:
            await self._close(client)

    @staticmethod
    def _check(response: Any, operation: str) -> Any:
        if response.result != "OK":
            raise ProviderOperationError(PROVIDER_NAME, operation)
        return response

    async def _select(self, client: Any, mailbox: str, operation: str) -> None:
        response = await client.select(mailbox)
        if response.result != "OK":
            raise ResourceNotFoundException("folder", mailbox)

    async def _search(self, client: Any, operation: str, *criteria: str) -> list[str]:
        response = self._check(await client.uid_search(*criteria), operation)
        uids: list[str] = []
        for line in response.lines:
            text = bytes(line).decode(errors="ignore").strip()
            if text and all(part.isdigit() for part in text.split()):
                uids.extend(text.split())
        return sorted(set(uids), key=int, reverse=True)

    async def _fetch_uids(
        self, client: Any, mailbox: str, uids: list[str], operation: str
    ) -> list[EmailMessage]:
        if not uids:
            return []
        response = self._check(
            await client.uid("fetch", ",".join(uids), "(UID FLAGS RFC822)"), operation
        )
        by_uid = {
            uid: parse_imap_message(mailbox, uid, flags, raw)
            for uid, flags, raw in parse_fetch_lines(response.lines)
        }
        return [by_uid[uid] for uid in uids if uid in by_uid]

    @staticmethod
    def _offset(page_token: str | None) -> int:
        if not page_token:
            return 0
        if not page_token.isdigit():
            raise ValidationException("Invalid page token", field="page_token")
        return int(page_token)

    @staticmethod
    def _filter_params(email_filter: EmailFilter) -> tuple[str, str]:
        if email_filter not in _FILTERS:
            raise ValidationException(f"Unknown filter: {email_filter}", field="filter")
        return _FILTERS[email_filter]

    async def _page(
        self,
        creds: ProviderCredentials,
        operation: str,
        mailbox: str,
        criteria: list[str],
        max_results: int,
        page_token: str | None,
    ) -> EmailPage:
        offset = self._offset(page_token)
        async with self.imap_session(creds) as client:
            await self._select(client, mailbox, operation)
            uids = await self._search(client, operation, *criteria)
            page = uids[offset : offset + max_results]
            messages = await self._fetch_uids(client, mailbox, page, operation)
        next_offset = offset + max_results
        return EmailPage(
            messages=messages,
            next_page_token=str(next_offset) if next_offset < len(uids) else None,
        )

    @traced("yahoo.fetch_emails")
    async def fetch_emails(
        self,
        creds: ProviderCredentials,
        email_filter: EmailFilter = EmailFilter.ALL,
        query: str | None = None,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> EmailPage:
        mailbox, base = self._filter_params(email_filter)
        criteria = [base]
        if query:
            criteria += ["TEXT", quote_imap(query)]
        return await self._page(creds, "fetch_emails", mailbox, criteria, max_results, page_token)

    @traced("yahoo.search_emails")
    async def search_emails(
        self,
        creds: ProviderCredentials,
        query: str,
        max_results: int = 20,
        page_token: str | None = None,
    ) -> EmailPage:
        return await self._page(
            creds, "search_emails", INBOX, ["TEXT", quote_imap(query)], max_results, page_token
        )

    @traced("yahoo.read_email")
    async def read_email(self, creds: ProviderCredentials, email_id: str) -> EmailMessage:
        mailbox, uid = split_message_id(email_id)
        async with self.imap_session(creds) as client:
            await self._select(client, mailbox, "read_email")
            messages = await self._fetch_uids(client, mailbox, [uid], "read_email")
        if not messages:
            raise ResourceNotFoundException("email", email_id)
        return messages[0]

    def _smtp_send(self, creds: ProviderCredentials, message: OutgoingEmail) -> str:
        mime = build_mime(creds.email_address, message, include_bcc=False)
        recipients = [*message.to, *message.cc, *message.bcc]
        with self._smtp_factory(
            self._smtp_host,
            self._smtp_port,
            timeout=self._timeout,
            context=ssl.create_default_context(),
        ) as server:
            if creds.access_token:
                auth = xoauth2_string(creds.email_address, creds.access_token)
                server.auth("XOAUTH2", lambda challenge=None: auth)
            else:
                server.login(creds.email_address, creds.password or "")
            server.send_message(mime, from_addr=creds.email_address, to_addrs=recipients)
        return str(mime["Message-ID"])

    async def _send(self, creds: ProviderCredentials, message: OutgoingEmail, operation: str) -> SendResult:
        if not creds.access_token and not creds.password:
            raise ProviderAuthExpiredError(PROVIDER_NAME)
        try:
            message_id = await asyncio.to_thread(self._smtp_send, creds, message)
        except smtplib.SMTPAuthenticationError as e:
            raise ProviderAuthRejectedError(PROVIDER_NAME, operation, e) from e
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Yahoo SMTP %s failed: %s", operation, e)
            raise ProviderOperationError(PROVIDER_NAME, operation, e) from e
        return SendResult(id=message_id, thread_id=message.thread_id)

    @traced("yahoo.send_email")
    async def send_email(self, creds: ProviderCredentials, message: OutgoingEmail) -> SendResult:
        return await self._send(creds, message, "send_email")

    @traced("yahoo.reply_to_email")
    async def reply_to_email(
        self, creds: ProviderCredentials, email_id: str, message: OutgoingEmail
    ) -> SendResult:
        original = await self.read_email(creds, email_id)
        message_id = original.provider_metadata.get("message_id_header")
        references = original.provider_metadata.get("references")
        reply = OutgoingEmail(
            to=message.to or [original.sender],
            subject=message.subject or reply_subject(original.subject),
            body=message.body,
            cc=message.cc,
            bcc=message.bcc,
            attachments=message.attachments,
            html=message.html,
            in_reply_to=message_id,
            references=f"{references} {message_id}".strip() if references else message_id,
            thread_id=original.thread_id or message_id,
        )
        return await self._send(creds, reply, "reply_to_email")

    @traced("yahoo.create_draft")
    async def create_draft(self, creds: ProviderCredentials, message: OutgoingEmail) -> SendResult:
        mime = build_mime(creds.email_address, message)
        async with self.imap_session(creds) as client:
            self._check(
                await client.append(mime.as_bytes(), mailbox="Draft", flags="(\\Draft)"),
                "create_draft",
            )
        return SendResult(id=str(mime["Message-ID"]), status="draft")

    async def _move(self, client: Any, mailbox: str, uid: str, target: str, operation: str) -> None:
        await self._select(client, mailbox, operation)
        if client.has_capability("MOVE"):
            response = await client.uid("move", uid, target)
            if response.result != "OK":
                raise ResourceNotFoundException("folder", target)
            return
        response = await client.uid("copy", uid, target)
        if response.result != "OK":
            raise ResourceNotFoundException("folder", target)
        self._check(await client.uid("store", uid, "+FLAGS", "(\\Deleted)"), operation)
        self._check(await client.expunge(), operation)

    @traced("yahoo.trash_email")
    async def trash_email(self, creds: ProviderCredentials, email_id: str) -> None:
        mailbox, uid = split_message_id(email_id)
        async with self.imap_session(creds) as client:
            await self._move(client, mailbox, uid, "Trash", "trash_email")

    @traced("yahoo.mark_as_read")
    async def mark_as_read(self, creds: ProviderCredentials, email_id: str) -> None:
        mailbox, uid = split_message_id(email_id)
        async with self.imap_session(creds) as client:
            await self._select(client, mailbox, "mark_as_read")
            self._check(await client.uid("store", uid, "+FLAGS", "(\\Seen)"), "mark_as_read")

    @traced("yahoo.move_to_folder")
    async def move_to_folder(self, creds: ProviderCredentials, email_id: str, folder: str) -> None:
        mailbox, uid = split_message_id(email_id)
        target = _MAILBOX_ALIASES.get(folder.strip().casefold(), folder.strip())
        async with self.imap_session(creds) as client:
            await self._move(client, mailbox, uid, target, "move_to_folder")

    @traced("yahoo.create_folder")
    async def create_folder(self, creds: ProviderCredentials, name: str) -> FolderInfo:
        async with self.imap_session(creds) as client:
            self._check(await client.create(quote_imap(name)), "create_folder")
        return FolderInfo(id=name, name=name)

    @traced("yahoo.count_emails")
    async def count_emails(
        self,
        creds: ProviderCredentials,
        email_filter: EmailFilter = EmailFilter.ALL,
        query: str | None = None,
    ) -> int:
        mailbox, base = self._filter_params(email_filter)
        criteria = [base]
        if query:
            criteria += ["TEXT", quote_imap(query)]
        async with self.imap_session(creds) as client:
            await self._select(client, mailbox, "count_emails")
            uids = await self._search(client, "count_emails", *criteria)
        return len(uids)
