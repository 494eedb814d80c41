"""Tests for YahooImapAdapter with a scripted IMAP client."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import aioimaplib
import pytest

from app.domain.enums import AuthProvider, EmailFilter
from app.domain.exceptions import ResourceNotFoundException, ValidationException
from app.infrastructure.exceptions import ProviderAuthRejectedError, ProviderOperationError
from app.infrastructure.external.email.adapters.yahoo_imap_adapter import (
    YahooImapAdapter,
    make_message_id,
    parse_fetch_lines,
    split_message_id,
)
from app.infrastructure.external.email.protocols import OutgoingEmail, ProviderCredentials

OAUTH_CREDS = ProviderCredentials(
    provider=AuthProvider.YAHOO, email_address="hopper@yahoo.com", access_token="y-token"
)
PASSWORD_CREDS = ProviderCredentials(
    provider=AuthProvider.YAHOO,
    email_address="hopper@yahoo.com",
    access_token=None,
    password="app-pass",
)


def raw_message(uid: int) -> bytes:
    return (
        f"From: sender{uid}@example.com\r\n"
        f"To: hopper@yahoo.com\r\n"
        f"Subject: Message {uid}\r\n"
        f"Message-ID: <{uid}@example.com>\r\n"
        f"Date: Fri, 01 Mar 2024 10:00:00 +0000\r\n"
        f"\r\n"
        f"Body of message {uid}\r\n"
    ).encode()


def ok(*lines) -> SimpleNamespace:
    return SimpleNamespace(result="OK", lines=list(lines))


def fetch_response(*uids: int) -> SimpleNamespace:
    lines: list[bytes] = []
    for uid in uids:
        raw = raw_message(uid)
        lines.append(f"{uid} FETCH (UID {uid} FLAGS (\\Seen) RFC822 {{{len(raw)}}}".encode())
        lines.append(raw)
        lines.append(b")")
    lines.append(b"Success")
    return ok(*lines)


class FakeImapClient:
    """Records commands; answers SEARCH and FETCH from a fixed mailbox."""

    def __init__(self, uids: list[int], *, login_ok: bool = True, capabilities=("MOVE",)) -> None:
        self.uids = uids
        self.login_ok = login_ok
        self.capabilities = set(capabilities)
        self.commands: list[tuple] = []
        self.logged_out = False
        self.state = "STARTED"
        self.protocol = SimpleNamespace(transport=MagicMock())

    def get_state(self) -> str:
        return self.state

    async def wait_hello_from_server(self) -> None:
        self.state = "NONAUTH"

    def _login_response(self):
        if not self.login_ok:
            return SimpleNamespace(result="NO", lines=[])
        self.state = "AUTH"
        return ok()

    async def xoauth2(self, user: str, token: str):
        self.commands.append(("xoauth2", user, token))
        return self._login_response()

    async def login(self, user: str, password: str):
        self.commands.append(("login", user, password))
        return self._login_response()

    async def select(self, mailbox: str):
        self.commands.append(("select", mailbox))
        if mailbox == "Missing":
            return SimpleNamespace(result="NO", lines=[])
        self.state = "SELECTED"
        return ok()

    async def uid_search(self, *criteria: str):
        self.commands.append(("search", *criteria))
        return ok(" ".join(str(u) for u in self.uids).encode(), b"SEARCH completed")

    async def uid(self, command: str, *args: str):
        self.commands.append(("uid", command, *args))
        if command == "fetch":
            return fetch_response(*(int(u) for u in args[0].split(",")))
        return ok()

    async def append(self, message: bytes, mailbox: str, flags: str):
        self.commands.append(("append", mailbox, flags))
        return ok()

    async def create(self, name: str):
        self.commands.append(("create", name))
        return ok()

    async def expunge(self):
        self.commands.append(("expunge",))
        return ok()

    def has_capability(self, name: str) -> bool:
        return name in self.capabilities

    async def logout(self) -> None:
        if self.state not in ("NONAUTH", "AUTH", "SELECTED"):
            raise aioimaplib.Abort(f"command LOGOUT illegal in state {self.state}")
        self.state = "LOGOUT"
        self.logged_out = True


def make_adapter(client: FakeImapClient, smtp=None) -> YahooImapAdapter:
    return YahooImapAdapter(client_factory=lambda host, port, timeout: client, smtp_factory=smtp)


def test_parse_fetch_lines_extracts_uid_flags_and_body() -> None:
    parsed = parse_fetch_lines(fetch_response(12, 7).lines)
    assert [uid for uid, _, _ in parsed] == ["12", "7"]
    assert parsed[0][1] == {"\\Seen"}
    assert parsed[0][2].startswith(b"From: sender12@example.com")


def test_message_ids_carry_the_mailbox() -> None:
    assert make_message_id("Archive", "42") == "Archive:42"
    assert split_message_id("Archive:42") == ("Archive", "42")
    assert split_message_id("42") == ("INBOX", "42")
    with pytest.raises(ValidationException):
        split_message_id("INBOX:abc")


async def test_fetch_pages_newest_first_with_offset_cursor() -> None:
    client = FakeImapClient([1, 2, 3, 4, 5])
    adapter = make_adapter(client)

    first = await adapter.fetch_emails(OAUTH_CREDS, EmailFilter.UNREAD, max_results=2)
    second = await adapter.fetch_emails(OAUTH_CREDS, EmailFilter.UNREAD, max_results=2, page_token=first.next_page_token)
    last = await adapter.fetch_emails(OAUTH_CREDS, EmailFilter.UNREAD, max_results=2, page_token="4")

    assert [m.id for m in first.messages] == ["INBOX:5", "INBOX:4"]
    assert first.next_page_token == "2"
    assert [m.id for m in second.messages] == ["INBOX:3", "INBOX:2"]
    assert [m.id for m in last.messages] == ["INBOX:1"]
    assert last.next_page_token is None
    assert ("search", "UNSEEN") in client.commands
    assert first.messages[0].subject == "Message 5"
    assert first.messages[0].is_read is True


async def test_query_is_quoted_into_text_search() -> None:
    client = FakeImapClient([])
    await make_adapter(client).fetch_emails(OAUTH_CREDS, query='say "hi"')
    assert ("search", "ALL", "TEXT", '"say \\"hi\\""') in client.commands


async def test_app_password_login_when_no_token() -> None:
    client = FakeImapClient([3])
    assert await make_adapter(client).count_emails(PASSWORD_CREDS) == 1
    assert ("login", "hopper@yahoo.com", "app-pass") in client.commands


async def test_rejected_login_still_logs_out() -> None:
    client = FakeImapClient([], login_ok=False)
    with pytest.raises(ProviderAuthRejectedError):
        await make_adapter(client).count_emails(OAUTH_CREDS)
    assert client.logged_out is True


async def test_operation_failure_still_logs_out() -> None:
    client = FakeImapClient([])
    with pytest.raises(ResourceNotFoundException):
        await make_adapter(client).read_email(OAUTH_CREDS, "Missing:9")
    assert client.logged_out is True


async def test_failed_connection_closes_transport_without_logout() -> None:
    client = FakeImapClient([])

    async def refused():
        raise ConnectionRefusedError("Connect call failed")

    client.wait_hello_from_server = refused
    with pytest.raises(ProviderOperationError):
        await make_adapter(client).read_email(OAUTH_CREDS, "INBOX:1")
    assert client.logged_out is False
    client.protocol.transport.close.assert_called_once()


async def test_imap_protocol_error_becomes_operation_error() -> None:
    client = FakeImapClient([])

    async def aborted(*criteria):
        raise aioimaplib.Abort("connection lost")

    client.uid_search = aborted
    with pytest.raises(ProviderOperationError):
        await make_adapter(client).count_emails(OAUTH_CREDS)
    assert client.logged_out is True


async def test_logout_error_falls_back_to_closing_transport() -> None:
    client = FakeImapClient([3])

    async def timed_out():
        raise aioimaplib.CommandTimeout("LOGOUT")

    client.logout = timed_out
    assert await make_adapter(client).count_emails(OAUTH_CREDS) == 1
    client.protocol.transport.close.assert_called_once()


async def test_trash_uses_move_when_supported() -> None:
    client = FakeImapClient([9])
    await make_adapter(client).trash_email(OAUTH_CREDS, "INBOX:9")
    assert ("uid", "move", "9", "Trash") in client.commands


async def test_move_falls_back_to_copy_and_expunge() -> None:
    client = FakeImapClient([9], capabilities=())
    await make_adapter(client).move_to_folder(OAUTH_CREDS, "INBOX:9", "archive")
    assert ("uid", "copy", "9", "Archive") in client.commands
    assert ("uid", "store", "9", "+FLAGS", "(\\Deleted)") in client.commands
    assert ("expunge",) in client.commands


async def test_draft_is_appended_to_draft_mailbox() -> None:
    client = FakeImapClient([])
    result = await make_adapter(client).create_draft(
        OAUTH_CREDS, OutgoingEmail(to=["bob@example.com"], subject="Draft", body="WIP")
    )
    assert result.status == "draft"
    assert ("append", "Draft", "(\\Draft)") in client.commands


async def test_send_uses_smtp_with_xoauth2() -> None:
    server = MagicMock()
    smtp = MagicMock()
    smtp.return_value.__enter__.return_value = server
    adapter = make_adapter(FakeImapClient([]), smtp=smtp)

    result = await adapter.send_email(
        OAUTH_CREDS,
        OutgoingEmail(to=["bob@example.com"], bcc=["secret@example.com"], subject="Hi", body="Hello"),
    )

    assert result.id
    assert server.auth.call_args.args[0] == "XOAUTH2"
    sent = server.send_message.call_args
    assert sent.kwargs["to_addrs"] == ["bob@example.com", "secret@example.com"]
    assert "Bcc" not in sent.args[0]


async def test_same_offset_cursor_returns_same_page() -> None:
    client = FakeImapClient([1, 2, 3, 4, 5])
    adapter = make_adapter(client)

    first = await adapter.fetch_emails(OAUTH_CREDS, max_results=2)
    again = await adapter.fetch_emails(OAUTH_CREDS, max_results=2, page_token=first.next_page_token)
    twice = await adapter.fetch_emails(OAUTH_CREDS, max_results=2, page_token=first.next_page_token)

    assert [m.id for m in again.messages] == ["INBOX:3", "INBOX:2"]
    assert [m.id for m in twice.messages] == [m.id for m in again.messages]
    assert twice.next_page_token == again.next_page_token == "4"
