"""RFC 822 message building and parsing shared by the Gmail and IMAP adapters."""

import base64
from datetime import datetime
from email import policy
from email.message import EmailMessage as MimeMessage
from email.parser import BytesParser
from email.utils import formatdate, getaddresses, make_msgid, parsedate_to_datetime
from typing import Any

from app.infrastructure.external.email.protocols import AttachmentRef, OutgoingEmail
from app.shared.utils.sanitization import html_to_text, sanitize_header_value


def reply_subject(subject: str) -> str:
    """Prefix Re: unless already present."""
    subject = subject or ""
    return subject if subject.lower().startswith("re:") else f"Re: {subject}".strip()


def build_mime(sender: str, message: OutgoingEmail, *, include_bcc: bool = True) -> MimeMessage:
    """Build a MIME message from an OutgoingEmail (headers sanitized)."""
    mime = MimeMessage()
    mime["From"] = sanitize_header_value(sender)
    mime["To"] = ", ".join(sanitize_header_value(a) for a in message.to)
    if message.cc:
        mime["Cc"] = ", ".join(sanitize_header_value(a) for a in message.cc)
    if message.bcc and include_bcc:
        mime["Bcc"] = ", ".join(sanitize_header_value(a) for a in message.bcc)
    mime["Subject"] = sanitize_header_value(message.subject)
    mime["Date"] = formatdate(localtime=False)
    mime["Message-ID"] = make_msgid()
    if message.in_reply_to:
        mime["In-Reply-To"] = sanitize_header_value(message.in_reply_to)
        mime["References"] = sanitize_header_value(message.references or message.in_reply_to)
    if message.html:
        mime.set_content(html_to_text(message.body))
        mime.add_alternative(message.body, subtype="html")
    else:
        mime.set_content(message.body)
    for attachment in message.attachments:
        maintype, _, subtype = attachment.mime_type.partition("/")
        mime.add_attachment(
            attachment.content,
            maintype=maintype or "application",
            subtype=subtype or "octet-stream",
            filename=attachment.filename,
        )
    return mime


def to_base64url(mime: MimeMessage) -> str:
    """Encode a MIME message as the base64url 'raw' field Gmail expects."""
    return base64.urlsafe_b64encode(mime.as_bytes()).decode("ascii")


def parse_rfc822(raw: bytes) -> MimeMessage:
    return BytesParser(policy=policy.default).parsebytes(raw)  # type: ignore[return-value]


def addresses(value: str | None) -> list[str]:
    """Return formatted addresses from a header value."""
    if not value:
        return []
    return [
        f"{name} <{addr}>" if name else addr
        for name, addr in getaddresses([value])
        if addr
    ]


def header_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


def extract_body(mime: MimeMessage) -> str:
    """Prefer text/plain; fall back to text/html converted to text."""
    part = mime.get_body(preferencelist=("plain", "html"))
    if part is None:
        return ""
    content: Any = part.get_content()
    if not isinstance(content, str):
        return ""
    if part.get_content_subtype() == "html":
        return html_to_text(content)
    return content.strip()


def extract_attachments(mime: MimeMessage) -> list[AttachmentRef]:
    refs: list[AttachmentRef] = []
    for index, part in enumerate(mime.iter_attachments()):
        payload = part.get_payload(decode=True) or b""
        refs.append(
            AttachmentRef(
                id=str(index),
                filename=part.get_filename() or f"attachment-{index}",
                mime_type=part.get_content_type(),
                size=len(payload),
            )
        )
    return refs
