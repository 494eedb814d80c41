"""Input sanitization utilities: email normalization, HTML-to-text, header safety."""

import html
import re

import nh3

_WHITESPACE_RUN = re.compile(r"[ \t\f\v]+")
_BLANK_LINES = re.compile(r"\n{3,}")
_BLOCK_TAGS = re.compile(r"<\s*(br|/p|/div|/li|/tr|/h[1-6])\s*/?>", re.IGNORECASE)
_HEADER_BREAKS = re.compile(r"[\r\n]+")


def normalize_email(value: str) -> str:
    """Return the canonical (trimmed, lowercased) form used for every email lookup."""
    return value.strip().lower()


def html_to_text(value: str) -> str:
    """Strip all markup with nh3 and return readable plain text.

    Block-level closing tags and <br> become line breaks so paragraphs survive.

    Args:
        value: HTML body from a provider.

    Returns:
        Plain text with entities unescaped and whitespace collapsed.
    """
    if not value:
        return value
    with_breaks = _BLOCK_TAGS.sub("\n", value)
    cleaned = nh3.clean(with_breaks, tags=set(), attributes={})
    text = html.unescape(cleaned)
    lines = [_WHITESPACE_RUN.sub(" ", line).strip() for line in text.splitlines()]
    return _BLANK_LINES.sub("\n\n", "\n".join(lines)).strip()


def sanitize_header_value(value: str) -> str:
    """Remove CR/LF from a value placed in a mail header (header-injection guard)."""
    return _HEADER_BREAKS.sub(" ", value).strip()


def split_addresses(value: str | None) -> list[str]:
    """Split a comma/semicolon separated address list into trimmed, non-empty entries."""
    if not value:
        return []
    return [
        sanitize_header_value(part)
        for part in re.split(r"[,;]", value)
        if part.strip()
    ]
