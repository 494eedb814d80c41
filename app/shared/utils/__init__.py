"""Shared utilities: datetime, generators, sanitization."""

from app.shared.utils.datetime import (
    ensure_utc,
    from_timestamp_ms_utc,
    utc_now,
)
from app.shared.utils.generators import generate_cuid
from app.shared.utils.sanitization import (
    html_to_text,
    normalize_email,
    sanitize_header_value,
    split_addresses,
)

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "from_timestamp_ms_utc",
    "html_to_text",
    "normalize_email",
    "sanitize_header_value",
    "split_addresses",
]
