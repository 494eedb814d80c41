"""Important-email keywords: defaults and case-insensitive merging."""

from collections.abc import Iterable

DEFAULT_IMPORTANT_KEYWORDS: tuple[str, ...] = (
    "urgent",
    "important",
    "action required",
    "asap",
    "deadline",
    "invoice",
    "payment",
    "meeting",
    "interview",
    "contract",
    "approval",
    "security alert",
    "verify",
    "password",
    "overdue",
)


def merge_keywords(*sources: Iterable[str] | None) -> list[str]:
    """Merge keyword lists in order, dropping blanks and case-insensitive duplicates.

    The first spelling of each keyword wins; surrounding whitespace is stripped.

    Args:
        *sources: Keyword iterables (None entries are skipped).

    Returns:
        Ordered list of unique keywords.
    """
    seen: set[str] = set()
    merged: list[str] = []
    for source in sources:
        if not source:
            continue
        for raw in source:
            if not isinstance(raw, str):
                continue
            keyword = raw.strip()
            key = keyword.casefold()
            if not keyword or key in seen:
                continue
            seen.add(key)
            merged.append(keyword)
    return merged


def matches_any(text: str, keywords: Iterable[str]) -> bool:
    """Return True when text contains any keyword (case-insensitive substring)."""
    haystack = text.casefold()
    return any(k.casefold() in haystack for k in keywords if k)
