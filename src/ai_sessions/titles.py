"""Decide whether a transcript title is worth keeping."""

from __future__ import annotations

import re
from datetime import date, datetime

_UUID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)

# A date immediately followed by a time of day, in the shapes session tools
# use for file names: 2025-10-11T10-35-38, 2025-10-11 10:35, 20251011_103538
_TIMESTAMP_PATTERNS = (
    re.compile(r"\d{4}-\d{2}-\d{2}[T _-]\d{2}[-:.]\d{2}(?:[-:.]\d{2})?"),
    re.compile(r"(?<!\d)\d{8}[T_-]?\d{6}(?!\d)"),
)


def is_machine_identifier(title: str | None) -> bool:
    """True when ``title`` looks like a session id or generated file name.

    Blank titles, titles embedding a UUID anywhere and titles carrying a
    date-with-time stamp count as machine identifiers. Human titles, version
    strings (``v1.2.3``) and bare dates (``2025-10-18``) do not.
    """
    if title is None or not title.strip():
        return True
    if _UUID_PATTERN.search(title):
        return True
    return any(pattern.search(title) for pattern in _TIMESTAMP_PATTERNS)


def default_title(provider: str, created_at: date | datetime) -> str:
    """Build the fallback title, e.g. ``"Claude Code - October 16, 2025"``."""
    from .transcripts.registry import display_name

    return f"{display_name(provider)} - {created_at:%B} {created_at.day}, {created_at.year}"


def resolve_title(title: str | None, provider: str, created_at: date | datetime) -> str:
    """Keep a human title, otherwise fall back to :func:`default_title`."""
    if is_machine_identifier(title):
        return default_title(provider, created_at)
    return title.strip()
