"""Shared utility functions."""

import re
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string with a Z suffix."""
    return utcnow().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def word_pattern(word: str, flags: int = re.IGNORECASE) -> re.Pattern:
    """Compile a whole-word pattern for a literal name."""
    return re.compile(rf"\b{re.escape(word)}\b", flags)


def sentence_case(text: str) -> str:
    """First letter upper, rest lower: 'AGGREGATION Function' -> 'Aggregation function'."""
    text = text.strip()
    if not text:
        return text
    return text[0].upper() + text[1:].lower()
