"""Normalization primitives shared by every matcher.

All helpers are pure and total: malformed input degrades to an empty key or
``None`` instead of raising, so detectors can treat "unparseable" as "no signal".
"""

from __future__ import annotations

import re
from datetime import date
from typing import Final

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_ISO_DATE = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})")
_US_DATE = re.compile(r"^\s*(\d{1,2})/(\d{1,2})/(\d{4})\s*$")
_NAME_SEPARATORS = re.compile(r"[\s\-_/,]+")

STOP_WORDS: Final[frozenset[str]] = frozenset(
    {"with", "kit", "mounted", "system", "style", "type", "series", "and", "for", "the", "a", "an"}
)
MIN_TOKEN_LENGTH: Final[int] = 2


def normalize_serial(value: str | None) -> str:
    """Lowercase and drop everything that is not a letter or digit."""

    if value is None:
        return ""
    return _NON_ALNUM.sub("", value.lower())


def normalize_key(value: str | None) -> str:
    """Comparable key for make/model strings."""

    return normalize_serial(value)


def parse_date(value: str | None) -> date | None:
    """Parse ``YYYY-MM-DD...`` or ``M/D/YYYY``; anything else yields ``None``."""

    if not value:
        return None
    iso = _ISO_DATE.match(value)
    if iso is not None:
        year, month, day = (int(part) for part in iso.groups())
        return _safe_date(year, month, day)
    us = _US_DATE.match(value)
    if us is not None:
        month, day, year = (int(part) for part in us.groups())
        return _safe_date(year, month, day)
    return None


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def days_difference(first: date, second: date) -> int:
    return abs((first - second).days)


def tokenize_name(value: str | None) -> tuple[str, ...]:
    """Split a free-text attachment name into distinctive lowercase tokens."""

    if not value:
        return ()
    tokens = _NAME_SEPARATORS.split(value.lower())
    return tuple(
        token for token in tokens if len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS
    )
