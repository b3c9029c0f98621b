"""
Identifier normalization for the Plex availability index.

Plex tags each item with scheme-qualified GUIDs ("tmdb://27205", "imdb://tt1375666",
"tvdb://81189"). These helpers turn them into "namespace:id" lookup keys and build the
title|year fallback key. All functions are pure and never raise.
"""

import re
from typing import Any, Optional, Tuple
from urllib.parse import urlsplit

_WHITESPACE_RE = re.compile(r'\s+')
_LEADING_YEAR_RE = re.compile(r'^\s*(\d{4})(?:-\d{2}-\d{2})?\s*$')


def parse_external_id(raw: Any) -> Optional[Tuple[str, str]]:
    """Split "scheme://host/path" into (namespace, id).

    namespace is the URI scheme; id is host + path with leading/trailing slashes stripped.
    Returns None for anything without a scheme separator or with an empty part.
    """
    if not isinstance(raw, str) or '://' not in raw:
        return None
    try:
        parts = urlsplit(raw.strip())
    except ValueError:
        return None
    namespace = parts.scheme
    ident = f"{parts.netloc}{parts.path}".strip('/')
    if not namespace or not ident:
        return None
    return namespace, ident


def external_key(namespace: str, ident: Any) -> str:
    """Serialize an external id pair as the "namespace:id" map key."""
    return f"{namespace}:{ident}"


def normalize_title_year(title: Optional[str], year: int) -> str:
    """Canonical title|year key.

    Untitled items collapse to just the year; collisions in that bucket are accepted.
    """
    if not title or not title.strip():
        return str(year)
    # Letters and decimal digits only; '²' or '½' are dropped like punctuation
    kept = ''.join(ch for ch in title if ch.isalpha() or ch.isdecimal() or ch.isspace())
    normalized = _WHITESPACE_RE.sub(' ', kept.strip().lower())
    return f"{normalized}|{year}"


def parse_year(value: Any) -> Optional[int]:
    """Accept 2010, "2010" or "2010-07-15"; anything else is treated as absent."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        match = _LEADING_YEAR_RE.match(value)
        if match:
            return int(match.group(1))
    return None
