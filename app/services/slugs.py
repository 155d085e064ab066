"""
Slug helpers shared by the whop pages, the neighbor graph and the
verification ledger files.

All lookups go through ``normalize_slug`` so that percent-encoded,
mixed-case and Unicode-dash variants of the same slug hit the same key.
"""

import re
from urllib.parse import quote, unquote

# en/em dashes, minus sign and their small/fullwidth forms
_DASHES = re.compile("[\u2010-\u2015\u2212\uFE58\uFE63\uFF0D]")
_DISALLOWED = re.compile(r"[^a-z0-9:-]")
_DASH_RUNS = re.compile(r"-+")
_PERCENT_HEX = re.compile(r"%[0-9A-F]{2}")
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE = "-_.!~*'()"


def safe_decode(value: str) -> str:
    """Percent-decode ``value``; return it unchanged if any escape is malformed or not valid UTF-8."""
    if _MALFORMED_ESCAPE.search(value):
        return value
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def normalize_slug(value: str | None) -> str:
    """Canonical lowercase ASCII form of a slug. Idempotent."""
    if not value:
        return ""

    decoded = safe_decode(value.strip())

    slug = decoded.lower()
    slug = _DASHES.sub("-", slug)
    slug = _DISALLOWED.sub("-", slug)  # colons survive for slugs like 1:1
    slug = _DASH_RUNS.sub("-", slug)
    return slug.strip("-")


def encode_slug_for_api(canonical_slug: str) -> str:
    return quote(canonical_slug, safe=_URI_COMPONENT_SAFE)


def canonical_slug_for_db(raw: str) -> str:
    """Accept %3A, %3a or a literal colon; compare as lowercase %3a."""
    return safe_decode(raw).lower().replace(":", "%3a")


def canonical_slug_for_path(raw: str) -> str:
    return safe_decode(raw).lower().replace(":", "%3a")


def slug_needs_normalization(slug: str) -> bool:
    return slug != canonical_slug_for_path(slug)


def file_slug(value: str) -> str:
    """Encoded slug used for file names under data/pages, with lowercase %xx escapes."""
    encoded = quote(safe_decode(value).lower(), safe=_URI_COMPONENT_SAFE)
    return _PERCENT_HEX.sub(lambda m: m.group(0).lower(), encoded)
