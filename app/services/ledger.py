"""Per-offer verification ledger files under ``<DATA_DIR>/data/pages``."""

import json
import logging
import os
import re

from app import config
from app.services.slugs import file_slug

logger = logging.getLogger(__name__)

SAFE_FILENAME = re.compile(r"[a-z0-9._\-:%]+\.json", re.IGNORECASE)
_PERCENT_HEX = re.compile(r"%[0-9A-F]{2}")


def pages_dir() -> str:
    return os.path.join(config.data_dir(), "data", "pages")


def is_safe_filename(filename: str) -> bool:
    return bool(SAFE_FILENAME.fullmatch(filename or "")) and ".." not in filename


def candidate_filenames(filename: str) -> list[str]:
    """Lowercase-hex variant first, then the name as given, then the re-encoded slug."""
    normalized = _PERCENT_HEX.sub(lambda m: m.group(0).lower(), filename)
    # The router hands us decoded names ("a:b.json"); files on disk are encoded.
    stem = filename[:-5] if filename.lower().endswith(".json") else filename
    encoded = f"{file_slug(stem)}.json"
    return list(dict.fromkeys([normalized, filename, encoded]))


def read_page_file(filename: str) -> str | None:
    """Raw JSON text for a ledger file, or None when no candidate exists."""
    base = pages_dir()
    for name in candidate_filenames(filename):
        path = os.path.join(base, name)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                text = fh.read()
        except OSError:
            continue
        logger.debug("Serving ledger file %s size=%d", name, len(text))
        return text
    return None


def load_ledger(slug: str) -> dict | None:
    """Parsed ``{whopUrl, lastUpdated, ledger: [...]}`` for a whop slug, or None."""
    text = read_page_file(f"{file_slug(slug)}.json")
    if text is None:
        return None
    try:
        data = json.loads(text)
    except ValueError:
        logger.error("Invalid ledger JSON for %s", slug)
        return None
    if not isinstance(data, dict):
        return None
    data.setdefault("ledger", [])
    return data
