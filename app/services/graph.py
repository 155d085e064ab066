"""
Neighbor graph: a precomputed ``slug -> {recommendations, alternatives, explore}``
mapping published as ``data/graph/neighbors.json``.

The file is loaded once per process and kept in memory until
``clear_neighbors_cache`` is called (see the ``graph`` revalidation tag).
"""

import json
import logging
import os
import re
import threading
from urllib.parse import quote

import httpx

from app import config
from app.services.slugs import normalize_slug, safe_decode

logger = logging.getLogger(__name__)

NEIGHBOR_KINDS = ("recommendations", "alternatives")
GRAPH_FETCH_TIMEOUT = 10.0

_cache: dict = {}
_lock = threading.Lock()


class GraphLoadError(Exception):
    pass


def graph_url() -> str:
    url = config.graph_source()
    version = config.graph_version()
    if version:
        sep = "&" if "?" in url else "?"
        url = f"{url}{sep}v={quote(version, safe='')}"
    return url


def _read_local(url: str) -> dict:
    # Strip any ?v= cache buster; it only matters for HTTP caches.
    relative = url.split("?", 1)[0].lstrip("/")
    path = os.path.join(config.data_dir(), *relative.split("/"))
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def _fetch_remote(url: str) -> dict:
    response = httpx.get(url, timeout=GRAPH_FETCH_TIMEOUT, follow_redirects=True)
    if response.status_code >= 400:
        raise GraphLoadError(f"Graph fetch failed {response.status_code}")
    return response.json()


def load_neighbors(force: bool = False) -> dict:
    """Return the neighbor map, loading it on first use."""
    with _lock:
        if not force and "neighbors" in _cache:
            return _cache["neighbors"]

        url = graph_url()
        try:
            data = _fetch_remote(url) if url.startswith("http") else _read_local(url)
        except GraphLoadError:
            raise
        except (OSError, ValueError, httpx.HTTPError) as e:
            raise GraphLoadError(f"Could not load neighbor graph from {url}: {e}") from e

        if not isinstance(data, dict):
            raise GraphLoadError(f"Neighbor graph at {url} is not a JSON object")

        if config.debug_enabled():
            logger.debug(
                "[graph] loaded url=%s keys=%d version=%s sample=%s",
                url, len(data), config.graph_version(), list(data)[:3],
            )

        _cache["neighbors"] = data
        return data


def clear_neighbors_cache():
    with _lock:
        _cache.pop("neighbors", None)


def _entry_for(neighbors: dict, slug: str):
    s = normalize_slug(slug)
    for key in (s, safe_decode(s), re.sub(r"\s+", "-", s)):
        entry = neighbors.get(key)
        if entry:
            return entry
    return None


def get_neighbor_slugs_for(neighbors: dict, slug: str, kind: str) -> list[str]:
    """Distinct neighbor slugs of ``kind`` for ``slug``, in graph order. Unknown slug -> []."""
    if kind not in NEIGHBOR_KINDS:
        raise ValueError(f"Unknown neighbor kind: {kind}")

    entry = _entry_for(neighbors or {}, slug)
    if not isinstance(entry, dict):
        return []

    values = entry.get(kind) or []
    if not isinstance(values, list):
        return []
    return list(dict.fromkeys(v for v in values if v))


def get_explore_for(neighbors: dict, slug: str) -> str | None:
    entry = _entry_for(neighbors or {}, slug)
    if not isinstance(entry, dict):
        return None
    return entry.get("explore") or None
