"""
Recommended / alternative offers for a whop page.

Single implementation of the lookup chain used by every widget:

1. neighbor graph slugs (when graph links are enabled), hydrated from the DB
2. server-side similarity scoring over live whops
3. same-category whops ordered by rating

Nothing here raises: on any failure the widget gets an empty result and
simply does not render.
"""

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app import config
from app.models.promo_code import PromoCode, COMMUNITY_PREFIX, is_community_promo_id
from app.models.review import Review
from app.models.whop import Whop, RETIREMENT_GONE
from app.services.graph import GraphLoadError, get_explore_for, get_neighbor_slugs_for, load_neighbors
from app.services.similarity import score_alternatives
from app.services.slugs import canonical_slug_for_db, normalize_slug

logger = logging.getLogger(__name__)

RECOMMENDATION_LIMIT = 4
ALTERNATIVE_LIMIT = 5
CANDIDATE_POOL = 100

SOURCE_GRAPH = "graph"
SOURCE_SIMILARITY = "similarity"
SOURCE_CATEGORY = "category"

EMPTY_RESULT = {"items": [], "explore": None, "source": None}


def not_gone():
    return or_(Whop.retirement.is_(None), Whop.retirement != RETIREMENT_GONE)


def slug_variants(slug: str) -> set[str]:
    """Forms a slug may be stored under: lowercase, normalized, %3a-encoded colon."""
    lowered = (slug or "").strip().lower()
    normalized = normalize_slug(slug)
    return {s for s in (lowered, normalized, canonical_slug_for_db(normalized)) if s}


def find_whop(db: Session, slug: str, include_gone: bool = True) -> Whop | None:
    query = db.query(Whop).filter(Whop.slug.in_(slug_variants(slug)))
    if not include_gone:
        query = query.filter(not_gone())
    return query.first()


def latest_public_promo(db: Session, whop_id: str) -> PromoCode | None:
    """Newest promo code that did not come from a community submission."""
    return (
        db.query(PromoCode)
        .filter(PromoCode.whop_id == whop_id, ~PromoCode.id.startswith(COMMUNITY_PREFIX, autoescape=True))
        .order_by(PromoCode.created_at.desc())
        .first()
    )


def serialize_promo(promo: PromoCode) -> dict:
    return {
        "id": promo.id,
        "title": promo.title,
        "type": promo.type,
        "value": promo.value,
        "code": promo.code,
        "community": is_community_promo_id(promo.id),
    }


def serialize_whop_item(db: Session, whop: Whop) -> dict:
    promo = latest_public_promo(db, whop.id)
    return {
        "id": whop.id,
        "name": whop.name,
        "slug": normalize_slug(whop.slug),
        "logo": whop.logo,
        "description": whop.description,
        "category": whop.category,
        "price": whop.price,
        "rating": whop.rating,
        "ratingCount": db.query(Review).filter(Review.whop_id == whop.id).count(),
        "promoCodes": [serialize_promo(promo)] if promo else [],
    }


def hydrate_whops(db: Session, slugs: list[str], limit: int) -> list[dict]:
    """Load live whops for ``slugs`` keeping the given order; GONE pages are dropped."""
    if not slugs:
        return []

    order = {}
    lookup = set()
    for index, slug in enumerate(slugs):
        order.setdefault(normalize_slug(slug), index)
        lookup |= slug_variants(slug)

    whops = db.query(Whop).filter(Whop.slug.in_(lookup), not_gone()).all()
    whops.sort(key=lambda w: order.get(normalize_slug(w.slug), len(order)))

    # Legacy rows may store the same slug both raw and percent-encoded.
    unique = []
    seen = set()
    for w in whops:
        key = normalize_slug(w.slug)
        if key in seen:
            continue
        seen.add(key)
        unique.append(w)
    return [serialize_whop_item(db, w) for w in unique[:limit]]


def _graph() -> dict:
    if not config.use_graph_links():
        return {}
    try:
        return load_neighbors()
    except GraphLoadError as e:
        logger.warning("Neighbor graph unavailable, using DB fallbacks: %s", e)
        return {}


def _similarity_fallback(db: Session, current: Whop | None, exclude: set[str], limit: int) -> list[dict]:
    if current is None:
        return []

    candidates = (
        db.query(Whop)
        .filter(Whop.id != current.id, not_gone())
        .limit(CANDIDATE_POOL)
        .all()
    )
    candidates = [c for c in candidates if normalize_slug(c.slug) not in exclude]

    items = []
    for scored in score_alternatives(current, candidates, limit=limit):
        item = serialize_whop_item(db, scored["whop"])
        item["anchorText"] = scored["anchor_text"]
        item["similarityScore"] = scored["score"]
        items.append(item)
    return items


def _category_fallback(db: Session, current: Whop | None, exclude: set[str], limit: int) -> list[dict]:
    if current is None or not current.category:
        return []

    whops = (
        db.query(Whop)
        .filter(Whop.category == current.category, Whop.id != current.id, not_gone())
        .order_by(Whop.rating.desc(), Whop.created_at.desc())
        .all()
    )
    whops = [w for w in whops if normalize_slug(w.slug) not in exclude]
    return [serialize_whop_item(db, w) for w in whops[:limit]]


def _explore_link(db: Session, neighbors: dict, slug: str, items: list[dict]) -> dict | None:
    explore_slug = get_explore_for(neighbors, slug)
    if not explore_slug:
        return None

    shown = {item["slug"] for item in items}
    if normalize_slug(explore_slug) in shown:
        return None

    whop = find_whop(db, explore_slug, include_gone=False)
    if whop is None:
        return None

    return {
        "slug": normalize_slug(whop.slug),
        "name": whop.name,
        "logo": whop.logo,
        "category": whop.category,
        "rating": whop.rating,
        "ratingCount": db.query(Review).filter(Review.whop_id == whop.id).count(),
    }


def _resolve(db, neighbors, current, slug, graph_slugs, exclude, limit) -> dict:
    items = hydrate_whops(db, graph_slugs, limit)
    source = SOURCE_GRAPH
    if not items:
        items = _similarity_fallback(db, current, exclude, limit)
        source = SOURCE_SIMILARITY
    if not items:
        items = _category_fallback(db, current, exclude, limit)
        source = SOURCE_CATEGORY
    if not items:
        return dict(EMPTY_RESULT)

    try:
        explore = _explore_link(db, neighbors, slug, items)
    except Exception:
        logger.exception("Explore link lookup failed for %s", slug)
        explore = None

    return {"items": items, "explore": explore, "source": source}


def get_recommendations(db: Session, slug: str, limit: int = RECOMMENDATION_LIMIT) -> dict:
    try:
        canonical = normalize_slug(slug)
        if not canonical:
            return dict(EMPTY_RESULT)

        neighbors = _graph()
        current = find_whop(db, canonical)
        graph_slugs = [
            s for s in get_neighbor_slugs_for(neighbors, canonical, "recommendations")
            if normalize_slug(s) != canonical
        ][:limit]

        return _resolve(db, neighbors, current, canonical, graph_slugs, {canonical}, limit)
    except Exception:
        logger.exception("Error fetching recommendations for %s", slug)
        return dict(EMPTY_RESULT)


def get_alternatives(db: Session, slug: str, limit: int = ALTERNATIVE_LIMIT) -> dict:
    """Alternatives never repeat an offer shown in the recommendations for the same page."""
    try:
        canonical = normalize_slug(slug)
        if not canonical:
            return dict(EMPTY_RESULT)

        neighbors = _graph()
        current = find_whop(db, canonical)

        recommended = {normalize_slug(s) for s in get_neighbor_slugs_for(neighbors, canonical, "recommendations")}
        if not recommended:
            shown = get_recommendations(db, canonical)["items"]
            recommended = {item["slug"] for item in shown}

        exclude = recommended | {canonical}
        graph_slugs = [
            s for s in get_neighbor_slugs_for(neighbors, canonical, "alternatives")
            if normalize_slug(s) not in exclude
        ][:limit]

        return _resolve(db, neighbors, current, canonical, graph_slugs, exclude, limit)
    except Exception:
        logger.exception("Error fetching alternatives for %s", slug)
        return dict(EMPTY_RESULT)
