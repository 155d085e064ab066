import logging

from fastapi import APIRouter, HTTPException, Depends, Query, Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from app import config
from app.database import get_db
from app.models.review import Review
from app.models.whop import Whop, RETIREMENT_GONE
from app.services.ledger import load_ledger
from app.services.recommendations import (
    find_whop,
    get_alternatives,
    get_recommendations,
    serialize_promo,
)
from app.services.similarity import generate_editorial_description
from app.services.slugs import canonical_slug_for_path, normalize_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/whops", tags=["whops"])

NO_STORE = "no-store, no-cache, max-age=0, must-revalidate"
SEARCH_LIMIT = 20
MAX_SEARCH_LIMIT = 100


def looks_like_id(value: str) -> bool:
    """Whop ids are 32-char hex uuids; slugs almost never are."""
    return len(value) == 32 and all(c in "0123456789abcdef" for c in value.lower())


def serialize_whop(whop: Whop) -> dict:
    return {
        "id": whop.id,
        "name": whop.name,
        "slug": whop.slug,
        "logo": whop.logo,
        "description": whop.description,
        "category": whop.category,
        "price": whop.price,
        "rating": whop.rating,
        "affiliateLink": whop.affiliate_link,
        "website": whop.website,
        "indexing": whop.indexing,
        "retirement": whop.retirement,
        "aboutContent": whop.about_content,
        "howToRedeemContent": whop.how_to_redeem_content,
        "promoDetailsContent": whop.promo_details_content,
        "featuresContent": whop.features_content,
        "termsContent": whop.terms_content,
        "faqContent": whop.faq_content,
        "createdAt": whop.created_at.isoformat() if whop.created_at else None,
        "publishedAt": whop.published_at.isoformat() if whop.published_at else None,
    }


@router.get("/batch")
def get_whops_batch(response: Response, slugs: str = Query(""), db: Session = Depends(get_db)):
    """Hydrate a comma-separated list of slugs. Rating is only present when the whop has reviews."""
    response.headers["Cache-Control"] = NO_STORE

    wanted = [s.strip().lower() for s in slugs.split(",")]
    wanted = [s for s in wanted if s]
    if not wanted:
        return {"whops": []}

    try:
        whops = db.query(Whop).filter(Whop.slug.in_(wanted)).all()

        payload = []
        for w in whops:
            ratings = [r.rating for r in db.query(Review).filter(Review.whop_id == w.id).all() if r.rating]
            item = serialize_whop(w)
            item["promoCodes"] = [serialize_promo(p) for p in w.promo_codes]
            item["reviewsCount"] = len(ratings)
            if ratings:
                item["rating"] = sum(ratings) / len(ratings)
            else:
                item.pop("rating")
            payload.append(item)

        return {"whops": payload}
    except Exception as e:
        logger.exception("batch whops error: %s", e)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/search")
def search_whops(q: str = Query(""), limit: int = Query(SEARCH_LIMIT), db: Session = Depends(get_db)):
    """Case-insensitive name search for the submission form's course picker."""
    term = q.strip()
    if not term:
        return []

    limit = max(1, min(limit, MAX_SEARCH_LIMIT))
    whops = (
        db.query(Whop.id, Whop.name, Whop.slug)
        .filter(func.lower(Whop.name).contains(term.lower(), autoescape=True))
        .order_by(Whop.name.asc())
        .limit(limit)
        .all()
    )
    return [{"id": w.id, "name": w.name, "slug": w.slug} for w in whops]


@router.get("/list")
def list_whops(db: Session = Depends(get_db)):
    whops = db.query(Whop.id, Whop.name, Whop.slug).order_by(Whop.name.asc()).all()
    return [{"id": w.id, "name": w.name, "slug": w.slug} for w in whops]


@router.get("/{slug}/recommendations")
def get_whop_recommendations(slug: str, response: Response, db: Session = Depends(get_db)):
    response.headers["Cache-Control"] = NO_STORE
    result = get_recommendations(db, slug)
    return {
        "recommendations": result["items"],
        "explore": result["explore"],
        "source": result["source"],
    }


@router.get("/{slug}/alternatives")
def get_whop_alternatives(slug: str, response: Response, db: Session = Depends(get_db)):
    """Alternatives for a whop, looked up by slug first and then by id."""
    response.headers["Cache-Control"] = NO_STORE

    key = normalize_slug(slug)
    if not key:
        raise HTTPException(status_code=400, detail="Missing slug or id")

    current = find_whop(db, key)
    if current is None and looks_like_id(slug.strip()):
        current = db.query(Whop).filter(Whop.id == slug.strip().lower()).first()
    if current is None:
        raise HTTPException(status_code=404, detail="Whop not found")

    result = get_alternatives(db, current.slug)
    return {
        "whop": {
            "id": current.id,
            "slug": current.slug,
            "name": current.name,
            "description": current.description,
            "category": current.category,
            "price": current.price,
        },
        "alternatives": result["items"],
        "explore": result["explore"],
        "editorialDescription": generate_editorial_description(current, result["items"]),
        "total": len(result["items"]),
        "source": result["source"],
    }


@router.get("/{slug}")
def get_whop(slug: str, db: Session = Depends(get_db)):
    whop = find_whop(db, slug)
    if whop is None or whop.retirement == RETIREMENT_GONE:
        raise HTTPException(status_code=404, detail="Whop not found")

    data = serialize_whop(whop)
    data["promoCodes"] = [serialize_promo(p) for p in sorted(
        whop.promo_codes, key=lambda p: p.created_at, reverse=True
    )]
    data["url"] = f"{config.site_origin()}/whop/{canonical_slug_for_path(whop.slug)}"
    data["verification"] = load_ledger(whop.slug)
    return data
