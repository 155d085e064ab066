import json
import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Module-level engine in app.database points at a throwaway in-memory DB;
# every test gets its own file-backed engine through the get_db override.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.database import Base, get_db
from app.main import app
from app.models.blog import BlogPost
from app.models.promo_code import PromoCode
from app.models.promo_submission import PromoCodeSubmission
from app.models.review import Review
from app.models.whop import Whop
from app.services.graph import clear_neighbors_cache

NEIGHBORS = {
    "alpha-trading": {
        "recommendations": ["beta-signals", "gamma-crypto", "beta-signals", "alpha-trading", ""],
        "alternatives": ["gamma-crypto", "delta-forex", "gone-offer", "epsilon-stocks"],
        "explore": "zeta-academy",
    },
    "beta-signals": {
        "recommendations": ["alpha-trading"],
        "alternatives": [],
        "explore": "alpha-trading",
    },
    "1:1-coaching": {
        "recommendations": ["zeta-academy"],
        "alternatives": [],
    },
}

_GRAPH_ENV = (
    "GRAPH_URL",
    "NEXT_PUBLIC_GRAPH_URL",
    "GRAPH_VERSION",
    "NEXT_PUBLIC_GRAPH_VERSION",
    "NEXT_PUBLIC_USE_GRAPH_LINKS",
    "DEBUG",
    "NEXT_PUBLIC_DEBUG",
)


@pytest.fixture(scope="function")
def db_engine(tmp_path: Path):
    """Fresh file-backed SQLite database with all tables created."""
    db_path = tmp_path / "test.db"
    engine = create_engine(
        f"sqlite:///{db_path.as_posix()}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch):
    """DATA_DIR with data/graph/neighbors.json and an empty data/pages folder."""
    root = tmp_path / "public"
    graph_dir = root / "data" / "graph"
    graph_dir.mkdir(parents=True)
    (root / "data" / "pages").mkdir()
    (graph_dir / "neighbors.json").write_text(json.dumps(NEIGHBORS), encoding="utf-8")

    for name in _GRAPH_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATA_DIR", str(root))
    monkeypatch.setenv("USE_GRAPH_LINKS", "true")

    clear_neighbors_cache()
    yield root
    clear_neighbors_cache()


@pytest.fixture
def client(session_factory, data_dir):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


_clock = {"now": datetime(2024, 1, 1)}


def _tick() -> datetime:
    _clock["now"] += timedelta(minutes=1)
    return _clock["now"]


def make_whop(db, slug, name=None, **fields) -> Whop:
    fields.setdefault("description", f"{name or slug} offer")
    fields.setdefault("created_at", _tick())
    whop = Whop(slug=slug, name=name or slug.replace("-", " ").title(), **fields)
    db.add(whop)
    db.commit()
    db.refresh(whop)
    return whop


def make_promo(db, whop, promo_id=None, **fields) -> PromoCode:
    fields.setdefault("title", "10% off")
    fields.setdefault("description", "Save on your first month")
    fields.setdefault("value", "10")
    fields.setdefault("created_at", _tick())
    if promo_id:
        fields["id"] = promo_id
    promo = PromoCode(whop_id=whop.id, **fields)
    db.add(promo)
    db.commit()
    db.refresh(promo)
    return promo


def make_review(db, whop, rating, **fields) -> Review:
    fields.setdefault("author", "Sam")
    fields.setdefault("content", "Worth it")
    review = Review(whop_id=whop.id, rating=rating, **fields)
    db.add(review)
    db.commit()
    return review


def make_submission(db, whop=None, **fields) -> PromoCodeSubmission:
    fields.setdefault("title", "Community code")
    fields.setdefault("description", "Found this at checkout")
    fields.setdefault("code", "SAVE20")
    fields.setdefault("value", "20")
    fields.setdefault("submitter_name", "Jordan")
    fields.setdefault("submitter_email", "jordan@example.com")
    fields.setdefault("is_general", whop is None)
    submission = PromoCodeSubmission(whop_id=whop.id if whop else None, **fields)
    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission


def make_post(db, slug="deal-roundup", published=True, **fields) -> BlogPost:
    fields.setdefault("title", "Deal roundup")
    fields.setdefault("content", "This week's best offers.")
    post = BlogPost(slug=slug, published=published, **fields)
    if published:
        post.published_at = _tick()
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


@pytest.fixture
def catalog(db):
    """The whops referenced by the neighbor graph fixture."""
    whops = {
        "alpha-trading": make_whop(
            db, "alpha-trading", "Alpha Trading",
            description="Day trading signals and forex strategy", category="TRADING", rating=4.0, price="$49",
        ),
        "beta-signals": make_whop(
            db, "beta-signals", "Beta Signals",
            description="Forex trading signals every morning", category="TRADING", rating=4.5, price="$39",
        ),
        "gamma-crypto": make_whop(
            db, "gamma-crypto", "Gamma Crypto",
            description="Bitcoin and altcoins crypto signals", category="TRADING", rating=4.2, price="$29",
        ),
        "delta-forex": make_whop(
            db, "delta-forex", "Delta Forex",
            description="Scalping course for forex traders", category="TRADING", rating=3.9, price="$99",
        ),
        "epsilon-stocks": make_whop(
            db, "epsilon-stocks", "Epsilon Stocks",
            description="Options trading alerts on nasdaq stocks", category="TRADING", rating=4.1, price="$59",
        ),
        "gone-offer": make_whop(
            db, "gone-offer", "Gone Offer",
            description="Forex signals", category="TRADING", rating=5.0, retirement="GONE",
        ),
        "zeta-academy": make_whop(
            db, "zeta-academy", "Zeta Academy",
            description="Trading academy masterclass", category="EDUCATION", rating=4.8,
        ),
    }
    return whops
