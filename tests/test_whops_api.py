import json

from app.services.similarity import TOPIC_DESCRIPTIONS
from tests.conftest import make_promo, make_review, make_whop


def test_recommendations_endpoint(client, catalog):
    response = client.get("/api/whops/alpha-trading/recommendations")

    assert response.status_code == 200
    assert response.headers["cache-control"].startswith("no-store")
    body = response.json()
    assert [r["slug"] for r in body["recommendations"]] == ["beta-signals", "gamma-crypto"]
    assert body["explore"]["slug"] == "zeta-academy"
    assert body["source"] == "graph"


def test_recommendations_endpoint_unknown_slug(client, catalog):
    response = client.get("/api/whops/no-such-offer/recommendations")
    assert response.status_code == 200
    assert response.json() == {"recommendations": [], "explore": None, "source": None}


def test_alternatives_endpoint(client, catalog):
    response = client.get("/api/whops/Alpha-Trading/alternatives")

    assert response.status_code == 200
    body = response.json()
    assert body["whop"]["slug"] == "alpha-trading"
    assert [a["slug"] for a in body["alternatives"]] == ["delta-forex", "epsilon-stocks"]
    assert body["total"] == 2
    assert body["editorialDescription"] == TOPIC_DESCRIPTIONS["daytrading"]


def test_alternatives_endpoint_accepts_whop_id(client, catalog):
    whop_id = catalog["alpha-trading"].id
    response = client.get(f"/api/whops/{whop_id}/alternatives")
    assert response.status_code == 200
    assert response.json()["whop"]["id"] == whop_id


def test_alternatives_endpoint_unknown_whop(client, catalog):
    assert client.get("/api/whops/no-such-offer/alternatives").status_code == 404


def test_whop_detail(client, catalog, db):
    make_promo(db, catalog["alpha-trading"], title="Spring sale")

    response = client.get("/api/whops/ALPHA-trading")
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Alpha Trading"
    assert [p["title"] for p in body["promoCodes"]] == ["Spring sale"]
    assert body["verification"] is None


def test_whop_detail_includes_verification_ledger(client, catalog, data_dir):
    ledger = {"whopUrl": "https://whop.com/alpha", "lastUpdated": "2024-05-01", "ledger": [{"code": "X"}]}
    (data_dir / "data" / "pages" / "alpha-trading.json").write_text(json.dumps(ledger), encoding="utf-8")

    body = client.get("/api/whops/alpha-trading").json()
    assert body["verification"]["ledger"] == [{"code": "X"}]


def test_gone_whop_detail_is_404(client, catalog):
    assert client.get("/api/whops/gone-offer").status_code == 404


def test_batch_rating_comes_from_reviews(client, catalog, db):
    make_review(db, catalog["beta-signals"], 4)
    make_review(db, catalog["beta-signals"], 5)

    response = client.get("/api/whops/batch", params={"slugs": "Beta-Signals, gamma-crypto ,,"})
    assert response.status_code == 200
    assert response.headers["cache-control"].startswith("no-store")

    whops = {w["slug"]: w for w in response.json()["whops"]}
    assert set(whops) == {"beta-signals", "gamma-crypto"}
    assert whops["beta-signals"]["rating"] == 4.5
    assert whops["beta-signals"]["reviewsCount"] == 2
    assert "rating" not in whops["gamma-crypto"]
    assert whops["gamma-crypto"]["reviewsCount"] == 0


def test_batch_without_slugs(client):
    assert client.get("/api/whops/batch").json() == {"whops": []}


def test_whop_detail_flags_community_codes(client, catalog, db):
    make_promo(db, catalog["alpha-trading"], promo_id="community_sub1", title="From a reader")

    promos = client.get("/api/whops/alpha-trading").json()["promoCodes"]
    assert [(p["title"], p["community"]) for p in promos] == [("From a reader", True)]


def test_whop_detail_url_uses_local_origin(client, catalog, monkeypatch):
    monkeypatch.delenv("SITE_ORIGIN", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.setenv("ENV", "test")

    body = client.get("/api/whops/alpha-trading").json()
    assert body["url"] == "http://localhost:3000/whop/alpha-trading"


def test_whop_detail_url_uses_configured_origin(client, db, monkeypatch):
    make_whop(db, "1%3a1-coaching", "1:1 Coaching")
    monkeypatch.setenv("SITE_ORIGIN", "https://staging.example.com/")

    body = client.get("/api/whops/1:1-coaching").json()
    assert body["url"] == "https://staging.example.com/whop/1%3a1-coaching"


def test_search_matches_name_case_insensitively(client, catalog):
    response = client.get("/api/whops/search", params={"q": " TA "})

    assert response.status_code == 200
    assert [w["name"] for w in response.json()] == ["Beta Signals", "Delta Forex", "Zeta Academy"]
    assert set(response.json()[0]) == {"id", "name", "slug"}


def test_search_limit_and_blank_query(client, catalog):
    assert [w["slug"] for w in client.get("/api/whops/search", params={"q": "ta", "limit": 2}).json()] == [
        "beta-signals",
        "delta-forex",
    ]
    assert client.get("/api/whops/search", params={"q": "   "}).json() == []
    assert client.get("/api/whops/search").json() == []
    assert client.get("/api/whops/search", params={"q": "%"}).json() == []


def test_search_limit_is_capped(client, db):
    for i in range(105):
        make_whop(db, f"offer-{i:03d}", f"Offer {i:03d}")

    body = client.get("/api/whops/search", params={"q": "offer", "limit": 500}).json()
    assert len(body) == 100
    assert body[0]["name"] == "Offer 000"
    assert len(client.get("/api/whops/search", params={"q": "offer"}).json()) == 20


def test_list_whops_ordered_by_name(client, catalog):
    body = client.get("/api/whops/list").json()

    assert [w["name"] for w in body] == [
        "Alpha Trading",
        "Beta Signals",
        "Delta Forex",
        "Epsilon Stocks",
        "Gamma Crypto",
        "Gone Offer",
        "Zeta Academy",
    ]
    assert body[0] == {
        "id": catalog["alpha-trading"].id,
        "name": "Alpha Trading",
        "slug": "alpha-trading",
    }
