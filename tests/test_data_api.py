import json

import pytest

from app.services.ledger import candidate_filenames, is_safe_filename, load_ledger

LEDGER = {"whopUrl": "https://whop.com/one-on-one", "lastUpdated": "2024-05-01", "ledger": [{"code": "ONE"}]}


@pytest.fixture
def pages(data_dir):
    pages = data_dir / "data" / "pages"
    (pages / "1%3a1-coaching.json").write_text(json.dumps(LEDGER), encoding="utf-8")
    (pages / "alpha-trading.json").write_text(json.dumps({"whopUrl": "x"}), encoding="utf-8")
    return pages


def test_serves_raw_file(client, pages):
    response = client.get("/api/data/pages/alpha-trading.json")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"whopUrl": "x"}


@pytest.mark.parametrize(
    "path",
    [
        "/api/data/pages/1%253A1-coaching.json",
        "/api/data/pages/1%253a1-coaching.json",
        "/api/data/pages/1:1-coaching.json",
    ],
)
def test_encoded_names_resolve(client, pages, path):
    response = client.get(path)
    assert response.status_code == 200
    assert response.json()["ledger"] == [{"code": "ONE"}]


@pytest.mark.parametrize("name", ["notes.txt", "bad%20name.json", "..%2Fsecret.json"])
def test_rejects_unsafe_names(client, pages, name):
    assert client.get(f"/api/data/pages/{name}").status_code in (400, 404)


def test_rejects_names_outside_the_pattern(client, pages):
    assert client.get("/api/data/pages/notes.txt").status_code == 400
    assert client.get("/api/data/pages/bad name.json").status_code == 400


def test_trailing_newline_is_not_a_safe_name():
    assert is_safe_filename("x.json")
    assert not is_safe_filename("x.json\n")
    assert not is_safe_filename("x.json\nother")


def test_missing_file_is_404(client, pages):
    assert client.get("/api/data/pages/nobody.json").status_code == 404


def test_candidate_filenames():
    assert candidate_filenames("1%3A1-coaching.json") == ["1%3a1-coaching.json", "1%3A1-coaching.json"]
    assert candidate_filenames("1:1-coaching.json") == ["1:1-coaching.json", "1%3a1-coaching.json"]


def test_load_ledger(pages):
    assert load_ledger("1:1-coaching")["ledger"] == [{"code": "ONE"}]
    assert load_ledger("alpha-trading") == {"whopUrl": "x", "ledger": []}
    assert load_ledger("nobody") is None
