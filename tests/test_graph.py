import json

import httpx
import pytest

from app.services import graph
from app.services.graph import (
    GraphLoadError,
    clear_neighbors_cache,
    get_explore_for,
    get_neighbor_slugs_for,
    graph_url,
    load_neighbors,
)

NEIGHBORS = {
    "alpha-trading": {
        "recommendations": ["beta-signals", "gamma-crypto", "beta-signals", ""],
        "alternatives": ["delta-forex"],
        "explore": "zeta-academy",
    },
    "1:1-coaching": {"recommendations": ["zeta-academy"], "alternatives": []},
}


def test_unknown_slug_yields_empty_list():
    assert get_neighbor_slugs_for(NEIGHBORS, "no-such-offer", "recommendations") == []
    assert get_neighbor_slugs_for({}, "alpha-trading", "alternatives") == []
    assert get_neighbor_slugs_for(None, "alpha-trading", "alternatives") == []


def test_neighbor_slugs_are_distinct_and_ordered():
    assert get_neighbor_slugs_for(NEIGHBORS, "alpha-trading", "recommendations") == [
        "beta-signals",
        "gamma-crypto",
    ]


def test_lookup_normalizes_the_slug():
    assert get_neighbor_slugs_for(NEIGHBORS, "Alpha%20Trading", "alternatives") == ["delta-forex"]
    assert get_neighbor_slugs_for(NEIGHBORS, "1%3A1-Coaching", "recommendations") == ["zeta-academy"]


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        get_neighbor_slugs_for(NEIGHBORS, "alpha-trading", "explore")


def test_explore_link():
    assert get_explore_for(NEIGHBORS, "alpha-trading") == "zeta-academy"
    assert get_explore_for(NEIGHBORS, "1:1-coaching") is None
    assert get_explore_for(NEIGHBORS, "missing") is None


def test_graph_url_appends_version(data_dir, monkeypatch):
    assert graph_url() == "/data/graph/neighbors.json"

    monkeypatch.setenv("GRAPH_VERSION", "2024 10")
    assert graph_url() == "/data/graph/neighbors.json?v=2024%2010"

    monkeypatch.setenv("GRAPH_URL", "https://cdn.example.com/neighbors.json?x=1")
    assert graph_url() == "https://cdn.example.com/neighbors.json?x=1&v=2024%2010"


def test_public_env_names_are_honoured(data_dir, monkeypatch):
    monkeypatch.setenv("NEXT_PUBLIC_GRAPH_URL", "/graph/other.json")
    monkeypatch.setenv("NEXT_PUBLIC_GRAPH_VERSION", "7")
    assert graph_url() == "/graph/other.json?v=7"


def test_load_neighbors_reads_local_file_once(data_dir):
    first = load_neighbors()
    assert "alpha-trading" in first

    path = data_dir / "data" / "graph" / "neighbors.json"
    path.write_text(json.dumps({"changed": {}}), encoding="utf-8")
    assert load_neighbors() is first

    clear_neighbors_cache()
    assert list(load_neighbors()) == ["changed"]


def test_load_neighbors_ignores_version_query_for_local_file(data_dir, monkeypatch):
    monkeypatch.setenv("GRAPH_VERSION", "abc")
    assert "alpha-trading" in load_neighbors()


def test_missing_graph_file_raises(data_dir):
    (data_dir / "data" / "graph" / "neighbors.json").unlink()
    with pytest.raises(GraphLoadError):
        load_neighbors()


def test_non_object_graph_raises(data_dir):
    (data_dir / "data" / "graph" / "neighbors.json").write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(GraphLoadError):
        load_neighbors()


def test_remote_graph_is_fetched_with_httpx(data_dir, monkeypatch):
    seen = {}

    def fake_get(url, **kwargs):
        seen["url"] = url
        return httpx.Response(200, json={"remote-offer": {"recommendations": ["x"]}})

    monkeypatch.setenv("GRAPH_URL", "https://cdn.example.com/neighbors.json")
    monkeypatch.setenv("GRAPH_VERSION", "v2")
    monkeypatch.setattr(graph.httpx, "get", fake_get)

    data = load_neighbors()
    assert seen["url"] == "https://cdn.example.com/neighbors.json?v=v2"
    assert get_neighbor_slugs_for(data, "remote-offer", "recommendations") == ["x"]


def test_remote_error_status_raises(data_dir, monkeypatch):
    monkeypatch.setenv("GRAPH_URL", "https://cdn.example.com/neighbors.json")
    monkeypatch.setattr(graph.httpx, "get", lambda url, **kwargs: httpx.Response(503))

    with pytest.raises(GraphLoadError):
        load_neighbors()
