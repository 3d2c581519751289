"""Tests for the in-memory and JSON-file document stores."""

import json

import pytest

from agentbuilders.errors import NotFoundError
from agentbuilders.storage import JsonFileStore, MemoryStore


@pytest.fixture
def scores(store):
    for name, score in [("a", 10.0), ("b", None), ("c", 30.0), ("d", 20.0)]:
        store.insert("frameworks", {"id": name, "name": name, "trending_score": score, "category_id": "x"})
    return store


class TestMemoryStore:
    def test_insert_generates_prefixed_id(self, store):
        doc_id = store.insert("categories", {"name": "Full-code"})
        assert doc_id.startswith("categories_")
        assert store.get("categories", doc_id) == {"id": doc_id, "name": "Full-code"}

    def test_insert_keeps_given_id_and_rejects_duplicates(self, store):
        assert store.insert("categories", {"id": "cat_1", "name": "A"}) == "cat_1"
        with pytest.raises(ValueError):
            store.insert("categories", {"id": "cat_1", "name": "B"})

    def test_get_returns_copy(self, store):
        doc_id = store.insert("frameworks", {"name": "x", "tags": ["a"]})
        store.get("frameworks", doc_id)["tags"].append("b")
        assert store.get("frameworks", doc_id)["tags"] == ["a"]

    def test_get_missing(self, store):
        assert store.get("frameworks", "nope") is None

    def test_patch_merges_fields(self, store):
        doc_id = store.insert("frameworks", {"name": "x", "current_stars": 1})
        patched = store.patch("frameworks", doc_id, {"current_stars": 5, "trending_score": 2.0})
        assert patched == {"id": doc_id, "name": "x", "current_stars": 5, "trending_score": 2.0}

    def test_patch_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.patch("frameworks", "nope", {"name": "y"})

    def test_unknown_table(self, store):
        with pytest.raises(ValueError):
            store.get("widgets", "1")

    def test_query_orders_by_index_with_none_first(self, scores):
        asc = [d["id"] for d in scores.query("frameworks", "by_trending_score")]
        assert asc == ["b", "a", "d", "c"]
        desc = [d["id"] for d in scores.query("frameworks", "by_trending_score", order="desc")]
        assert desc == ["c", "d", "a", "b"]

    def test_query_range_excludes_none(self, scores):
        rows = scores.query("frameworks", "by_trending_score", gte=15, lte=30)
        assert [d["id"] for d in rows] == ["d", "c"]

    def test_query_limit_applies_after_where(self, scores):
        rows = scores.query("frameworks", "by_trending_score", order="desc", where=lambda d: d["id"] != "c", limit=2)
        assert [d["id"] for d in rows] == ["d", "a"]

    def test_query_eq_must_be_index_prefix(self, store):
        with pytest.raises(ValueError):
            store.query("metrics_snapshots", "by_framework_and_timestamp", eq={"timestamp": 1})

    def test_query_unknown_index(self, store):
        with pytest.raises(ValueError):
            store.query("frameworks", "by_name")

    def test_first(self, scores):
        assert scores.first("frameworks", "by_trending_score", order="desc")["id"] == "c"
        assert scores.first("frameworks", "by_trending_score", gte=100) is None


class TestJsonFileStore:
    def test_writes_survive_reload(self, tmp_path):
        path = tmp_path / "data" / "store.json"
        first = JsonFileStore(path)
        doc_id = first.insert("categories", {"name": "Low-code"})
        first.patch("categories", doc_id, {"description": "Visual builders"})

        assert json.loads(path.read_text())["categories"][0]["name"] == "Low-code"

        second = JsonFileStore(path)
        assert second.get("categories", doc_id) == {
            "id": doc_id,
            "name": "Low-code",
            "description": "Visual builders",
        }

    def test_missing_file_starts_empty(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        assert store.all("frameworks") == []
        assert not (tmp_path / "store.json").exists()

    def test_is_a_memory_store(self, tmp_path):
        assert isinstance(JsonFileStore(tmp_path / "s.json"), MemoryStore)
