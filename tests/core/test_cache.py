"""Tests for the file-based response cache.

Tests cover:
1. Path layout for query ids, synthetic keys and wiki pages
2. get/set round trip and atomic replace
3. Corrupt JSON entries read as misses
"""

import hashlib
import logging

import pytest

from deepwiki_mcp.core.cache import ResponseCache, repo_folder

QUERY_ID = "3f2a9c1e-7b4d-4e8a-9c2f-1a2b3c4d5e6f"


@pytest.fixture
def cache(tmp_path):
    return ResponseCache(tmp_path / "cache")


class TestPathLayout:
    def test_repo_folder(self):
        assert repo_folder("owner/name") == "owner-name"

    def test_query_id_stored_by_name(self, cache):
        path = cache.path_for("question", QUERY_ID, "owner/name")
        assert path == cache.cache_dir / "owner-name" / "questions" / f"query-{QUERY_ID}.json"

    def test_synthetic_key_is_hashed(self, cache):
        key = "question_owner/name_How?_regular"
        digest = hashlib.md5(key.encode("utf-8")).hexdigest()
        assert cache.path_for("question", key, "owner/name").name == f"question_{digest}.json"

    def test_short_hyphenated_key_is_hashed(self, cache):
        assert cache.path_for("question", "abc-def").name.startswith("question_")

    def test_wiki_entries_are_markdown(self, cache):
        path = cache.path_for("wiki", "wiki_owner/name", "owner/name")
        assert path.parent == cache.cache_dir / "owner-name" / "wiki"
        assert path.suffix == ".md"

    def test_no_repo_is_flat(self, cache):
        assert cache.path_for("question", QUERY_ID).parent == cache.cache_dir


class TestReadWrite:
    def test_miss_returns_none(self, cache):
        assert cache.get("question", QUERY_ID, "owner/name") is None
        assert cache.get_json("question", QUERY_ID, "owner/name") is None

    def test_round_trip_text(self, cache):
        path = cache.set("wiki", "wiki_owner/name", ",# Overview\n", "owner/name")
        assert path.exists()
        assert cache.get("wiki", "wiki_owner/name", "owner/name") == ",# Overview\n"

    def test_round_trip_json(self, cache):
        cache.set_json("question", QUERY_ID, {"query_id": QUERY_ID, "turns": [1, 2]}, "owner/name")
        assert cache.get_json("question", QUERY_ID, "owner/name") == {"query_id": QUERY_ID, "turns": [1, 2]}

    def test_overwrite_replaces_and_leaves_no_temp_files(self, cache):
        cache.set("question", QUERY_ID, "first")
        cache.set("question", QUERY_ID, "second")
        assert cache.get("question", QUERY_ID) == "second"
        assert [p.name for p in cache.cache_dir.iterdir()] == [f"query-{QUERY_ID}.json"]

    def test_corrupt_json_is_a_miss(self, cache, caplog):
        cache.set("question", QUERY_ID, "{not json")
        with caplog.at_level(logging.WARNING):
            assert cache.get_json("question", QUERY_ID) is None
        assert "corrupt cache entry" in caplog.text
