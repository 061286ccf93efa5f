"""Tests for the collection-scoped document store."""

import pytest

from scriptdesk.exceptions import ConflictError, DuplicateKeyError, NotFoundError
from scriptdesk.repositories.document_store import ASCENDING, DESCENDING, DocumentStore, matches


@pytest.fixture()
def store(db):
    return DocumentStore(db, "widgets")


def _seed(store):
    store.create({"id": "w1", "name": "alpha", "meta": {"status": "draft"}, "rank": 3})
    store.create({"id": "w2", "name": "beta", "meta": {"status": "final"}, "rank": 1})
    store.create({"id": "w3", "name": "gamma", "meta": {"status": "draft"}, "rank": 2})


class TestCreateAndGet:

    def test_create_sets_revision(self, store):
        body = store.create({"id": "w1", "name": "alpha"})
        assert body["revision"] == 1
        assert store.get("w1") == {"id": "w1", "name": "alpha", "revision": 1}

    def test_create_with_explicit_id(self, store):
        store.create({"name": "alpha"}, doc_id="w9")
        assert store.get("w9")["id"] == "w9"

    def test_create_without_id_raises(self, store):
        with pytest.raises(ValueError):
            store.create({"name": "anonymous"})

    def test_duplicate_id_raises(self, store):
        store.create({"id": "w1"})
        with pytest.raises(DuplicateKeyError):
            store.create({"id": "w1"})

    def test_missing_document(self, store):
        assert store.get_optional("nope") is None
        with pytest.raises(NotFoundError):
            store.get("nope")

    def test_collections_are_isolated(self, db, store):
        store.create({"id": "shared"})
        other = DocumentStore(db, "gadgets")
        assert other.get_optional("shared") is None
        other.create({"id": "shared"})
        assert other.count() == 1


class TestFind:

    def test_filter_on_dotted_path(self, store):
        _seed(store)
        found = store.find({"meta.status": "draft"}, sort=[("name", ASCENDING)])
        assert [b["id"] for b in found] == ["w1", "w3"]

    def test_any_of_filter(self, store):
        _seed(store)
        found = store.find({"id": ["w1", "w2"]}, sort=[("id", ASCENDING)])
        assert [b["id"] for b in found] == ["w1", "w2"]

    def test_non_string_filter(self, store):
        _seed(store)
        assert [b["id"] for b in store.find({"rank": 2})] == ["w3"]

    def test_sort_and_paginate(self, store):
        _seed(store)
        page = store.find(sort=[("rank", DESCENDING)], skip=1, limit=1)
        assert [b["id"] for b in page] == ["w3"]

    def test_timestamps_sort_chronologically_within_a_second(self, store):
        store.create({"id": "early", "updated_at": "2026-01-01T12:00:00Z"})
        store.create({"id": "late", "updated_at": "2026-01-01T12:00:00.500000Z"})

        newest_first = store.find(sort=[("updated_at", DESCENDING)])
        assert [b["id"] for b in newest_first] == ["late", "early"]
        oldest_first = store.find(sort=[("updated_at", ASCENDING)])
        assert [b["id"] for b in oldest_first] == ["early", "late"]

    def test_timestamps_with_offsets_sort_by_instant(self, store):
        store.create({"id": "utc", "at": "2026-01-01T12:30:00+00:00"})
        store.create({"id": "paris", "at": "2026-01-01T13:00:00+01:00"})
        found = store.find(sort=[("at", ASCENDING)])
        assert [b["id"] for b in found] == ["paris", "utc"]

    def test_missing_values_sort_first(self, store):
        store.create({"id": "w1", "rank": 2})
        store.create({"id": "w2"})
        store.create({"id": "w3", "rank": "high"})
        found = store.find(sort=[("rank", ASCENDING)])
        assert [b["id"] for b in found] == ["w2", "w1", "w3"]

    def test_text_search_is_case_insensitive(self, store):
        _seed(store)
        found = store.find(text="ALP", text_fields=["name"])
        assert [b["id"] for b in found] == ["w1"]
        assert store.count(text="a", text_fields=["name"]) == 3

    def test_text_search_matches_list_members(self, store):
        store.create({"id": "w1", "tags": ["Hooks", "intro"]})
        store.create({"id": "w2", "tags": []})
        found = store.find(text="hook", text_fields=["tags"])
        assert [b["id"] for b in found] == ["w1"]

    def test_text_search_combines_with_criteria(self, store):
        _seed(store)
        found = store.find({"meta.status": "draft"}, text="a", text_fields=["name"])
        assert [b["id"] for b in found] == ["w1", "w3"]

    def test_count(self, store):
        _seed(store)
        assert store.count() == 3
        assert store.count({"meta.status": "final"}) == 1

    def test_matches_none_means_missing(self):
        assert matches({"a": None}, {"a": None})
        assert matches({}, {"a": None})
        assert not matches({"a": 1}, {"a": None})


class TestUpdate:

    def test_update_bumps_revision(self, store):
        store.create({"id": "w1", "name": "alpha"})
        body = store.update("w1", {"id": "w1", "name": "beta"})
        assert body["revision"] == 2
        assert store.get("w1")["name"] == "beta"

    def test_expected_revision_match(self, store):
        store.create({"id": "w1", "name": "alpha"})
        body = store.update("w1", {"name": "beta"}, expected_revision=1)
        assert body["revision"] == 2

    def test_stale_revision_conflicts(self, store):
        store.create({"id": "w1", "name": "alpha"})
        store.update("w1", {"name": "beta"})
        with pytest.raises(ConflictError):
            store.update("w1", {"name": "gamma"}, expected_revision=1)
        assert store.get("w1")["name"] == "beta"

    def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.update("nope", {"name": "x"})


class TestDelete:

    def test_delete(self, store):
        store.create({"id": "w1"})
        store.delete("w1")
        assert store.get_optional("w1") is None
        with pytest.raises(NotFoundError):
            store.delete("w1")

    def test_delete_many(self, store):
        _seed(store)
        assert store.delete_many({"meta.status": "draft"}) == 2
        assert [b["id"] for b in store.find()] == ["w2"]
        assert store.delete_many({"meta.status": "draft"}) == 0


class TestIndexes:

    def test_ensure_index_is_idempotent(self, store):
        assert store.ensure_index("by_name", ["name"]) is True
        assert store.ensure_index("by_name", ["name"]) is False
        assert [ix.name for ix in store.list_indexes()] == ["by_name"]

    def test_redeclaration_keeps_original(self, store):
        store.ensure_index("by_name", ["name"])
        assert store.ensure_index("by_name", ["rank"], unique=True) is False
        (index,) = store.list_indexes()
        assert index.keys == ["name"]
        assert index.unique is False

    def test_unique_index_enforced_on_create_and_update(self, store):
        store.ensure_index("uniq_name", ["name"], unique=True)
        store.create({"id": "w1", "name": "alpha"})
        store.create({"id": "w2", "name": "beta"})

        with pytest.raises(DuplicateKeyError):
            store.create({"id": "w3", "name": "alpha"})
        with pytest.raises(DuplicateKeyError):
            store.update("w2", {"name": "alpha"})

        store.update("w1", {"name": "alpha", "extra": True})
