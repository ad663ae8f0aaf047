"""
Tests for the record store.

Covers reads and writes, the read cache and its invalidation, and how I/O
failures surface as default values and False results.
"""

import pytest

from shoppos.store import RecordStore
from tests.conftest import FailingConnection


@pytest.fixture
def store(tmp_path):
    s = RecordStore(tmp_path / "records.db")
    yield s
    s.close()


class TestRecordStore:
    """Basic get/set/delete/clear behaviour."""

    def test_get_missing_returns_default(self, store, run):
        assert run(store.get("products")) is None
        assert run(store.get("products", [])) == []

    def test_set_then_get(self, store, run):
        assert run(store.set("products", [{"id": "a", "stock": 3}])) is True
        assert run(store.get("products")) == [{"id": "a", "stock": 3}]

    def test_values_survive_reopen(self, tmp_path, run):
        path = tmp_path / "persist.db"
        first = RecordStore(path)
        run(first.set("settings", {"shopName": "Corner Shop"}))
        first.close()

        second = RecordStore(path)
        assert run(second.get("settings")) == {"shopName": "Corner Shop"}
        second.close()

    def test_delete(self, store, run):
        run(store.set("sales", []))
        assert run(store.delete("sales")) is True
        assert run(store.get("sales", "gone")) == "gone"

    def test_clear(self, store, run):
        run(store.set("a", 1))
        run(store.set("b", 2))
        assert run(store.clear()) is True
        assert store.keys() == []
        assert run(store.get("a")) is None

    def test_set_many_writes_all_keys(self, store, run):
        assert run(store.set_many({"a": [1], "b": {"x": 2}})) is True
        assert store.keys() == ["a", "b"]
        assert run(store.get("b")) == {"x": 2}


class TestReadCache:
    """The cache mirrors the last written value and is dropped on writes."""

    def test_get_served_from_cache(self, store, run):
        run(store.set("products", [1, 2]))
        # Change the row behind the store's back: the cache still answers.
        store.conn.execute("UPDATE records SET value = '[]' WHERE key = 'products'")
        store.conn.commit()
        assert run(store.get("products")) == [1, 2]

        store.clear_cache()
        assert run(store.get("products")) == []

    def test_set_many_invalidates_whole_cache(self, store, run):
        run(store.set("other", "cached"))
        store.conn.execute("UPDATE records SET value = '\"fresh\"' WHERE key = 'other'")
        store.conn.commit()

        run(store.set_many({"products": []}))
        assert run(store.get("other")) == "fresh"

    def test_missing_key_default_is_not_cached(self, store, run):
        first = run(store.get("missing", []))
        first.append("mutated")
        assert run(store.get("missing", "fallback")) == "fallback"
        assert run(store.get("missing")) is None

    def test_caller_mutation_after_set_does_not_leak(self, store, run):
        value = [{"id": "a", "stock": 3}]
        run(store.set("products", value))
        value[0]["stock"] = 99
        value.append({"id": "b"})
        assert run(store.get("products")) == [{"id": "a", "stock": 3}]

    def test_delete_invalidates_key(self, store, run):
        run(store.set("k", "v"))
        run(store.delete("k"))
        assert run(store.get("k")) is None


class TestStoreFailures:
    """I/O errors never raise out of the store."""

    def test_get_falls_back_to_default(self, app, run, failing_store):
        assert run(app.store.get("products", [])) == []

    def test_set_returns_false(self, app, run, failing_store):
        assert run(app.store.set("products", [])) is False

    def test_failed_set_drops_cached_value(self, app, run):
        run(app.store.set("products", [{"id": "old"}]))

        original = app.store._conn
        app.store._conn = FailingConnection()
        assert run(app.store.set("products", [{"id": "new"}])) is False
        app.store._conn = original

        assert run(app.store.get("products")) == [{"id": "old"}]

    def test_delete_and_clear_return_false(self, app, run, failing_store):
        assert run(app.store.delete("products")) is False
        assert run(app.store.clear()) is False

    def test_set_many_is_all_or_nothing(self, store, run):
        run(store.set("products", ["kept"]))
        # A value json cannot encode aborts the whole batch.
        assert run(store.set_many({"products": [], "sales": {object()}})) is False
        assert run(store.get("products")) == ["kept"]
        assert "sales" not in store.keys()
