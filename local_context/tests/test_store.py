"""Tests for ReferenceStore."""

import threading

from ..store import ReferenceStore


class TestAdd:
    """Tests for adding references."""

    def test_add_deduplicates_in_insertion_order(self):
        store = ReferenceStore()
        store.add(["a", "b"])
        store.add(["b", "c"])
        assert list(store) == ["a", "b", "c"]

    def test_add_returns_only_new_references(self):
        store = ReferenceStore(["a"])
        assert store.add(["a", "b", "b"]) == ["b"]

    def test_dedup_is_case_sensitive(self):
        store = ReferenceStore(["Notes.txt"])
        store.add(["notes.txt"])
        assert list(store) == ["Notes.txt", "notes.txt"]

    def test_empty_strings_are_ignored(self):
        store = ReferenceStore(["", "a"])
        assert store.count() == 1


class TestRemoveAndClear:
    """Tests for removing references."""

    def test_remove_preserves_order_of_remaining(self):
        store = ReferenceStore(["a", "b", "c", "d"])
        removed = store.remove(["c", "a", "missing"])
        assert removed == ["a", "c"]
        assert list(store) == ["b", "d"]

    def test_readding_removed_reference_goes_to_end(self):
        store = ReferenceStore(["a", "b"])
        store.remove(["a"])
        store.add(["a"])
        assert list(store) == ["b", "a"]

    def test_clear_returns_count(self):
        store = ReferenceStore(["a", "b"])
        assert store.clear() == 2
        assert len(store) == 0

    def test_clear_empty_store(self):
        assert ReferenceStore().clear() == 0


class TestSnapshot:
    """Tests for snapshot isolation."""

    def test_snapshot_is_unaffected_by_later_edits(self):
        store = ReferenceStore(["a", "b"])
        snap = store.snapshot()
        store.add(["c"])
        store.remove(["a"])
        assert snap == ("a", "b")

    def test_replace_deduplicates(self):
        store = ReferenceStore(["old"])
        store.replace(["x", "y", "x"])
        assert store.snapshot() == ("x", "y")

    def test_contains(self):
        store = ReferenceStore(["a"])
        assert "a" in store
        assert "b" not in store

    def test_concurrent_adds_keep_entries_unique(self):
        store = ReferenceStore()
        refs = [f"ref-{i}" for i in range(200)]

        def worker():
            store.add(refs)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(store) == sorted(refs)
