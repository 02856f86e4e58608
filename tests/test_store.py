"""Tests for the tracked deadline store."""

import json

import pytest

from deadline_tracker.storage import MemoryKeyValueStore, StorageEvent, StorageResult
from deadline_tracker.store import (
    STORAGE_KEY,
    TrackedDeadlineStore,
    TrackedDeadlinesScopeError,
    provide_tracked_deadlines,
    use_tracked_deadlines,
)

from conftest import make_deadline


class CountingStorage(MemoryKeyValueStore):
    def __init__(self, fail_writes=False):
        super().__init__()
        self.fail_writes = fail_writes
        self.writes = []

    def set_item(self, key, value, origin=None):
        self.writes.append((key, value))
        if self.fail_writes:
            return StorageResult(ok=False, error="quota exceeded")
        return super().set_item(key, value, origin=origin)


def stored_documents(storage):
    return json.loads(storage.get_item(STORAGE_KEY).value)


class TestAdd:
    def test_defaults_applied(self, store):
        deadline = make_deadline(reminder_days_before=None)
        assert store.add(deadline) is True

        record = store.get("mit-1-2025-01-01")
        assert record.reminder_enabled is False
        assert record.reminder_days_before == 7

    def test_add_is_idempotent(self, store, storage):
        store.add(make_deadline())
        assert store.add(make_deadline(title="Something else")) is False
        assert len(store) == 1
        assert store.get("mit-1-2025-01-01").title == "Early Action"
        assert len(stored_documents(storage)) == 1

    def test_stored_as_camel_case_documents(self, store, storage):
        store.add(make_deadline())
        doc = stored_documents(storage)[0]
        assert doc["deadlineId"] == "mit-1-2025-01-01"
        assert doc["institutionId"] == 1
        assert doc["institutionName"] == "MIT"
        assert doc["reminderEnabled"] is False
        assert doc["reminderDaysBefore"] == 7


class TestRemove:
    def test_remove(self, store, storage):
        store.add(make_deadline())
        assert store.remove("mit-1-2025-01-01") is True
        assert len(store) == 0
        assert stored_documents(storage) == []

    def test_remove_absent_does_not_write(self):
        storage = CountingStorage()
        store = TrackedDeadlineStore(storage).mount()
        assert store.remove("nope") is False
        assert storage.writes == []


class TestUpdate:
    def test_partial_update_keeps_other_fields(self, store):
        store.add(make_deadline(reminder_enabled=True, reminder_days_before=14))
        assert store.update("mit-1-2025-01-01", reminder_enabled=False) is True

        record = store.get("mit-1-2025-01-01")
        assert record.reminder_enabled is False
        assert record.reminder_days_before == 14
        assert record.title == "Early Action"

    def test_update_accepts_document_keys(self, store):
        store.add(make_deadline())
        store.update("mit-1-2025-01-01", {"reminderEnabled": True, "reminderDaysBefore": 3})
        record = store.get("mit-1-2025-01-01")
        assert record.reminder_enabled is True
        assert record.reminder_days_before == 3

    def test_update_absent_is_noop(self):
        storage = CountingStorage()
        store = TrackedDeadlineStore(storage).mount()
        assert store.update("nope", reminder_enabled=True) is False
        assert storage.writes == []

    @pytest.mark.parametrize("days", [0, 366, -3])
    def test_out_of_range_days_rejected(self, store, days):
        store.add(make_deadline())
        with pytest.raises(ValueError):
            store.update("mit-1-2025-01-01", reminder_days_before=days)
        assert store.get("mit-1-2025-01-01").reminder_days_before == 7

    def test_id_cannot_change(self, store):
        store.add(make_deadline())
        with pytest.raises(ValueError):
            store.update("mit-1-2025-01-01", deadline_id="other")

    def test_unknown_field_rejected(self, store):
        store.add(make_deadline())
        with pytest.raises(KeyError):
            store.update("mit-1-2025-01-01", colour="blue")


class TestLoading:
    def test_round_trip_through_storage(self, storage, store):
        store.add(make_deadline(reminder_enabled=True, reminder_days_before=10))
        store.add(make_deadline(deadline_id="b", title="Regular Decision", date="2025-02-01"))

        reopened = TrackedDeadlineStore(storage).mount()

        assert reopened.list() == store.list()

    def test_malformed_value_loads_empty_without_write(self):
        storage = CountingStorage()
        storage._data[STORAGE_KEY] = "{definitely not json"
        store = TrackedDeadlineStore(storage).mount()

        assert store.is_loading is False
        assert len(store) == 0
        assert storage.writes == []

    def test_mount_does_not_write(self):
        storage = CountingStorage()
        storage._data[STORAGE_KEY] = json.dumps([make_deadline().to_dict()])
        store = TrackedDeadlineStore(storage)
        assert store.is_loading is True

        store.mount()

        assert len(store) == 1
        assert storage.writes == []

    def test_persistence_failure_keeps_memory_state(self):
        storage = CountingStorage(fail_writes=True)
        store = TrackedDeadlineStore(storage).mount()

        assert store.add(make_deadline()) is True

        assert store.persisted is False
        assert store.contains("mit-1-2025-01-01")


class TestCrossSession:
    def test_writes_reach_other_sessions(self, storage):
        tab_a = TrackedDeadlineStore(storage).mount()
        tab_b = TrackedDeadlineStore(storage).mount()

        tab_a.add(make_deadline())

        assert tab_b.contains("mit-1-2025-01-01")
        tab_b.update("mit-1-2025-01-01", reminder_enabled=True)
        assert tab_a.get("mit-1-2025-01-01").reminder_enabled is True

    def test_malformed_event_is_ignored(self, storage, store):
        store.add(make_deadline())
        storage.channel.publish(StorageEvent(key=STORAGE_KEY, new_value="[not json"))
        assert store.contains("mit-1-2025-01-01")

    def test_empty_event_and_other_keys_ignored(self, storage, store):
        store.add(make_deadline())
        storage.channel.publish(StorageEvent(key=STORAGE_KEY, new_value=None))
        storage.channel.publish(StorageEvent(key="something-else", new_value="[]"))
        assert len(store) == 1

    def test_unmounted_store_stops_listening(self, storage):
        tab_a = TrackedDeadlineStore(storage).mount()
        tab_b = TrackedDeadlineStore(storage).mount()
        tab_b.unmount()

        tab_a.add(make_deadline())

        assert len(tab_b) == 0


class TestQueries:
    def test_find_by_id_or_title(self, store):
        store.add(make_deadline())
        assert store.find("mit-1-2025-01-01").title == "Early Action"
        assert store.find("Early Action").deadline_id == "mit-1-2025-01-01"
        assert store.find("Nothing") is None

    def test_get_returns_copy(self, store):
        store.add(make_deadline())
        record = store.get("mit-1-2025-01-01")
        record.reminder_enabled = True
        assert store.get("mit-1-2025-01-01").reminder_enabled is False

    def test_sorted_by_date(self, store):
        store.add(make_deadline(deadline_id="c", date="2025-03-01"))
        store.add(make_deadline(deadline_id="a", date="2024-11-01"))
        store.add(make_deadline(deadline_id="b", date="2025-01-15T00:00:00.000Z"))
        assert [d.deadline_id for d in store.sorted_by_date()] == ["a", "b", "c"]


class TestScope:
    def test_use_without_provider_raises(self):
        with pytest.raises(TrackedDeadlinesScopeError):
            use_tracked_deadlines({})

    def test_provide_mounts_once(self, storage):
        scope = {}
        first = provide_tracked_deadlines(scope, TrackedDeadlineStore(storage))
        second = provide_tracked_deadlines(scope, TrackedDeadlineStore(storage))

        assert first is second
        assert first.is_loading is False
        assert use_tracked_deadlines(scope) is first


@pytest.mark.parametrize("stored,loaded", [(0, 7), (400, 7), (30, 30), (None, None)])
def test_loaded_days_are_kept_in_range(storage, stored, loaded):
    doc = make_deadline().to_dict()
    doc["reminderDaysBefore"] = stored
    storage.set_item(STORAGE_KEY, json.dumps([doc]))

    store = TrackedDeadlineStore(storage).mount()

    assert store.get("mit-1-2025-01-01").reminder_days_before == loaded
