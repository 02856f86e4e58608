import json
import threading
from dataclasses import replace
from typing import Any, Dict, List, MutableMapping, Optional

from loguru import logger

from .eligibility import parse_calendar_date
from .models import (
    DEFAULT_REMINDER_DAYS,
    MAX_REMINDER_DAYS,
    MIN_REMINDER_DAYS,
    TrackedDeadline,
)
from .storage import KeyValueStore, StorageEvent


STORAGE_KEY = "tracked-deadlines"
SCOPE_KEY = "tracked_deadlines_store"


class TrackedDeadlinesScopeError(RuntimeError):
    """Raised when the tracked deadlines are used without a provided store."""


def serialize_deadlines(deadlines: List[TrackedDeadline]) -> str:
    return json.dumps([d.to_dict() for d in deadlines])


def deserialize_deadlines(raw: str) -> List[TrackedDeadline]:
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("Tracked deadlines must be stored as a list")
    return [TrackedDeadline.from_dict(item) for item in data]


class TrackedDeadlineStore:
    """
    The tracked deadlines of one browser profile.

    Holds the collection in memory and writes the whole of it through to the
    profile storage after every change. Writes from other sessions replace
    the collection wholesale; the last writer wins.
    """

    def __init__(self, storage: KeyValueStore, key: str = STORAGE_KEY):
        self.storage = storage
        self.key = key
        self.is_loading = True
        self.persisted = True
        self._deadlines: List[TrackedDeadline] = []
        self._state_lock = threading.RLock()
        self._write_lock = threading.Lock()
        self._unsubscribe = None

    # Lifecycle

    def mount(self) -> "TrackedDeadlineStore":
        if not self.is_loading:
            return self
        result = self.storage.get_item(self.key)
        if not result.ok:
            logger.error(f"Error loading tracked deadlines: {result.error}")
        elif result.value:
            try:
                loaded = deserialize_deadlines(result.value)
                with self._state_lock:
                    self._deadlines = loaded
            except (ValueError, TypeError, KeyError) as e:
                logger.error(f"Error loading tracked deadlines: {e}")
        self._unsubscribe = self.storage.subscribe(self._on_storage_event, origin=self)
        self.is_loading = False
        logger.debug(f"Mounted tracked deadline store with {len(self._deadlines)} item(s)")
        return self

    def unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def sync(self) -> int:
        """Ask the storage for writes made by other processes."""
        return self.storage.poll()

    def _on_storage_event(self, event: StorageEvent) -> None:
        if event.key != self.key or not event.new_value:
            return
        try:
            incoming = deserialize_deadlines(event.new_value)
        except (ValueError, TypeError, KeyError) as e:
            logger.error(f"Error loading tracked deadlines from storage event: {e}")
            return
        with self._state_lock:
            self._deadlines = incoming
        logger.debug(f"Replaced tracked deadlines from another session ({len(incoming)} item(s))")

    def _persist(self) -> None:
        if self.is_loading:
            return
        with self._write_lock:
            # Always the latest snapshot, so queued writes cannot go stale
            with self._state_lock:
                payload = serialize_deadlines(self._deadlines)
            try:
                result = self.storage.set_item(self.key, payload, origin=self)
            except Exception as e:
                logger.error(f"Error saving tracked deadlines: {e}")
                self.persisted = False
                return
            self.persisted = result.ok
            if not result.ok:
                logger.error(f"Error saving tracked deadlines: {result.error}")

    # Operations

    def add(self, deadline: TrackedDeadline) -> bool:
        with self._state_lock:
            if any(d.deadline_id == deadline.deadline_id for d in self._deadlines):
                return False
            record = replace(
                deadline,
                reminder_enabled=bool(deadline.reminder_enabled),
                reminder_days_before=(
                    deadline.reminder_days_before
                    if deadline.reminder_days_before is not None
                    else DEFAULT_REMINDER_DAYS
                ),
            )
            self._deadlines.append(record)
        self._persist()
        return True

    def remove(self, deadline_id: str) -> bool:
        with self._state_lock:
            before = len(self._deadlines)
            self._deadlines = [d for d in self._deadlines if d.deadline_id != deadline_id]
            changed = len(self._deadlines) != before
        if changed:
            self._persist()
        return changed

    def update(self, deadline_id: str, /, updates: Optional[Dict[str, Any]] = None, **fields: Any) -> bool:
        """Merge fields (field names or document keys) into one record."""
        changes = {TrackedDeadline.field_name(k): v for k, v in {**(updates or {}), **fields}.items()}
        if "deadline_id" in changes and changes["deadline_id"] != deadline_id:
            raise ValueError("deadline_id cannot be changed by update")
        days = changes.get("reminder_days_before")
        if days is not None and not (MIN_REMINDER_DAYS <= int(days) <= MAX_REMINDER_DAYS):
            raise ValueError(
                f"reminder_days_before must be between {MIN_REMINDER_DAYS} and {MAX_REMINDER_DAYS}, got {days}"
            )
        with self._state_lock:
            for idx, current in enumerate(self._deadlines):
                if current.deadline_id == deadline_id:
                    self._deadlines[idx] = replace(current, **changes)
                    break
            else:
                return False
        self._persist()
        return True

    def contains(self, deadline_id: str) -> bool:
        with self._state_lock:
            return any(d.deadline_id == deadline_id for d in self._deadlines)

    def get(self, deadline_id: str) -> Optional[TrackedDeadline]:
        with self._state_lock:
            for d in self._deadlines:
                if d.deadline_id == deadline_id:
                    return replace(d)
        return None

    def find(self, ref: str) -> Optional[TrackedDeadline]:
        """Match by id first, then by title (unsubscribe links carry either)."""
        found = self.get(ref)
        if found:
            return found
        with self._state_lock:
            for d in self._deadlines:
                if d.title == ref:
                    return replace(d)
        return None

    def list(self) -> List[TrackedDeadline]:
        with self._state_lock:
            return [replace(d) for d in self._deadlines]

    def sorted_by_date(self) -> List[TrackedDeadline]:
        def sort_key(d: TrackedDeadline):
            try:
                return (0, parse_calendar_date(d.date))
            except ValueError:
                return (1, None)

        return sorted(self.list(), key=sort_key)

    def __len__(self) -> int:
        with self._state_lock:
            return len(self._deadlines)


def provide_tracked_deadlines(scope: MutableMapping[str, Any], store: TrackedDeadlineStore) -> TrackedDeadlineStore:
    """Install a mounted store into a scope (Streamlit session state, a dict)."""
    existing = scope.get(SCOPE_KEY)
    if existing is not None:
        return existing
    scope[SCOPE_KEY] = store.mount()
    return scope[SCOPE_KEY]


def use_tracked_deadlines(scope: MutableMapping[str, Any]) -> TrackedDeadlineStore:
    store = scope.get(SCOPE_KEY)
    if store is None:
        raise TrackedDeadlinesScopeError(
            "use_tracked_deadlines must be called within a scope set up by provide_tracked_deadlines"
        )
    return store
