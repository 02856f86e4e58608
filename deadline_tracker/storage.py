"""
Per-profile key-value storage with change notification.

Plays the part of the browser's localStorage: string values under string
keys, shared by every session (tab) of one profile, with a change event
delivered to every session except the one that wrote.
"""

import json
import os
from abc import ABC, abstractmethod
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger


@dataclass
class StorageResult:
    ok: bool
    value: Optional[str] = None
    error: Optional[str] = None


@dataclass
class StorageEvent:
    key: str
    new_value: Optional[str]
    old_value: Optional[str] = None


Subscriber = Callable[[StorageEvent], None]


class StorageChannel:
    """One producer, many subscribers; the producer never hears its own write."""

    def __init__(self):
        self._subscribers: List[Tuple[object, Subscriber]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber, origin: object = None) -> Callable[[], None]:
        entry = (origin, callback)
        with self._lock:
            self._subscribers.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, event: StorageEvent, origin: object = None) -> int:
        with self._lock:
            targets = list(self._subscribers)
        delivered = 0
        for sub_origin, callback in targets:
            if origin is not None and sub_origin is origin:
                continue
            try:
                callback(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Storage subscriber failed for key {event.key!r}: {e}")
        return delivered

    def __len__(self) -> int:
        return len(self._subscribers)


class KeyValueStore(ABC):
    def __init__(self, channel: Optional[StorageChannel] = None):
        self.channel = channel or StorageChannel()

    @abstractmethod
    def get_item(self, key: str) -> StorageResult:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str, origin: object = None) -> StorageResult:
        ...

    def subscribe(self, callback: Subscriber, origin: object = None) -> Callable[[], None]:
        return self.channel.subscribe(callback, origin=origin)

    def poll(self) -> int:
        """Pick up writes made outside this process. Returns events emitted."""
        return 0


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, channel: Optional[StorageChannel] = None):
        super().__init__(channel)
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get_item(self, key: str) -> StorageResult:
        with self._lock:
            return StorageResult(ok=True, value=self._data.get(key))

    def set_item(self, key: str, value: str, origin: object = None) -> StorageResult:
        with self._lock:
            old = self._data.get(key)
            self._data[key] = value
        if old != value:
            self.channel.publish(StorageEvent(key=key, new_value=value, old_value=old), origin=origin)
        return StorageResult(ok=True, value=value)


class FileKeyValueStore(KeyValueStore):
    """One JSON object per profile on disk, written atomically."""

    def __init__(self, path, channel: Optional[StorageChannel] = None):
        super().__init__(channel)
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()
        self._snapshot: Dict[str, str] = {}
        self._stamp: Optional[Tuple[int, int]] = None
        self._refresh_snapshot()

    def _file_stamp(self) -> Optional[Tuple[int, int]]:
        try:
            st = self.path.stat()
        except OSError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            raw = f.read()
        if not raw.strip():
            return {}
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Profile file {self.path} does not hold an object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".profile-", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _refresh_snapshot(self) -> None:
        try:
            self._snapshot = self._read_all()
        except (OSError, ValueError) as e:
            logger.error(f"Could not read profile storage {self.path}: {e}")
            self._snapshot = {}
        self._stamp = self._file_stamp()

    def get_item(self, key: str) -> StorageResult:
        with self._lock:
            try:
                data = self._read_all()
            except (OSError, ValueError) as e:
                logger.error(f"Error reading {key!r} from {self.path}: {e}")
                return StorageResult(ok=False, error=str(e))
            return StorageResult(ok=True, value=data.get(key))

    def set_item(self, key: str, value: str, origin: object = None) -> StorageResult:
        with self._lock:
            try:
                data = self._read_all()
            except (OSError, ValueError) as e:
                # A corrupt profile is overwritten rather than blocking writes
                logger.warning(f"Discarding unreadable profile storage {self.path}: {e}")
                data = {}
            old = data.get(key)
            data[key] = value
            try:
                self._write_all(data)
            except OSError as e:
                logger.error(f"Error writing {key!r} to {self.path}: {e}")
                return StorageResult(ok=False, error=str(e))
            self._snapshot = dict(data)
            self._stamp = self._file_stamp()
        if old != value:
            self.channel.publish(StorageEvent(key=key, new_value=value, old_value=old), origin=origin)
        return StorageResult(ok=True, value=value)

    def poll(self) -> int:
        with self._lock:
            stamp = self._file_stamp()
            if stamp == self._stamp:
                return 0
            previous = self._snapshot
            self._refresh_snapshot()
            current = self._snapshot
        events = [
            StorageEvent(key=k, new_value=current.get(k), old_value=previous.get(k))
            for k in sorted(set(previous) | set(current))
            if previous.get(k) != current.get(k)
        ]
        for event in events:
            self.channel.publish(event)
        return len(events)
