from __future__ import annotations

import logging
import time
from threading import Event, Lock, Thread
from typing import Any, Callable, Dict, Mapping, Optional

from typed_kv.domain.validation import validate_key

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 10000
DEFAULT_CLEANUP_INTERVAL = 10

STRING = "string"
LIST = "list"
HASH = "hash"
SET = "set"
ZSET = "zset"


class WrongTypeOperation(RuntimeError):
    """A command was issued against a key holding another structure."""

    def __init__(self, key: str, actual: str, expected: str) -> None:
        self.key = key
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"WRONGTYPE operation against key {key!r} holding a {actual}, expected {expected}"
        )


class StoreEntry:
    def __init__(self, kind: str, value: Any, expires_at: Optional[float] = None):
        self.kind = kind
        self.value = value
        self.expires_at = expires_at


class InMemoryStoreClient:
    """Thread-safe in-process store holding strings, lists, hashes, sets and sorted sets."""

    def __init__(
        self,
        max_items: Optional[int] = None,
        cleanup_interval: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
        start_cleaner: bool = True,
    ):
        resolved_max_items = DEFAULT_MAX_ITEMS if max_items is None else max_items
        if resolved_max_items < 1:
            raise ValueError(f"max_items must be >= 1, got {resolved_max_items}")

        resolved_cleanup_interval = DEFAULT_CLEANUP_INTERVAL if cleanup_interval is None else cleanup_interval
        if resolved_cleanup_interval < 1:
            raise ValueError(f"cleanup_interval must be >= 1, got {resolved_cleanup_interval}")

        self.max_items = resolved_max_items
        self.cleanup_interval = resolved_cleanup_interval

        self.store: Dict[str, StoreEntry] = {}
        self.expirations = 0
        self.rejected_writes = 0
        self.lock = Lock()
        self._clock = clock or time.monotonic

        self._stop_event = Event()
        self.cleaner_thread: Optional[Thread] = None
        if start_cleaner:
            self.cleaner_thread = Thread(target=self._background_cleanup, daemon=True)
            self.cleaner_thread.start()

    def _is_expired(self, entry: StoreEntry) -> bool:
        if entry.expires_at is None:
            return False
        return self._clock() >= entry.expires_at

    def _live_entry(self, key: str) -> Optional[StoreEntry]:
        """Return the entry for key, dropping it first if it has expired. Caller holds the lock."""
        entry = self.store.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            del self.store[key]
            self.expirations += 1
            return None
        return entry

    def _typed_entry(self, key: str, kind: str) -> Optional[StoreEntry]:
        entry = self._live_entry(key)
        if entry is not None and entry.kind != kind:
            raise WrongTypeOperation(key, entry.kind, kind)
        return entry

    def _entry_for_write(self, key: str, kind: str, factory: Callable[[], Any]) -> Optional[StoreEntry]:
        """Existing entry of ``kind`` or a new one; ``None`` when the store is full."""
        entry = self._typed_entry(key, kind)
        if entry is not None:
            return entry
        if len(self.store) >= self.max_items:
            self.rejected_writes += 1
            return None
        entry = StoreEntry(kind, factory())
        self.store[key] = entry
        return entry

    def exists(self, key: str) -> bool:
        validate_key(key)
        with self.lock:
            return self._live_entry(key) is not None

    def type(self, key: str) -> str:
        validate_key(key)
        with self.lock:
            entry = self._live_entry(key)
            return "none" if entry is None else entry.kind

    def delete(self, key: str) -> bool:
        validate_key(key)
        with self.lock:
            if self._live_entry(key) is None:
                return False
            del self.store[key]
            return True

    def expire(self, key: str, seconds: int) -> bool:
        validate_key(key)
        with self.lock:
            entry = self._live_entry(key)
            if entry is None:
                return False
            if seconds <= 0:
                del self.store[key]
                return True
            entry.expires_at = self._clock() + seconds
            return True

    def ttl(self, key: str) -> Optional[float]:
        """Seconds left before key expires, ``None`` when it has no expiry or is absent."""
        validate_key(key)
        with self.lock:
            entry = self._live_entry(key)
            if entry is None or entry.expires_at is None:
                return None
            return entry.expires_at - self._clock()

    def get(self, key: str) -> Optional[str]:
        validate_key(key)
        with self.lock:
            entry = self._typed_entry(key, STRING)
            return None if entry is None else entry.value

    def set(self, key: str, value: str) -> bool:
        validate_key(key)
        with self.lock:
            if self._live_entry(key) is None and len(self.store) >= self.max_items:
                self.rejected_writes += 1
                return False
            # replaces any structure and clears the expiry
            self.store[key] = StoreEntry(STRING, value)
            return True

    def hgetall(self, key: str) -> dict[str, str]:
        validate_key(key)
        with self.lock:
            entry = self._typed_entry(key, HASH)
            return {} if entry is None else dict(entry.value)

    def hset(self, key: str, mapping: Mapping[str, str]) -> bool:
        validate_key(key)
        if not mapping:
            return False
        with self.lock:
            entry = self._entry_for_write(key, HASH, dict)
            if entry is None:
                return False
            entry.value.update(mapping)
            return True

    def llen(self, key: str) -> int:
        validate_key(key)
        with self.lock:
            entry = self._typed_entry(key, LIST)
            return 0 if entry is None else len(entry.value)

    def lindex(self, key: str, index: int) -> Optional[str]:
        validate_key(key)
        with self.lock:
            entry = self._typed_entry(key, LIST)
            if entry is None:
                return None
            try:
                return entry.value[index]
            except IndexError:
                return None

    def rpush(self, key: str, *values: str) -> bool:
        validate_key(key)
        if not values:
            return False
        with self.lock:
            entry = self._entry_for_write(key, LIST, list)
            if entry is None:
                return False
            entry.value.extend(values)
            return True

    def smembers(self, key: str) -> set[str]:
        validate_key(key)
        with self.lock:
            entry = self._typed_entry(key, SET)
            return set() if entry is None else set(entry.value)

    def sadd(self, key: str, *members: str) -> bool:
        validate_key(key)
        if not members:
            return False
        with self.lock:
            entry = self._entry_for_write(key, SET, set)
            if entry is None:
                return False
            entry.value.update(members)
            return True

    def zrange(self, key: str, start: int, end: int) -> list[str]:
        validate_key(key)
        with self.lock:
            entry = self._typed_entry(key, ZSET)
            if entry is None:
                return []
            ordered = [member for member, _ in sorted(entry.value.items(), key=lambda item: (item[1], item[0]))]
        stop = None if end == -1 else end + 1
        return ordered[start:stop]

    def zadd(self, key: str, score: float, member: str) -> bool:
        validate_key(key)
        with self.lock:
            entry = self._entry_for_write(key, ZSET, dict)
            if entry is None:
                return False
            entry.value[member] = float(score)
            return True

    def stats(self) -> Dict[str, Any]:
        with self.lock:
            return {
                "size": len(self.store),
                "max_items": self.max_items,
                "expirations": self.expirations,
                "rejected_writes": self.rejected_writes,
            }

    def _background_cleanup(self) -> None:
        """Background thread to drop expired entries"""
        while not self._stop_event.wait(self.cleanup_interval):
            try:
                with self.lock:
                    expired_keys = [k for k, v in self.store.items() if self._is_expired(v)]
                    for k in expired_keys:
                        del self.store[k]
                    self.expirations += len(expired_keys)
                if expired_keys:
                    logger.debug("Expired %d keys", len(expired_keys))
            except Exception:
                logger.exception("Error in background cleanup")

    def clear(self) -> None:
        """Drop all entries and reset counters"""
        with self.lock:
            self.store.clear()
            self.expirations = 0
            self.rejected_writes = 0

    def stop(self) -> None:
        """Stop the background cleanup thread"""
        self._stop_event.set()
        if self.cleaner_thread is not None and self.cleaner_thread.is_alive():
            self.cleaner_thread.join(timeout=5)
