"""
In-process result cache and invalidation bus.

Read endpoints cache stored snapshots and project aggregates by key.
A successful save publishes the keys it made stale; the cache is
subscribed to the bus and drops them. Invalidation is idempotent.
"""

import logging
import threading
from typing import Callable, Iterable, List

logger = logging.getLogger(__name__)


def item_key_for(item_key: str) -> str:
    return f"calc:item:{item_key}"


def aggregate_key_for(parent_key: str) -> str:
    return f"calc:aggregate:{parent_key}"


class ResultCache:

    def __init__(self):
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key: str):
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value):
        with self._lock:
            self._entries[key] = value

    def invalidate(self, keys: Iterable[str]) -> int:
        """Drop keys. Returns how many were actually cached."""
        dropped = 0
        with self._lock:
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    dropped += 1
        return dropped

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries


class InvalidationBus:

    def __init__(self):
        self._subscribers: List[Callable[[List[str]], None]] = []

    def subscribe(self, callback: Callable[[List[str]], None]):
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def publish(self, keys: Iterable[str]):
        keys = list(keys)
        for callback in self._subscribers:
            try:
                callback(keys)
            except Exception as e:
                # A failing subscriber must not undo a committed save
                logger.warning("Invalidation subscriber failed for %s: %s", keys, e)
        logger.debug("Invalidated %d keys: %s", len(keys), keys)


result_cache = ResultCache()
invalidation_bus = InvalidationBus()
invalidation_bus.subscribe(result_cache.invalidate)
