"""
Thread-safe read-through cache keyed by language code.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

import structlog

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

logger = structlog.get_logger(__name__)


class ReadThroughCache(Generic[K, V]):
    """
    Lazily populates values on first access.

    Only one thread loads a given key; concurrent readers of the same key
    wait on that key's lock and then see the loaded value. A loader returning
    ``None`` marks the key as permanently unavailable: ``missing`` is cached
    and returned from then on without calling the loader again. A loader
    that raises caches nothing, so the next access retries.
    """

    def __init__(self, loader: Callable[[K], Optional[V]], missing: V, name: str = "cache") -> None:
        self._loader = loader
        self._missing = missing
        self._name = name
        self._values: Dict[K, V] = {}
        self._key_locks: Dict[K, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: K) -> threading.Lock:
        with self._guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def get(self, key: K) -> V:
        try:
            return self._values[key]
        except KeyError:
            pass

        with self._lock_for(key):
            if key in self._values:
                return self._values[key]
            value = self._loader(key)
            if value is None:
                logger.info("Resource unavailable, caching empty result", cache=self._name, key=key)
                value = self._missing
            self._values[key] = value
            return value

    def is_missing(self, key: K) -> bool:
        """True once ``key`` has been loaded and found unavailable."""
        return key in self._values and self._values[key] is self._missing

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def clear(self) -> None:
        with self._guard:
            self._values.clear()
            self._key_locks.clear()
