"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

Injectable cache for parsed tracks.

The engine never owns process-wide state: hosts pass a cache implementing
`TrackCache` (in-memory, LRU, distributed). `InMemoryTrackCache` is the
default single-process backing store.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from streamlit.logger import get_logger

logger = get_logger(__name__)


class TrackCache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl: float) -> None: ...


@dataclass
class InMemoryTrackCache:
    """TTL cache keyed by source URL, with single-flight loading."""

    clock: Callable[[], float] = time.monotonic
    _entries: Dict[str, Tuple[float, Any]] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _key_locks: Dict[str, threading.Lock] = field(default_factory=dict, init=False, repr=False)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self.clock() >= expires_at:
                del self._entries[key]
                logger.debug("Cache entry expired: %s", key)
                return None
            return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._entries[key] = (self.clock() + ttl, value)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_or_load(self, key: str, loader: Callable[[], Any], ttl: float) -> Any:
        """Return the cached value or load it once, even under concurrent callers.

        Callers of the same key wait on a per-key lock; the first one loads and
        the rest read the freshly cached value. Loader errors propagate and
        nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        try:
            with key_lock:
                cached = self.get(key)
                if cached is not None:
                    return cached
                logger.debug("Cache miss, loading: %s", key)
                value = loader()
                self.set(key, value, ttl)
                return value
        finally:
            with self._lock:
                # Waiters still hold their reference; later callers hit the cache.
                if self._key_locks.get(key) is key_lock:
                    del self._key_locks[key]
