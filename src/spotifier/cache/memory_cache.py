"""
Memory Cache Module - In-process TTL cache.
===========================================

Same contract as the file cache, kept in a dictionary guarded by a lock
so that several client instances in one process can share it.
"""

import threading
import time
from typing import Optional

from spotifier.cache.base import CacheBackend


class MemoryCache(CacheBackend):
    """In-memory cache backend; entries vanish with the process."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "memory"

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at < time.time():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        with self._lock:
            self._entries[key] = (value, time.time() + ttl_seconds)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            self._entries.pop(key, None)
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
