"""
Cache Module - TTL key-value stores.
====================================

- base: CacheBackend interface, key namespacing and backend factory
- file_cache: JSON files with atomic writes (default backend)
- memory_cache: in-process dictionary
"""

from spotifier.cache.base import CacheBackend, get_cache_backend, namespaced_key
from spotifier.cache.file_cache import FileCache
from spotifier.cache.memory_cache import MemoryCache

__all__ = [
    "CacheBackend",
    "get_cache_backend",
    "namespaced_key",
    "FileCache",
    "MemoryCache",
]
