"""
Cache Base Module - Abstract interface for TTL cache backends.
==============================================================

Defines the three-operation contract every cache backend satisfies, so
the client can store course lists and session cookies without knowing
whether they land on disk, in memory or in an external store.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from spotifier.shared.logging import get_logger

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Abstract Base Class
# ─────────────────────────────────────────────────────────────────────────────


class CacheBackend(ABC):
    """
    Abstract base class for TTL key-value stores.

    Implementations must provide:
    - get(): Return the value, or None when missing or expired
    - set(): Store a value with a time-to-live in seconds
    - delete(): Remove a value

    ``set`` and ``delete`` report failure by returning False instead of
    raising; callers treat the cache as best-effort.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Get the backend identifier."""
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Retrieve a value.

        Args:
            key: Cache key

        Returns:
            Stored string, or None if missing or expired
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        """
        Store a value.

        Args:
            key: Cache key
            value: String content to store
            ttl_seconds: Seconds before the entry expires

        Returns:
            True on success
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a value. Deleting a missing key succeeds.

        Returns:
            True on success
        """
        pass


def namespaced_key(prefix: Optional[str], key: str) -> str:
    """
    Prefix a cache key with a caller namespace.

    Example:
        >>> namespaced_key("2101234", "courses")
        '2101234:courses'
    """
    if prefix:
        return f"{prefix}:{key}"
    return key


# ─────────────────────────────────────────────────────────────────────────────
# Backend Factory
# ─────────────────────────────────────────────────────────────────────────────


def get_cache_backend(
    backend_name: Optional[str] = None,
    cache_dir: Optional[Path] = None,
) -> CacheBackend:
    """
    Create a cache backend by name.

    Args:
        backend_name: "file" or "memory". If None, uses config.
        cache_dir: Directory for the file backend. If None, uses config.

    Returns:
        CacheBackend instance

    Raises:
        ValueError: If backend name is invalid
    """
    if backend_name is None or (backend_name == "file" and cache_dir is None):
        from spotifier.shared.config import get_settings

        settings = get_settings()
        backend_name = backend_name or settings.cache.backend
        if cache_dir is None:
            cache_dir = settings.resolved_paths.cache_dir

    backend_name = backend_name.lower().strip()

    backend: CacheBackend

    if backend_name == "file":
        from spotifier.cache.file_cache import FileCache
        backend = FileCache(cache_dir)

    elif backend_name == "memory":
        from spotifier.cache.memory_cache import MemoryCache
        backend = MemoryCache()

    else:
        raise ValueError(
            f"Unknown cache backend: {backend_name}. "
            f"Valid options: file, memory"
        )

    logger.debug(f"Initialized cache backend: {backend.backend_name}")
    return backend
