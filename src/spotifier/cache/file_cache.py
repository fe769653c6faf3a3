"""
File Cache Module - JSON-file TTL cache with atomic writes.
===========================================================

Each entry lives in its own file ``<cache_dir>/<safe key>.json``::

    {"data": "<value>", "expires_at": 1767225600.25}

Writes go through a temporary file that is renamed into place, so a
crash mid-write never exposes a partial entry.
"""

import json
import re
import time
from pathlib import Path
from typing import Optional

from spotifier.cache.base import CacheBackend
from spotifier.shared.logging import get_logger
from spotifier.shared.utils import atomic_write_text, compute_hash, ensure_directory

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class FileCache(CacheBackend):
    """
    Filesystem cache backend.

    Example:
        >>> cache = FileCache(Path("data/cache"))
        >>> cache.set("courses", "[]", ttl_seconds=3600)
        True
        >>> cache.get("courses")
        '[]'
    """

    def __init__(self, cache_dir: Path):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory for entries; created lazily on first set()
        """
        self.cache_dir = Path(cache_dir)

    @property
    def backend_name(self) -> str:
        return "file"

    def _get_path(self, key: str) -> Path:
        """Map a key to a file path that is safe on every filesystem."""
        safe = _UNSAFE_CHARS.sub("_", key)
        if safe != key or not safe:
            safe = f"{safe}-{compute_hash(key)[:12]}"
        return self.cache_dir / f"{safe}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._get_path(key)
        if not path.exists():
            return None

        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
            data = entry["data"]
            expires_at = float(entry["expires_at"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable cache entry {path.name}: {e}")
            return None

        if expires_at < time.time():
            logger.debug(f"Cache expired: {key}")
            try:
                path.unlink()
            except OSError:
                pass
            return None

        logger.debug(f"Cache hit: {key}")
        return data

    def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        entry = {"data": value, "expires_at": time.time() + ttl_seconds}
        try:
            ensure_directory(self.cache_dir)
            atomic_write_text(self._get_path(key), json.dumps(entry, ensure_ascii=False))
        except OSError as e:
            logger.warning(f"Failed to write cache entry {key}: {e}")
            return False
        return True

    def delete(self, key: str) -> bool:
        path = self._get_path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete cache entry {key}: {e}")
            return False
        return True

    def clear(self) -> int:
        """
        Delete every entry in the cache directory.

        Returns:
            Number of files deleted
        """
        if not self.cache_dir.exists():
            return 0

        deleted = 0
        for entry_file in self.cache_dir.glob("*.json"):
            entry_file.unlink()
            deleted += 1

        logger.info(f"Cleared {deleted} cached entries")
        return deleted
