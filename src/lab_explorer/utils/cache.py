"""
Session Fetch Cache

Holds everything fetched or derived while a user explores the graph, so that
re-expanding a node never repeats a remote call.

Features:
- Keys are semantic scopes (category, researcher id, project type), not node ids
- Overwrite-per-key semantics, no merging of values
- No TTL and no eviction: entries live until the session is discarded
- Hit/miss statistics
"""

import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value and when it was written."""
    value: Any
    created_at: float
    writes: int = 1


class FetchCache:
    """
    Session-scoped key/value store for fetched and derived collections.

    Example:
        cache = FetchCache()

        cache.put("projects", projects)
        projects = cache.get("projects")   # None when absent
    """

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

        # Stats
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value from the cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if the key was never written
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def put(self, key: str, value: Any):
        """
        Store a value, replacing whatever the key held before.

        Args:
            key: Cache key
            value: Value to cache
        """
        with self._lock:
            previous = self._entries.get(key)
            writes = previous.writes + 1 if previous else 1
            self._entries[key] = CacheEntry(
                value=value, created_at=time.time(), writes=writes
            )
            if previous:
                logger.debug(f"Cache key recomputed: {key} (write #{writes})")

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._entries))

    def clear(self):
        """Drop all entries (a fresh session)."""
        with self._lock:
            self._entries.clear()
            logger.info("Fetch cache cleared")

    @property
    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total = self._hits + self._misses
            hit_rate = self._hits / total if total > 0 else 0

            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": f"{hit_rate:.1%}",
            }


def make_cache_key(prefix: str, *args, **kwargs) -> str:
    """
    Create a cache key from a scope prefix and its arguments.

    Args:
        prefix: Scope prefix (e.g., "researchers", "partners")
        *args: Positional scope parts
        **kwargs: Keyword scope parts

    Returns:
        Deterministic cache key string
    """
    key_parts = [prefix]
    key_parts.extend(str(a) for a in args if a is not None)
    key_parts.extend(f"{k}={v}" for k, v in sorted(kwargs.items()))

    key_string = ":".join(key_parts)

    # Long phrase disjunctions hash down to a fixed size
    if len(key_string) > 200:
        key_hash = hashlib.md5(key_string.encode()).hexdigest()
        return f"{prefix}:{key_hash}"

    return key_string
