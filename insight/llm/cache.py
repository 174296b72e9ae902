"""
Response Cache

In-memory LRU cache with per-entry TTL for analysis results, keyed by a
request fingerprint. Safe to share between threads.

Cache keys are generated from:
- Conversation messages (role, content, name), in order
- Model identifier
- Output-affecting options (temperature, max_tokens, format, strict_format)

Two requests whose prompts and output-affecting options match always
produce the same key, regardless of dictionary key order.
"""

import json
import time
import hashlib
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from insight.llm.providers.base import Message, RequestOptions


logger = logging.getLogger(__name__)


class _Miss:
    """Sentinel type for cache misses (None is a legitimate cached value)."""

    def __repr__(self):
        return "MISS"

    def __bool__(self):
        return False


MISS = _Miss()


def fingerprint(messages: Sequence[Message], options: RequestOptions, model: Optional[str] = None) -> str:
    """Generate the cache key for a request.

    Args:
        messages: Ordered conversation
        options: Request options
        model: Resolved model (defaults to options.model)

    Returns:
        SHA256 hex digest
    """
    key_data = {
        "messages": [
            {"role": m.role, "content": m.content, "name": m.name}
            for m in messages
        ],
        "model": model if model is not None else options.model,
        "temperature": options.temperature,
        "max_tokens": options.max_tokens,
        "format": options.format,
        "strict_format": bool(options.strict_format),
    }

    key_json = json.dumps(key_data, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(key_json.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    """Cached value with its absolute expiry on the cache clock."""
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheManager:
    """Thread-safe LRU cache with TTL expiration.

    Example:
        >>> cache = CacheManager(max_entries=100, ttl_seconds=60)
        >>> key = fingerprint(messages, options)
        >>> cached = cache.get(key)
        >>> if cached is MISS:
        ...     cached = expensive_call()
        ...     cache.set(key, cached)
    """

    def __init__(
        self,
        max_entries: int = 1000,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize the cache.

        Args:
            max_entries: Capacity; inserting beyond it evicts the LRU entry
            ttl_seconds: Default entry lifetime
            clock: Time source (injectable for tests)
        """
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Any:
        """Retrieve a cached value.

        Returns:
            The cached value, or MISS if absent or expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return MISS

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                logger.debug(f"Cache entry expired: {key[:12]}")
                return MISS

            self._entries.move_to_end(key)
            self._hits += 1
            logger.debug(f"Cache hit: {key[:12]}")
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        """Store a value, evicting the least recently used entry when full.

        Args:
            key: Request fingerprint
            value: Value to cache
            ttl: Lifetime in seconds (defaults to the manager TTL)
        """
        ttl = self.ttl_seconds if ttl is None else ttl
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug(f"Cache evicted LRU entry: {evicted[:12]}")

            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def purge_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def clear(self) -> int:
        """Clear all cache entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {count} cache entries")
        return count

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl_seconds,
                "hit_rate": self._hits / lookups if lookups else 0.0,
            }
