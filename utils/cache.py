"""Lightweight in-memory TTL cache for the budget flow tools.

Provides a TTLCache class used to memoize directory listings of the
published dataset.  ``get_or_set`` is read-through and single-flight: when
several threads miss on the same key at once, exactly one of them runs the
factory and the rest wait for (and share) its value.
"""

import threading
import time
from typing import Any, Callable


class TTLCache:
    """Thread-safe in-memory cache with time-to-live (TTL) expiry.

    Entries expire after ``ttl_seconds`` seconds. A maximum of ``maxsize``
    entries are retained; when the cache is full the oldest entry is evicted.

    Usage::

        cache = TTLCache(maxsize=128, ttl_seconds=300)
        cache.set("provincial", ["alberta", "ontario"])
        value = cache.get("provincial")  # returns list or None if expired/missing
        value = cache.get_or_set("municipal", lambda: list_dir("municipal"))
    """

    def __init__(self, maxsize: int = 128, ttl_seconds: float = 300.0) -> None:
        """Initialise the cache.

        Args:
            maxsize: Maximum number of entries to store (default 128).
            ttl_seconds: Seconds before a cached entry expires (default 300).
        """
        self._maxsize = maxsize
        self._ttl = ttl_seconds
        # Maps key -> (value, expires_at)
        self._store: dict[Any, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        # One lock per key currently being computed by get_or_set
        self._inflight: dict[Any, threading.Lock] = {}
        self._hits = 0
        self._misses = 0

    def _lookup(self, key: Any) -> tuple[bool, Any]:
        """Return (found, value); caller must hold ``self._lock``."""
        entry = self._store.get(key)
        if entry is None:
            return False, None
        value, expires_at = entry
        if time.monotonic() >= expires_at:
            del self._store[key]
            return False, None
        return True, value

    def get(self, key: Any) -> Any | None:
        """Return cached value for *key*, or ``None`` if absent or expired.

        Args:
            key: Cache key (must be hashable).

        Returns:
            Cached value, or ``None``.
        """
        with self._lock:
            found, value = self._lookup(key)
            if found:
                self._hits += 1
                return value
            self._misses += 1
            return None

    def set(self, key: Any, value: Any) -> None:
        """Store *value* under *key* with the configured TTL.

        If the cache is full, the entry with the earliest expiry is evicted
        before inserting the new one.

        Args:
            key: Cache key (must be hashable).
            value: Value to cache (any type).
        """
        with self._lock:
            self._store_locked(key, value)

    def _store_locked(self, key: Any, value: Any) -> None:
        expires_at = time.monotonic() + self._ttl
        if key not in self._store and len(self._store) >= self._maxsize:
            # Evict the entry that expires soonest
            oldest_key = min(self._store, key=lambda k: self._store[k][1])
            del self._store[oldest_key]
        self._store[key] = (value, expires_at)

    def get_or_set(self, key: Any, factory: Callable[[], Any]) -> Any:
        """Return the cached value for *key*, computing it once on a miss.

        Concurrent callers that miss on the same key converge on a single
        call to *factory*.  Values are cached even when they are ``None`` or
        empty.  If *factory* raises, nothing is cached and the exception
        propagates to the caller that ran it; waiting callers retry.

        Args:
            key: Cache key (must be hashable).
            factory: Zero-argument callable producing the value.

        Returns:
            The cached or freshly computed value.
        """
        with self._lock:
            found, value = self._lookup(key)
            if found:
                self._hits += 1
                return value
            key_lock = self._inflight.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                found, value = self._lookup(key)
                if found:
                    self._hits += 1
                    return value
                self._misses += 1
            try:
                value = factory()
                with self._lock:
                    self._store_locked(key, value)
                return value
            finally:
                with self._lock:
                    if self._inflight.get(key) is key_lock:
                        del self._inflight[key]

    def clear(self) -> None:
        """Remove all entries from the cache."""
        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> dict[str, int]:
        """Return cache statistics.

        Returns:
            Dict with keys ``hits``, ``misses``, and ``size``.
        """
        with self._lock:
            # Purge expired entries before reporting size
            now = time.monotonic()
            expired = [k for k, (_, exp) in self._store.items() if now > exp]
            for k in expired:
                del self._store[k]
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._store),
            }

    def delete(self, key: Any) -> None:
        """Remove a single entry from the cache.

        Args:
            key: Cache key to remove (no-op if not present).
        """
        with self._lock:
            self._store.pop(key, None)
