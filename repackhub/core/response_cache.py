"""
Response Cache
Time-boxed cache for aggregated responses and proxied images, plus the
stale-while-revalidate shell the endpoints read through.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from collections import OrderedDict
import threading
import time

from .errors import AggregationError

CACHE_STATUS_HIT = "HIT"
CACHE_STATUS_MISS = "MISS"
CACHE_STATUS_STALE = "STALE-WHILE-REVALIDATE"
CACHE_STATUS_STALE_FALLBACK = "STALE-FALLBACK"

RECENT_UPLOADS_KEY = "recent-uploads-complete"


@dataclass
class CacheEntry:
    payload: Any
    cached_at: float  # epoch seconds, the x-cache-date of the stored response
    max_age: float

    def age(self, now: Optional[float] = None) -> float:
        now = time.time() if now is None else now
        return max(0.0, now - self.cached_at)


class ResponseCache:
    """LRU cache whose entries expire after their own max-age"""

    def __init__(self, max_size: int = 500, clock: Callable[[], float] = time.time):
        self.max_size = max_size
        self._clock = clock
        self._cache: OrderedDict = OrderedDict()
        self._lock = threading.RLock()

    def match(self, key: str) -> Optional[CacheEntry]:
        """Get the entry if it has not outlived its max-age"""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if entry.age(self._clock()) >= entry.max_age:
                del self._cache[key]
                return None
            self._cache.move_to_end(key)
            return entry

    def put(self, key: str, payload: Any, max_age: float) -> CacheEntry:
        with self._lock:
            entry = CacheEntry(payload=payload, cached_at=self._clock(), max_age=float(max_age))
            self._cache[key] = entry
            self._cache.move_to_end(key)
            while len(self._cache) > self.max_size:
                self._cache.popitem(last=False)
            return entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self):
        with self._lock:
            self._cache.clear()


@dataclass
class CachedResponse:
    payload: Dict[str, Any]
    cache_status: Optional[str]  # None when nothing could be served
    status_code: int = 200


class CacheShell:
    """
    Read-through wrapper used by the recent and search endpoints.
    Fresh entries are served as HIT; entries past the TTL but inside the stale
    window are served immediately while a background refresh runs; older
    entries are kept only as a fallback for when a synchronous refetch fails.
    """

    def __init__(self, settings_manager, cache: ResponseCache, clock: Callable[[], float] = time.time):
        self.settings = settings_manager
        self.cache = cache
        self._clock = clock
        self._refresh_pool = ThreadPoolExecutor(max_workers=2)
        self._refreshing = set()
        self._refresh_lock = threading.Lock()

    def key(self, name: str) -> str:
        return f"{self.settings.get('cache_prefix', 'game-search-v2:')}{name}"

    def _ttl(self) -> float:
        return float(self.settings.get("cache_ttl_seconds", 3600) or 3600)

    def _stale_window(self) -> float:
        return float(self.settings.get("cache_stale_seconds", 7200) or 7200)

    def _retention(self) -> float:
        return max(self._stale_window(), float(self.settings.get("cache_retention_seconds", 86400) or 86400))

    def _store(self, key: str, payload: Dict[str, Any]) -> None:
        try:
            self.cache.put(key, payload, max_age=self._retention())
        except Exception as e:
            print(f"Cache store error ({key}): {e}")

    def _lookup(self, key: str) -> Optional[CacheEntry]:
        try:
            return self.cache.match(key)
        except Exception as e:
            print(f"Cache read error ({key}): {e}")
            return None

    def _revalidate(self, key: str, producer: Callable[[], Dict[str, Any]]) -> None:
        with self._refresh_lock:
            if key in self._refreshing:
                return
            self._refreshing.add(key)

        def run():
            try:
                self._store(key, producer())
            except Exception as e:
                print(f"Background revalidation error ({key}): {e}")
            finally:
                with self._refresh_lock:
                    self._refreshing.discard(key)

        self._refresh_pool.submit(run)

    def serve(self, key: str, producer: Callable[[], Dict[str, Any]], operation: str) -> CachedResponse:
        """
        Serve key from cache or producer.

        Args:
            key: full cache key (see key())
            producer: builds a fresh payload; may raise
            operation: human label used in the error message, e.g. "recent uploads"
        """
        entry = self._lookup(key)
        if entry is not None:
            age = entry.age(self._clock())
            if age < self._ttl():
                return CachedResponse(dict(entry.payload, cached=True), CACHE_STATUS_HIT)
            if age < self._stale_window():
                self._revalidate(key, producer)
                return CachedResponse(dict(entry.payload, cached=True, stale=True), CACHE_STATUS_STALE)

        try:
            payload = producer()
        except Exception as e:
            return self.fallback(key, operation, e)
        self._store(key, payload)
        return CachedResponse(payload, CACHE_STATUS_MISS)

    def fallback(self, key: str, operation: str, error: Exception) -> CachedResponse:
        """Stale copy when one exists, else a 500 envelope."""
        print(f"Error fetching {operation}: {error}")
        entry = self._lookup(key)
        if entry is not None:
            payload = dict(entry.payload)
            payload.update({
                "cached": True,
                "stale": True,
                "error": f"Fresh data fetch failed: {error}. Returning stale data.",
            })
            return CachedResponse(payload, CACHE_STATUS_STALE_FALLBACK)

        reason = str(error) if isinstance(error, AggregationError) else f"{type(error).__name__}: {error}"
        return CachedResponse(
            {
                "success": False,
                "error": f"Failed to fetch {operation} from all sources. Reason: {reason}",
                "cached": False,
            },
            None,
            status_code=500,
        )

    def invalidate(self, key: str) -> bool:
        return self.cache.delete(key)
