"""
In-memory response cache (LRU + TTL) for analysis endpoints.
JSON-serializable payloads only; thread-safe.
"""
import hashlib
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

# Bump to invalidate all response cache entries.
RESPONSE_CACHE_VERSION = "v1"


@dataclass
class ResponseCacheEntry:
    value: Any
    created_at: float
    ttl_seconds: float

    def expired(self, now: float) -> bool:
        return self.ttl_seconds > 0 and (now - self.created_at) > self.ttl_seconds


class ResponseCache:
    """
    Response payloads keyed by string. Least recently used entries are evicted past
    max_items; expired entries are dropped on access and on cleanup_expired().
    """

    def __init__(self, max_items: int = 256):
        self._max_items = max_items
        self._store: OrderedDict[str, ResponseCacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.expired(time.monotonic()):
                del self._store[key]
                self._evictions += 1
                self._misses += 1
                return None
            self._store.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        entry = ResponseCacheEntry(value=value, created_at=time.monotonic(), ttl_seconds=ttl_seconds)
        with self._lock:
            self._store[key] = entry
            self._store.move_to_end(key)
            while len(self._store) > self._max_items:
                self._store.popitem(last=False)
                self._evictions += 1

    def get_or_compute(self, key: str, ttl_seconds: float, compute: Callable[[], Any]) -> tuple[Any, bool]:
        """Return (value, hit). On a miss compute() runs outside the lock and its result is stored."""
        cached = self.get(key)
        if cached is not None:
            return cached, True
        value = compute()
        self.set(key, value, ttl_seconds)
        return value, False

    def cleanup_expired(self) -> int:
        now = time.monotonic()
        with self._lock:
            stale = [k for k, e in self._store.items() if e.expired(now)]
            for k in stale:
                del self._store[k]
                self._evictions += 1
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "keys_count": len(self._store),
                "max_items": self._max_items,
            }


_response_cache: ResponseCache | None = None
_response_cache_lock = threading.Lock()


def get_response_cache(max_items: int = 256) -> ResponseCache:
    global _response_cache
    with _response_cache_lock:
        if _response_cache is None:
            _response_cache = ResponseCache(max_items=max_items)
        return _response_cache


def make_response_key(
    endpoint_name: str,
    request_signature: str,
    response_version: str = RESPONSE_CACHE_VERSION,
) -> str:
    """Deterministic cache key: resp:<endpoint>:<sha256 of signature and version>."""
    raw = "|".join([f"resp:{endpoint_name}", request_signature, response_version])
    h = hashlib.sha256(raw.encode("utf-8")).hexdigest()
    return f"resp:{endpoint_name}:{h}"
