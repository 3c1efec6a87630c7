"""
In-memory rate limiting (fixed-window counter per client and endpoint group).
Thread-safe; configured from RATE_LIMIT_* environment variables.
"""
import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, Request

from download_trends.utils.observability import log_event

# Requests per minute per (client, group).
DEFAULT_LIMITS: dict[str, int] = {
    "analysis": 60,
    "other": 120,
}
WINDOW_SECONDS = 60.0

logger = logging.getLogger(__name__)


@dataclass
class WindowEntry:
    count: int
    window_start: float


class RateLimiter:
    """Fixed-window counter keyed by (client_id, group). Stale windows are purged periodically."""

    def __init__(self, limits: dict[str, int] | None = None, window_seconds: float = WINDOW_SECONDS):
        self._limits = limits or DEFAULT_LIMITS.copy()
        self._window_seconds = window_seconds
        self._purge_after_seconds = window_seconds * 2
        self._store: dict[tuple[str, str], WindowEntry] = {}
        self._lock = threading.Lock()
        self._last_purge = time.monotonic()
        self._allowed: dict[str, int] = {}
        self._blocked: dict[str, int] = {}

    def _purge_if_needed(self, now: float) -> None:
        if now - self._last_purge < self._purge_after_seconds:
            return
        self._last_purge = now
        stale = [k for k, v in self._store.items() if now - v.window_start > self._purge_after_seconds]
        for k in stale:
            del self._store[k]

    def check(self, client_id: str, group: str) -> tuple[bool, int]:
        """
        Returns (allowed, retry_after_seconds); retry_after is 0 when allowed.
        A limit <= 0 disables the group.
        """
        limit = self._limits.get(group, self._limits.get("other", DEFAULT_LIMITS["other"]))
        if limit <= 0:
            return True, 0
        key = (client_id, group)
        now = time.monotonic()
        with self._lock:
            self._purge_if_needed(now)
            entry = self._store.get(key)
            if entry is None or now - entry.window_start >= self._window_seconds:
                self._store[key] = WindowEntry(count=1, window_start=now)
                self._allowed[group] = self._allowed.get(group, 0) + 1
                return True, 0
            entry.count += 1
            if entry.count <= limit:
                self._allowed[group] = self._allowed.get(group, 0) + 1
                return True, 0
            self._blocked[group] = self._blocked.get(group, 0) + 1
            retry_after = max(1, int(self._window_seconds - (now - entry.window_start)))
            return False, retry_after

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "limits": dict(self._limits),
                "allowed": dict(self._allowed),
                "blocked": dict(self._blocked),
            }


_limiter: RateLimiter | None = None
_limiter_lock = threading.Lock()


def _limits_from_env() -> dict[str, int]:
    limits = DEFAULT_LIMITS.copy()
    for group in limits:
        raw = os.getenv(f"RATE_LIMIT_{group.upper()}")
        if not raw:
            continue
        try:
            limits[group] = int(raw)
        except ValueError:
            logger.warning("ignoring non-integer RATE_LIMIT_%s=%r", group.upper(), raw)
    return limits


def get_limiter() -> RateLimiter:
    global _limiter
    with _limiter_lock:
        if _limiter is None:
            _limiter = RateLimiter(limits=_limits_from_env())
        return _limiter


def reset_limiter() -> None:
    """Drop the process-wide limiter so the next get_limiter() re-reads the environment."""
    global _limiter
    with _limiter_lock:
        _limiter = None


def _client_id(request: Request) -> str:
    if os.getenv("DEBUG", "").lower() in ("1", "true", "yes"):
        xff = request.headers.get("X-Forwarded-For")
        if xff:
            return xff.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def rate_limit(group: str):
    """FastAPI dependency raising HTTP 429 past the group limit. Skipped when RATE_LIMIT_DISABLED=true."""

    def _dependency(request: Request):
        if os.getenv("RATE_LIMIT_DISABLED", "").lower() in ("1", "true", "yes"):
            return None
        client_id = _client_id(request)
        allowed, retry_after = get_limiter().check(client_id, group)
        if allowed:
            return None
        request.state.rate_limited = True
        request.state.retry_after_seconds = retry_after
        log_event(
            logger,
            "rate_limited",
            level=logging.WARNING,
            request_id=getattr(request.state, "request_id", None),
            group=group,
            client_ip=client_id,
            retry_after_seconds=retry_after,
        )
        raise HTTPException(
            status_code=429,
            detail={
                "detail": "Rate limit exceeded",
                "group": group,
                "retry_after_seconds": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )

    return _dependency
