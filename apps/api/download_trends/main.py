import os
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from download_trends.middleware.request_id import RequestIdMiddleware
from download_trends.routers import trends
from download_trends.utils.observability import configure_logging
from download_trends.utils.rate_limiter import get_limiter
from download_trends.utils.response_cache import get_response_cache
from download_trends.utils.timing_middleware import TimingMiddleware

configure_logging()

_start_time = time.monotonic()

app = FastAPI(title="Download Trends API")
app.include_router(trends.router)

_cors_origins_raw = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000",
)
_cors_origins = [o.strip() for o in _cors_origins_raw.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TimingMiddleware)
app.add_middleware(RequestIdMiddleware)  # outermost, runs first


def _debug_enabled() -> bool:
    return os.getenv("DEBUG", "").lower() in ("1", "true", "yes")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/internal/cache")
def internal_cache():
    """Response cache stats. Guarded by DEBUG=true."""
    if not _debug_enabled():
        return {"error": "disabled", "message": "Set DEBUG=true to enable"}
    return {"response_cache": get_response_cache().stats()}


@app.get("/internal/metrics")
def internal_metrics():
    """Uptime, cache and rate limiter counters. Guarded by DEBUG=true."""
    if not _debug_enabled():
        return {"error": "disabled", "message": "Set DEBUG=true to enable"}
    return {
        "uptime_seconds": round(time.monotonic() - _start_time, 2),
        "response_cache": get_response_cache().stats(),
        "rate_limiter": get_limiter().stats(),
    }
