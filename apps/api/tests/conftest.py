"""
Pytest configuration. Rate limiting is disabled by default so endpoint tests are not blocked;
test_rate_limiter.py re-enables it through the rate_limit_enabled fixture.
"""
import os

import pytest

from download_trends.utils.rate_limiter import reset_limiter
from download_trends.utils.response_cache import get_response_cache


@pytest.fixture(scope="session", autouse=True)
def _disable_rate_limit_for_tests():
    os.environ["RATE_LIMIT_DISABLED"] = "true"
    yield
    os.environ.pop("RATE_LIMIT_DISABLED", None)


@pytest.fixture(autouse=True)
def _fresh_response_cache():
    """Each test starts with an empty process-wide response cache."""
    get_response_cache().clear()
    yield


@pytest.fixture
def rate_limit_enabled(monkeypatch):
    """Re-enable rate limiting with a fresh limiter (limits re-read from the environment)."""
    monkeypatch.delitem(os.environ, "RATE_LIMIT_DISABLED", raising=False)
    reset_limiter()
    yield
    reset_limiter()
