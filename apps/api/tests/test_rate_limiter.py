"""
Fixed-window rate limiting on the /trends endpoints.
"""
import time

from fastapi.testclient import TestClient

from download_trends.main import app
from download_trends.utils.rate_limiter import DEFAULT_LIMITS, RateLimiter

client = TestClient(app)


def test_analysis_under_limit_returns_200(rate_limit_enabled):
    for _ in range(5):
        r = client.post("/trends/analysis", json={"series": [1, 2, 3]})
        assert r.status_code == 200


def test_analysis_exceeds_limit_returns_429(rate_limit_enabled):
    responses = [
        client.post("/trends/analysis", json={"series": [1, 2, 3]})
        for _ in range(DEFAULT_LIMITS["analysis"] + 1)
    ]
    failed = [r for r in responses if r.status_code == 429]
    assert len(failed) >= 1
    assert "Retry-After" in failed[0].headers
    detail = failed[0].json()["detail"]
    assert detail["detail"] == "Rate limit exceeded"
    assert detail["group"] == "analysis"
    assert detail["retry_after_seconds"] >= 1


def test_limit_read_from_environment(rate_limit_enabled, monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_ANALYSIS", "2")
    codes = [client.post("/trends/analysis", json={"series": [1]}).status_code for _ in range(3)]
    assert codes == [200, 200, 429]


def test_disabled_by_default():
    for _ in range(DEFAULT_LIMITS["analysis"] + 5):
        assert client.post("/trends/analysis", json={"series": [7]}).status_code == 200


def test_groups_counted_separately():
    limiter = RateLimiter(limits={"analysis": 1, "other": 1})
    assert limiter.check("c1", "analysis") == (True, 0)
    assert limiter.check("c1", "other") == (True, 0)
    allowed, retry_after = limiter.check("c1", "analysis")
    assert allowed is False
    assert retry_after >= 1
    assert limiter.check("c2", "analysis") == (True, 0)
    stats = limiter.stats()
    assert stats["blocked"] == {"analysis": 1}
    assert stats["allowed"]["analysis"] == 2


def test_window_resets():
    limiter = RateLimiter(limits={"analysis": 1}, window_seconds=0.05)
    assert limiter.check("c", "analysis")[0] is True
    assert limiter.check("c", "analysis")[0] is False
    time.sleep(0.06)
    assert limiter.check("c", "analysis")[0] is True


def test_non_positive_limit_disables_group():
    limiter = RateLimiter(limits={"analysis": 0, "other": 5})
    for _ in range(10):
        assert limiter.check("c", "analysis") == (True, 0)
