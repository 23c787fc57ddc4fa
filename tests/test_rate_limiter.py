"""
Tests for the per-route request limiters.
"""
import pytest

from pacigest.config import settings
from pacigest.core.middleware import RateLimiter, login_limiter
from pacigest.exceptions import RateLimitError


class FakeTimer:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value


def test_limiter_blocks_after_budget_and_recovers():
    timer = FakeTimer()
    limiter = RateLimiter("test", limit=2, window_seconds=60, code="SLOW_DOWN", timer=timer)

    limiter.hit("10.0.0.1")
    limiter.hit("10.0.0.1")
    with pytest.raises(RateLimitError) as excinfo:
        limiter.hit("10.0.0.1")
    assert excinfo.value.code == "SLOW_DOWN"

    # Other clients have their own budget
    limiter.hit("10.0.0.2")

    timer.value += 60
    limiter.hit("10.0.0.1")


def test_limiter_forgets_idle_clients():
    timer = FakeTimer()
    limiter = RateLimiter("test", limit=5, window_seconds=60, timer=timer)
    for index in range(3):
        limiter.hit(f"10.0.0.{index}")
    assert len(limiter.requests) == 3

    timer.value += 60
    limiter.hit("10.0.0.9")
    assert list(limiter.requests) == ["10.0.0.9"]


def test_limiter_reset():
    limiter = RateLimiter("test", limit=1, window_seconds=60)
    limiter.hit("ip")
    limiter.reset()
    limiter.hit("ip")


def test_login_route_is_limited(client, monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    login_limiter.reset()
    try:
        payload = {"email": "ghost@example.com", "password": "whatever1"}
        statuses = [client.post("/api/auth/login", json=payload).status_code for _ in range(settings.login_rate_limit + 1)]
    finally:
        login_limiter.reset()

    assert statuses[:-1] == [401] * settings.login_rate_limit
    assert statuses[-1] == 429


def test_limiter_is_off_when_disabled(client):
    payload = {"email": "ghost@example.com", "password": "whatever1"}
    statuses = {client.post("/api/auth/login", json=payload).status_code for _ in range(settings.login_rate_limit + 2)}
    assert statuses == {401}
