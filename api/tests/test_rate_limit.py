import pytest

pytest.importorskip("fastapi")
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rishta.services.rate_limit import InMemoryRateLimiter, limiter, rate_limit_dependency


def test_limiter_blocks_after_limit_and_resets():
    rl = InMemoryRateLimiter()
    assert rl.check("k", limit=2, window_seconds=60).allowed
    assert rl.check("k", limit=2, window_seconds=60).allowed
    decision = rl.check("k", limit=2, window_seconds=60)
    assert not decision.allowed
    assert decision.retry_after_seconds >= 1
    assert rl.check("other", limit=2, window_seconds=60).allowed

    rl.reset()
    assert rl.check("k", limit=2, window_seconds=60).allowed


def test_rate_limit_dependency_returns_429_per_caller():
    limiter.reset()
    app = FastAPI()
    rl_dep = rate_limit_dependency("test_route", 2, 60)

    @app.post("/thing")
    def thing(_: None = rl_dep) -> dict[str, bool]:
        return {"ok": True}

    client = TestClient(app)
    codes = [client.post("/thing", headers={"Authorization": "Bearer token-a"}).status_code for _ in range(3)]
    assert codes == [200, 200, 429]

    other = client.post("/thing", headers={"Authorization": "Bearer token-b"})
    assert other.status_code == 200
    limiter.reset()
