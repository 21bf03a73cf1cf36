"""Tests for token-bucket rate limiting."""

from fastapi.testclient import TestClient

from recipe_server.core.config import Settings
from recipe_server.core.ratelimit import RateLimitConfig, TokenBucket, build_rate_limit_config
from recipe_server.main import create_app


class FakeTime:
    def __init__(self):
        self.current = 0.0

    def advance(self, seconds: float):
        self.current += seconds

    def __call__(self):
        return self.current


def test_token_bucket_refills():
    clock = FakeTime()
    bucket = TokenBucket(capacity=2, refill_rate_per_sec=1.0, time_fn=clock)
    assert bucket.allow()
    assert bucket.allow()
    assert not bucket.allow()
    clock.advance(1)
    assert bucket.allow()


def test_config_from_settings():
    config = build_rate_limit_config(
        Settings(RATE_LIMIT_ENABLED=True, RATE_LIMIT_PER_MINUTE_DEFAULT=0, RATE_LIMIT_BURST_DEFAULT=5)
    )
    assert config.enabled is True
    assert config.per_minute_default == 120
    assert config.burst_default == 5


def test_rate_limit_enforced_per_credential(gateway):
    app = create_app(gateway, rate_limit_config=RateLimitConfig(enabled=True, per_minute_default=1, burst_default=2))
    client = TestClient(app)
    headers = {"Authorization": "Bearer sk-valid123"}

    assert client.get("/v1/recipes", headers=headers).status_code == 200
    assert client.get("/v1/recipes", headers=headers).status_code == 200
    limited = client.get("/v1/recipes", headers=headers)
    assert limited.status_code == 429
    payload = limited.json()
    assert payload["error"]["code"] == "rate_limited"
    assert payload["error"]["request_id"] == limited.headers["x-request-id"]
    assert limited.headers["Retry-After"]

    # Another credential has its own bucket
    other = client.get("/v1/recipes", headers={"Authorization": "Bearer sk-other"})
    assert other.status_code == 200


def test_health_probes_are_exempt(gateway):
    app = create_app(gateway, rate_limit_config=RateLimitConfig(enabled=True, per_minute_default=1, burst_default=1))
    client = TestClient(app)
    for _ in range(5):
        assert client.get("/healthz").status_code == 200


def test_disabled_by_default(client):
    for _ in range(40):
        assert client.get("/healthz").status_code == 200
    for _ in range(40):
        assert client.get("/v1/recipes").status_code == 200
