"""Tests for the Redis rate limiter middleware using an in-memory stand-in."""
import redis
from fastapi import FastAPI
from fastapi.testclient import TestClient

from redis_rate_limiter import RedisRateLimiter


class StubPipeline:
    def __init__(self, store, key_counts):
        self.store = store
        self.key_counts = key_counts
        self.calls = []

    def zremrangebyscore(self, key, low, high):
        self.calls.append(("zrem", key))

    def zcard(self, key):
        self.calls.append(("zcard", key))

    def zadd(self, key, mapping):
        self.calls.append(("zadd", key))

    def expire(self, key, seconds):
        self.calls.append(("expire", key))

    def execute(self):
        results = []
        for op, key in self.calls:
            if op == "zcard":
                results.append(self.key_counts.get(key, 0))
            elif op == "zadd":
                self.key_counts[key] = self.key_counts.get(key, 0) + 1
                results.append(1)
            else:
                results.append(True)
        return results


class StubRedis:
    def __init__(self):
        self.key_counts = {}

    def pipeline(self):
        return StubPipeline(self, self.key_counts)

    def zadd(self, key, mapping):
        self.key_counts[key] = self.key_counts.get(key, 0) + 1

    def expire(self, key, seconds):
        pass

    def zcount(self, key, low, high):
        return self.key_counts.get(key, 0)


class BrokenRedis:
    def pipeline(self):
        raise redis.ConnectionError("redis is down")

    def zadd(self, key, mapping):
        raise redis.ConnectionError("redis is down")


def _app(redis_client, **limits):
    app = FastAPI()
    app.add_middleware(RedisRateLimiter, redis_client=redis_client, **limits)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


def test_ip_limit_returns_429():
    client = TestClient(_app(StubRedis(), requests_per_minute_ip=2))

    assert client.get("/ping").status_code == 200
    assert client.get("/ping").status_code == 200
    response = client.get("/ping")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"


def test_operator_limit_applies_per_operator():
    client = TestClient(_app(StubRedis(), requests_per_minute_ip=100, requests_per_minute_user=1))
    headers = {"Authorization": "Bearer test-token-789"}

    assert client.get("/ping", headers=headers).status_code == 200
    assert client.get("/ping", headers=headers).status_code == 429
    assert client.get("/ping", headers={"Authorization": "Bearer test-token-790"}).status_code == 200


def test_unknown_token_is_only_ip_limited():
    redis_client = StubRedis()
    client = TestClient(_app(redis_client, requests_per_minute_ip=100, requests_per_minute_user=1))
    headers = {"Authorization": "Bearer not-a-till"}

    assert client.get("/ping", headers=headers).status_code == 200
    assert client.get("/ping", headers=headers).status_code == 200
    assert not any(key.startswith("rate:user:") for key in redis_client.key_counts)


def test_fails_open_when_redis_unavailable():
    client = TestClient(_app(BrokenRedis(), requests_per_minute_ip=1))

    assert client.get("/ping").status_code == 200
    assert client.get("/ping").status_code == 200
    assert client.get("/missing").status_code == 404
