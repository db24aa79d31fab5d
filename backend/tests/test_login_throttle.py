from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from redis.exceptions import ConnectionError as RedisConnectionError

from calidad.config import settings
from calidad.services.login_throttle import LoginThrottle, client_ip


class _FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, int | str] = {}
        self.ttls: dict[str, int] = {}

    def incr(self, key: str) -> int:
        self.values[key] = int(self.values.get(key, 0)) + 1
        return int(self.values[key])

    def expire(self, key: str, seconds: int) -> None:
        self.ttls[key] = seconds

    def ttl(self, key: str) -> int:
        if key not in self.values:
            return -2
        return self.ttls.get(key, -1)

    def set(self, key: str, value: str, ex: int) -> None:
        self.values[key] = value
        self.ttls[key] = ex

    def delete(self, *keys: str) -> None:
        for key in keys:
            self.values.pop(key, None)
            self.ttls.pop(key, None)


class _BrokenRedis:
    def __getattr__(self, _name):
        def _fail(*_args, **_kwargs):
            raise RedisConnectionError("redis down")

        return _fail


def test_ip_rate_limit_returns_429_with_retry_after() -> None:
    fake = _FakeRedis()
    throttle = LoginThrottle(client_factory=lambda: fake)

    for _ in range(settings.AUTH_LOGIN_IP_LIMIT_PER_MINUTE):
        throttle.check(ip="10.0.0.1", username=None)

    with pytest.raises(HTTPException) as exc:
        throttle.check(ip="10.0.0.1", username=None)

    assert exc.value.status_code == 429
    assert exc.value.headers["Retry-After"] == "60"
    # Other addresses are unaffected.
    throttle.check(ip="10.0.0.2", username=None)


def test_repeated_failures_lock_username_until_reset() -> None:
    fake = _FakeRedis()
    throttle = LoginThrottle(client_factory=lambda: fake)

    for _ in range(settings.AUTH_LOGIN_USER_FAIL_THRESHOLD):
        throttle.record_failure(username="Ana")

    with pytest.raises(HTTPException) as exc:
        throttle.check(ip="10.0.0.3", username="ana")
    assert exc.value.status_code == 429

    throttle.reset(username="ANA")
    throttle.check(ip="10.0.0.3", username="ana")


def test_redis_outage_fails_open() -> None:
    throttle = LoginThrottle(client_factory=_BrokenRedis)

    throttle.check(ip="10.0.0.4", username="ana")
    throttle.record_failure(username="ana")
    throttle.reset(username="ana")


def test_client_ip_ignores_proxy_headers_unless_trusted(monkeypatch) -> None:
    request = SimpleNamespace(
        headers={"x-forwarded-for": "203.0.113.7, 10.0.0.1"},
        client=SimpleNamespace(host="10.0.0.1"),
    )

    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", False)
    assert client_ip(request) == "10.0.0.1"

    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", True)
    assert client_ip(request) == "203.0.113.7"
