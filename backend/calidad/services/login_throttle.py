"""Redis-backed login throttling: a per-IP request rate and a per-username lockout.

Every Redis failure is logged and ignored, so an unavailable Redis never
blocks sign-in.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import Callable, Optional

import redis
from fastapi import HTTPException, Request, status
from redis.exceptions import RedisError

from ..config import settings

logger = logging.getLogger(__name__)

_IP_WINDOW_SECONDS = 60


def client_ip(request: Request) -> str:
    """Caller address; proxy headers are honoured only when TRUST_PROXY_HEADERS is set."""
    if settings.TRUST_PROXY_HEADERS:
        forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0]
        for candidate in (request.headers.get("x-real-ip"), forwarded):
            candidate = (candidate or "").strip()
            if not candidate:
                continue
            try:
                ipaddress.ip_address(candidate)
            except ValueError:
                continue
            return candidate
    return request.client.host if request.client else "unknown"


def _too_many(detail: str, retry_after: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=detail,
        headers={"Retry-After": str(max(int(retry_after), 1))},
    )


class LoginThrottle:
    """Counters live under ``calidad:login:*`` keys with their own expiry."""

    def __init__(self, client_factory: Optional[Callable[[], "redis.Redis"]] = None) -> None:
        self._client_factory = client_factory or (lambda: redis.from_url(settings.REDIS_URL, decode_responses=True))
        self._client: Optional["redis.Redis"] = None

    @property
    def client(self) -> "redis.Redis":
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    @staticmethod
    def _ip_key(ip: str) -> str:
        return f"calidad:login:ip:{ip}"

    @staticmethod
    def _failures_key(username: str) -> str:
        return f"calidad:login:failures:{username.lower()}"

    @staticmethod
    def _lock_key(username: str) -> str:
        return f"calidad:login:lock:{username.lower()}"

    def _bump(self, key: str, ttl_seconds: int) -> tuple[int, int]:
        """INCR with an expiry set on first hit; returns (count, seconds left)."""
        count = int(self.client.incr(key))
        if count == 1:
            self.client.expire(key, ttl_seconds)
        remaining = self.client.ttl(key)
        if remaining is None or remaining < 0:
            remaining = ttl_seconds
        return count, int(remaining)

    def check(self, *, ip: str, username: str | None) -> None:
        """Raise 429 when the IP is over its rate or the username is locked."""
        try:
            attempts, remaining = self._bump(self._ip_key(ip), _IP_WINDOW_SECONDS)
            if attempts > settings.AUTH_LOGIN_IP_LIMIT_PER_MINUTE:
                raise _too_many("Too many login attempts. Try again later.", remaining)
            if username:
                locked_for = self.client.ttl(self._lock_key(username))
                if locked_for and locked_for > 0:
                    raise _too_many("Account temporarily locked due to failed logins. Try again later.", locked_for)
        except RedisError:
            logger.exception("Redis unavailable during login throttling (fail-open)")

    def record_failure(self, *, username: str | None) -> None:
        if not username:
            return
        lock_seconds = settings.AUTH_LOGIN_USER_LOCK_SECONDS
        try:
            failures, _ = self._bump(self._failures_key(username), lock_seconds)
            if failures >= settings.AUTH_LOGIN_USER_FAIL_THRESHOLD:
                self.client.set(self._lock_key(username), "1", ex=lock_seconds)
                logger.warning("Login locked for username=%s after %s failures", username, failures)
        except RedisError:
            logger.exception("Redis unavailable while recording login failure (fail-open)")

    def reset(self, *, username: str | None) -> None:
        if not username:
            return
        try:
            self.client.delete(self._failures_key(username), self._lock_key(username))
        except RedisError:
            logger.exception("Redis unavailable while clearing login failures (ignored)")


login_throttle = LoginThrottle()
