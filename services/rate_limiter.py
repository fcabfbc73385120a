"""
Fixed-window rate limiter.

Counters live in a pluggable store: MemoryRateLimitStore for single-instance
deployments and tests, RedisRateLimitStore when several workers must share
counts. Keys are "<rule>:<window index>:<client key>", so a window's counter
simply stops being used when the window rolls over.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    name: str
    limit: int
    window_seconds: int
    message: str = "Too many requests, please try again later"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int
    window: Optional[int] = None


class MemoryRateLimitStore:
    def __init__(self):
        self._counts: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def incr(self, key: str, ttl_seconds: float, now: float) -> int:
        with self._lock:
            self._purge(now)
            count, expires = self._counts.get(key, (0, now + ttl_seconds))
            count += 1
            self._counts[key] = (count, expires)
            return count

    def decr(self, key: str, now: float) -> None:
        with self._lock:
            entry = self._counts.get(key)
            if entry and entry[0] > 0:
                self._counts[key] = (entry[0] - 1, entry[1])

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()

    def _purge(self, now: float) -> None:
        expired = [k for k, (_, expires) in self._counts.items() if expires <= now]
        for k in expired:
            del self._counts[k]


_DECR_IF_POSITIVE = """
local current = tonumber(redis.call("GET", KEYS[1]))
if current and current > 0 then
    return redis.call("DECR", KEYS[1])
end
return 0
"""


class RedisRateLimitStore:
    def __init__(self, url: str, client: redis.Redis | None = None):
        self._redis = client or redis.Redis.from_url(url, socket_timeout=1, decode_responses=True)
        self._decr_if_positive = self._redis.register_script(_DECR_IF_POSITIVE)

    def incr(self, key: str, ttl_seconds: float, now: float) -> int:
        pipe = self._redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, int(math.ceil(ttl_seconds)), nx=True)
        count, _ = pipe.execute()
        return int(count)

    def decr(self, key: str, now: float) -> None:
        """Never creates the key or takes it below zero."""
        self._decr_if_positive(keys=[key])

    def reset(self) -> None:
        for key in self._redis.scan_iter("rl:*"):
            self._redis.delete(key)


class RateLimiter:
    def __init__(self, store, rules: Dict[str, RateLimitRule], enabled: bool = True,
                 timer: Callable[[], float] = time.time):
        self.store = store
        self.rules = rules
        self.enabled = enabled
        self._timer = timer

    def _window(self, rule: RateLimitRule, now: float) -> Tuple[int, float]:
        index = int(now // rule.window_seconds)
        reset_at = (index + 1) * rule.window_seconds
        return index, reset_at

    def _key(self, rule: RateLimitRule, index: int, key: str) -> str:
        return f"rl:{rule.name}:{index}:{key}"

    def consume(self, rule_name: str, key: str) -> RateLimitResult:
        """Count one request for `key` under the named rule."""
        rule = self.rules[rule_name]
        if not self.enabled:
            return RateLimitResult(True, rule.limit, rule.limit, 0)
        now = self._timer()
        index, reset_at = self._window(rule, now)
        count = self.store.incr(self._key(rule, index, key), reset_at - now, now)
        retry_after = max(int(math.ceil(reset_at - now)), 1)
        if count > rule.limit:
            return RateLimitResult(False, rule.limit, 0, retry_after, index)
        return RateLimitResult(True, rule.limit, rule.limit - count, retry_after, index)

    def refund(self, rule_name: str, key: str, window: Optional[int] = None) -> None:
        """
        Give back a request, used for rules that only count failures. Pass the
        window from consume() so a refund after rollover hits the right counter.
        """
        rule = self.rules[rule_name]
        if not self.enabled:
            return
        now = self._timer()
        index = window if window is not None else self._window(rule, now)[0]
        self.store.decr(self._key(rule, index, key), now)


def create_rate_limit_store(url: str):
    if not url or url.startswith("memory://"):
        return MemoryRateLimitStore()
    if url.startswith(("redis://", "rediss://", "unix://")):
        return RedisRateLimitStore(url)
    raise ValueError(f"Unsupported RATE_LIMIT_STORAGE_URL: {url!r}")


def build_rules(config) -> Dict[str, RateLimitRule]:
    auth_limit, auth_window = config["AUTH_RATE_LIMIT"]
    reg_limit, reg_window = config["REGISTER_RATE_LIMIT"]
    upload_limit, upload_window = config["UPLOAD_RATE_LIMIT"]
    return {
        "general": RateLimitRule(
            "general", int(config["RATE_LIMIT_MAX_REQUESTS"]), int(config["RATE_LIMIT_WINDOW_SECONDS"]),
            "Too many requests from this IP, please try again later",
        ),
        "auth": RateLimitRule("auth", auth_limit, auth_window,
                              "Too many authentication attempts, please try again later"),
        "register": RateLimitRule("register", reg_limit, reg_window,
                                  "Too many accounts created from this IP, please try again later"),
        "upload": RateLimitRule("upload", upload_limit, upload_window,
                                "Too many file uploads, please try again later"),
    }
