"""
Fixed-window request throttling.

Counters are keyed by resolved store (``store:<id>``) or, without a store
context, by normalized client address (``ip:<addr>``). The counter store is
injected so the in-process map can be swapped for Redis without touching
the routes.
"""
from __future__ import annotations

import asyncio
import ipaddress
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from fastapi import Depends, HTTPException, Request

from app.core.config import settings
from app.core.limits import RATE_LIMIT_EXEMPT_PATHS, RATE_LIMIT_TIERS
from app.core.logging import get_logger
from app.security.audit import AuditEventType, AuditLog, RequestMeta
from app.security.context import StoreContext
from app.security.dependencies import get_store_context

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitTier:
    name: str
    limit: int
    window_seconds: int
    key_suffix: str = ""
    message: str = "Please try again later"

    @classmethod
    def from_config(cls, name: str) -> "RateLimitTier":
        return cls(name=name, **RATE_LIMIT_TIERS[name])


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    count: int
    limit: int
    reset_after: int


class CounterStore(Protocol):
    async def incr(self, key: str, window_seconds: int) -> tuple[int, int]:
        """Increment `key` in its current window; return (count, seconds until reset)."""
        ...

    async def peek(self, key: str) -> tuple[int, int]:
        """Current (count, seconds until reset) without incrementing; (0, 0) when unset."""
        ...

    async def reset(self, key: str) -> None:
        ...


class InMemoryCounterStore:
    """Per-process counters. Reset on process start; each key expires with its window."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = asyncio.Lock()
        self._windows: dict[str, tuple[float, int]] = {}  # key -> (window_end, count)

    async def incr(self, key: str, window_seconds: int) -> tuple[int, int]:
        async with self._lock:
            now = self._clock()
            window_end, count = self._windows.get(key, (0.0, 0))
            if now >= window_end:
                window_end, count = now + window_seconds, 0
                self._prune(now)
            count += 1
            self._windows[key] = (window_end, count)
            return count, max(1, math.ceil(window_end - now))

    async def peek(self, key: str) -> tuple[int, int]:
        async with self._lock:
            now = self._clock()
            window_end, count = self._windows.get(key, (0.0, 0))
            if now >= window_end:
                return 0, 0
            return count, max(1, math.ceil(window_end - now))

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._windows.pop(key, None)

    def _prune(self, now: float) -> None:
        expired = [k for k, (end, _) in self._windows.items() if end <= now]
        for k in expired:
            del self._windows[k]

    def clear(self) -> None:
        self._windows.clear()


class RedisCounterStore:
    """Shared counters on Redis (INCR + EXPIRE), for multi-process deployments."""

    def __init__(self, redis, prefix: str = "ratelimit:"):
        self._redis = redis
        self._prefix = prefix

    async def incr(self, key: str, window_seconds: int) -> tuple[int, int]:
        redis_key = f"{self._prefix}{key}"
        pipe = self._redis.pipeline(transaction=True)
        pipe.incr(redis_key)
        pipe.ttl(redis_key)
        count, ttl = await pipe.execute()
        if ttl is None or ttl < 0:
            await self._redis.expire(redis_key, window_seconds)
            ttl = window_seconds
        return int(count), int(ttl)

    async def peek(self, key: str) -> tuple[int, int]:
        redis_key = f"{self._prefix}{key}"
        pipe = self._redis.pipeline(transaction=True)
        pipe.get(redis_key)
        pipe.ttl(redis_key)
        count, ttl = await pipe.execute()
        if count is None or ttl is None or ttl < 0:
            return 0, 0
        return int(count), int(ttl)

    async def reset(self, key: str) -> None:
        await self._redis.delete(f"{self._prefix}{key}")


def normalize_ip(raw: Optional[str], ipv6_prefix: int = 56) -> str:
    """
    Collapse equivalent client addresses to one key:
    IPv4-mapped IPv6 -> IPv4, IPv6 -> its /prefix network.
    """
    if not raw:
        return "unknown"
    try:
        addr = ipaddress.ip_address(raw.strip())
    except ValueError:
        return raw.strip().lower()

    if isinstance(addr, ipaddress.IPv6Address):
        if addr.ipv4_mapped is not None:
            return str(addr.ipv4_mapped)
        network = ipaddress.IPv6Network(f"{addr}/{ipv6_prefix}", strict=False)
        return str(network)
    return str(addr)


def rate_limit_key(context: Optional[StoreContext], client_ip: Optional[str], tier: RateLimitTier) -> str:
    if context is not None:
        base = f"store:{context.store_id}"
    else:
        base = f"ip:{normalize_ip(client_ip, settings.RATE_LIMIT_IPV6_PREFIX)}"
    return f"{base}{tier.key_suffix}"


class FixedWindowRateLimiter:
    def __init__(self, store: CounterStore, audit_log: AuditLog):
        self.store = store
        self.audit_log = audit_log

    async def hit(self, key: str, tier: RateLimitTier) -> RateLimitResult:
        count, reset_after = await self.store.incr(key, tier.window_seconds)
        return RateLimitResult(
            allowed=count <= tier.limit,
            count=count,
            limit=tier.limit,
            reset_after=reset_after,
        )

    async def enforce(
        self,
        request: Request,
        context: Optional[StoreContext],
        tier: RateLimitTier,
    ) -> RateLimitResult | None:
        if request.url.path in RATE_LIMIT_EXEMPT_PATHS:
            return None

        client_ip = request.client.host if request.client else None
        key = rate_limit_key(context, client_ip, tier)
        result = await self.hit(key, tier)
        if result.allowed:
            return result

        self.audit_log.record(
            AuditEventType.rate_limited,
            RequestMeta.from_request(request, shop=context.shop if context else None),
            store_id=context.store_id if context else None,
            details={
                "limit": tier.limit,
                "window": f"{tier.window_seconds} seconds",
                "key": key,
                "tier": tier.name,
            },
        )
        raise HTTPException(
            status_code=429,
            detail={
                "error": "Too many requests",
                "message": tier.message,
                "retry_after": result.reset_after,
            },
            headers={"Retry-After": str(result.reset_after)},
        )


def create_counter_store(redis=None) -> CounterStore:
    if settings.RATE_LIMIT_BACKEND == "redis" and redis is not None:
        return RedisCounterStore(redis)
    return InMemoryCounterStore()


def _tier_dependency(tier_name: str):
    async def dependency(
        request: Request,
        context: Optional[StoreContext] = Depends(get_store_context),
    ) -> None:
        limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
        await limiter.enforce(request, context, RateLimitTier.from_config(tier_name))

    dependency.__name__ = f"{tier_name}_rate_limit"
    return dependency


general_rate_limit = _tier_dependency("general")
strict_rate_limit = _tier_dependency("strict")
