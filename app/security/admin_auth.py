"""
Admin API gate: a shared key in X-Admin-Key, with a per-client lockout
after repeated wrong keys.
"""
from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request

from app.core.config import settings
from app.core.logging import get_logger
from app.security.audit import AuditEventType, RequestMeta
from app.security.rate_limit import CounterStore, normalize_ip

logger = get_logger(__name__)

LOCKOUT_MESSAGE = "Too many failed admin key attempts. Please try again later."


class FailureLockout:
    """
    Failed-attempt counter per key, kept in a CounterStore.
    A key with `max_failures` failures in the current window is locked
    until the window expires; a success clears it.
    """

    def __init__(
        self,
        store: CounterStore,
        *,
        max_failures: int = 5,
        window_seconds: int = 900,
        prefix: str = "lockout:",
    ):
        self.store = store
        self.max_failures = max_failures
        self.window_seconds = window_seconds
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def retry_after(self, key: str) -> Optional[int]:
        """Seconds until `key` unlocks, or None when it is not locked."""
        count, reset_after = await self.store.peek(self._key(key))
        if count >= self.max_failures:
            return max(1, reset_after)
        return None

    async def record_failure(self, key: str) -> int:
        count, _ = await self.store.incr(self._key(key), self.window_seconds)
        return count

    async def clear(self, key: str) -> None:
        await self.store.reset(self._key(key))

    @classmethod
    def for_admin(cls, store: CounterStore) -> "FailureLockout":
        return cls(
            store,
            max_failures=settings.ADMIN_MAX_FAILED_ATTEMPTS,
            window_seconds=settings.ADMIN_LOCKOUT_SECONDS,
            prefix="admin-auth:",
        )


async def require_admin(
    request: Request,
    x_admin_key: Optional[str] = Header(default=None, alias="X-Admin-Key"),
) -> None:
    if not settings.ADMIN_API_ENABLED:
        raise HTTPException(status_code=404, detail="Admin API not enabled")
    if not settings.ADMIN_KEY:
        raise HTTPException(status_code=500, detail="Server configuration error")

    lockout: FailureLockout = request.app.state.admin_lockout
    client_key = normalize_ip(request.client.host if request.client else None)

    retry_after = await lockout.retry_after(client_key)
    if retry_after is not None:
        request.app.state.audit_log.record(
            AuditEventType.suspicious_access,
            RequestMeta.from_request(request),
            details={"reason": "admin_key_lockout", "max_failures": lockout.max_failures},
        )
        raise HTTPException(
            status_code=429,
            detail={
                "error": "Too many requests",
                "message": LOCKOUT_MESSAGE,
                "retry_after": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )

    # Header values arrive latin-1 decoded; compare bytes so any input is comparable
    provided = (x_admin_key or "").encode("utf-8")
    if not x_admin_key or not hmac.compare_digest(provided, settings.ADMIN_KEY.encode("utf-8")):
        failures = await lockout.record_failure(client_key)
        logger.warning("Rejected admin key from %s (%s failed attempts)", client_key, failures)
        raise HTTPException(status_code=403, detail="Forbidden")

    await lockout.clear(client_key)
