from __future__ import annotations

import asyncio
from typing import Any, Optional

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings

from app.core.config import settings
from app.security.audit import AuditEvent

TASK_PERSIST_AUDIT_EVENT = "persist_audit_event"

_redis_pool: Optional[ArqRedis] = None
_pool_lock = asyncio.Lock()


async def init_redis_pool() -> ArqRedis:
    global _redis_pool
    async with _pool_lock:
        if _redis_pool is None:
            _redis_pool = await create_pool(RedisSettings.from_dsn(settings.REDIS_URL))
        return _redis_pool


async def get_redis_pool() -> ArqRedis:
    if _redis_pool is None:
        return await init_redis_pool()
    return _redis_pool


async def close_redis_pool() -> None:
    global _redis_pool
    async with _pool_lock:
        if _redis_pool is None:
            return

        pool = _redis_pool
        _redis_pool = None

        if hasattr(pool, "aclose"):
            await pool.aclose()  # type: ignore[attr-defined]
        else:
            await pool.close()  # type: ignore[func-returns-value]


async def enqueue_audit_event(event: AuditEvent) -> dict[str, Any]:
    """
    AuditLog writer used when USE_ARQ_WORKER is on: hand the row to the
    arq worker, which retries the insert on its own schedule.
    """
    redis = await get_redis_pool()
    job = await redis.enqueue_job(TASK_PERSIST_AUDIT_EVENT, event.to_payload())

    return {
        "queued": True,
        "queue": "arq",
        "job_id": job.job_id if job else None,
    }
