from __future__ import annotations

from contextlib import asynccontextmanager

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI

from app.api.proxy import router as proxy_router
from app.api.v1 import health
from app.api.v1.router import router as api_router
from app.core.config import settings
from app.core.logging import get_logger, setup_logging
from app.db.session import create_all_tables
from app.security.admin_auth import FailureLockout
from app.security.audit import AuditLog
from app.security.pii_cipher import PiiCipher
from app.security.rate_limit import FixedWindowRateLimiter, create_counter_store
from app.services.audit_service import persist_audit_event
from app.services.job_queue import close_redis_pool, enqueue_audit_event, init_redis_pool

setup_logging()
logger = get_logger(__name__)


def _uses_redis() -> bool:
    return settings.USE_ARQ_WORKER or settings.RATE_LIMIT_BACKEND == "redis"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if settings.AUTO_CREATE_TABLES:
        await create_all_tables()

    redis = await init_redis_pool() if _uses_redis() else None

    writer = enqueue_audit_event if settings.USE_ARQ_WORKER else persist_audit_event
    audit_log = AuditLog(
        writer,
        max_queue=settings.AUDIT_QUEUE_MAX,
        workers=settings.AUDIT_WORKERS,
        retries=settings.AUDIT_WRITE_RETRIES,
    )
    await audit_log.start()

    app.state.audit_log = audit_log
    app.state.pii_cipher = PiiCipher.from_settings()
    counters = create_counter_store(redis)
    app.state.rate_limiter = FixedWindowRateLimiter(counters, audit_log)
    app.state.admin_lockout = FailureLockout.for_admin(counters)

    if not settings.SHOPIFY_API_SECRET:
        logger.warning("SHOPIFY_API_SECRET is not set; App Proxy signatures are not verified")

    yield

    # Shutdown
    await audit_log.stop()
    if redis is not None:
        await close_redis_pool()


app = FastAPI(title="Storefront Pages API", lifespan=lifespan)

app.include_router(health.router, tags=["health"])
app.include_router(api_router, prefix="/api/v1")
app.include_router(proxy_router, prefix="/proxy")
