from __future__ import annotations

import logging

from arq.connections import RedisSettings

from app.core.config import settings
from app.security.audit import AuditEvent
from app.services.audit_service import persist_audit_event as write_audit_row

logger = logging.getLogger(__name__)


async def persist_audit_event(ctx, payload: dict) -> None:
    """
    ARQ task entrypoint.
    Raising lets ARQ retry; on the last try the event is logged and dropped.
    """
    event = AuditEvent.from_payload(payload)

    try:
        await write_audit_row(event)
    except Exception:
        job_try = int(ctx.get("job_try") or 1)
        if job_try >= settings.ARQ_MAX_TRIES:
            logger.exception(
                "[SECURITY] Dropping audit event after %s tries: %s %s",
                job_try,
                event.event_type,
                event.endpoint,
            )
            return
        raise


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    functions = [persist_audit_event]

    max_jobs = 10
    job_timeout = 30
    max_tries = settings.ARQ_MAX_TRIES
