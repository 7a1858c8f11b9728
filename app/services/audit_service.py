from __future__ import annotations

from typing import Any

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import async_session
from app.models.audit_log import AuditLogEntry
from app.security.audit import AuditEvent


async def persist_audit_event(event: AuditEvent) -> None:
    """
    Default AuditLog writer: one short-lived session per row.
    Exceptions propagate so the audit queue can retry.
    """
    async with async_session() as db:
        db.add(
            AuditLogEntry(
                event_type=event.event_type,
                store_id=event.store_id,
                attempted_store_id=event.attempted_store_id,
                shop=event.shop or "unknown",
                endpoint=event.endpoint,
                method=event.method,
                ip=event.ip,
                user_agent=event.user_agent,
                details=event.details or {},
                created_at=event.created_at,
            )
        )
        await db.commit()


async def list_audit_logs(
    db: AsyncSession,
    *,
    event_type: str | None = None,
    store_id: str | None = None,
    limit: int = 100,
) -> dict[str, Any]:
    query = select(AuditLogEntry)
    if event_type:
        query = query.where(AuditLogEntry.event_type == event_type)
    if store_id:
        query = query.where(
            (AuditLogEntry.store_id == store_id) | (AuditLogEntry.attempted_store_id == store_id)
        )

    rows = (
        await db.execute(query.order_by(desc(AuditLogEntry.id)).limit(limit))
    ).scalars().all()

    return {"items": list(rows), "count": len(rows)}
