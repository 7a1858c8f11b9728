from __future__ import annotations

import asyncio
import enum
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from fastapi import Request

from app.core.logging import get_logger

logger = get_logger(__name__)

# Synchronous trace for operators; emitted before any persistence attempt
security_logger = get_logger("security.audit")


class AuditEventType(str, enum.Enum):
    unauthorized = "unauthorized"                  # 401: no valid store context
    access_denied = "access_denied"                # 403: generic denial
    suspicious_access = "suspicious_access"
    rate_limited = "rate_limited"                  # 429
    invalid_signature = "invalid_signature"        # App Proxy / webhook signature failure
    cross_tenant_attempt = "cross_tenant_attempt"  # 403: context store != owning store


@dataclass(frozen=True)
class RequestMeta:
    endpoint: str
    method: str
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    shop: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request, shop: Optional[str] = None) -> "RequestMeta":
        return cls(
            endpoint=request.url.path,
            method=request.method,
            ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            shop=shop or request.query_params.get("shop"),
        )


@dataclass(frozen=True)
class AuditEvent:
    event_type: str
    endpoint: str
    method: str
    store_id: Optional[str] = None
    attempted_store_id: Optional[str] = None
    shop: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat()
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AuditEvent":
        data = dict(payload)
        data["created_at"] = datetime.fromisoformat(data["created_at"])
        return cls(**data)


AuditWriter = Callable[[AuditEvent], Awaitable[None]]


def _as_id(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


class AuditLog:
    """
    Fire-and-forget security event log.

    record() logs synchronously and queues the event; a fixed pool of worker
    tasks drains the bounded queue through `writer`. Nothing here ever raises
    into the calling request.
    """

    def __init__(
        self,
        writer: AuditWriter,
        *,
        max_queue: int = 1000,
        workers: int = 2,
        retries: int = 3,
        retry_backoff: float = 0.1,
    ):
        self._writer = writer
        self._queue: asyncio.Queue[AuditEvent] = asyncio.Queue(maxsize=max_queue)
        self._worker_count = max(1, workers)
        self._retries = max(1, retries)
        self._retry_backoff = retry_backoff
        self._tasks: list[asyncio.Task] = []
        self.dropped = 0

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._run_worker(), name=f"audit-writer-{i}")
            for i in range(self._worker_count)
        ]

    async def stop(self) -> None:
        if not self._tasks:
            return
        await self._queue.join()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def flush(self) -> None:
        """Wait until every queued event has been written (or given up on)."""
        await self._queue.join()

    def record(
        self,
        event_type: AuditEventType,
        meta: RequestMeta,
        store_id: Any = None,
        attempted_store_id: Any = None,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditEvent:
        event = AuditEvent(
            event_type=AuditEventType(event_type).value,
            endpoint=meta.endpoint,
            method=meta.method,
            store_id=_as_id(store_id),
            attempted_store_id=_as_id(attempted_store_id),
            shop=meta.shop,
            ip=meta.ip,
            user_agent=meta.user_agent,
            details=dict(details or {}),
        )

        security_logger.error(
            "[SECURITY] %s: %s %s shop=%s store_id=%s attempted_store_id=%s ip=%s",
            event.event_type.upper(),
            event.method,
            event.endpoint,
            event.shop,
            event.store_id,
            event.attempted_store_id,
            event.ip,
        )

        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.error("[SECURITY] Audit queue full, event not persisted: %s", event.event_type)

        return event

    async def _run_worker(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._write(event)
            finally:
                self._queue.task_done()

    async def _write(self, event: AuditEvent) -> None:
        for attempt in range(1, self._retries + 1):
            try:
                await self._writer(event)
                return
            except asyncio.CancelledError:
                raise
            except Exception:
                if attempt == self._retries:
                    self.dropped += 1
                    logger.exception(
                        "[SECURITY] Failed to persist audit log after %s attempts: %s",
                        attempt,
                        event.event_type,
                    )
                    return
                await asyncio.sleep(self._retry_backoff * (2 ** (attempt - 1)))
