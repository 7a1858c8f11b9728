import asyncio

import pytest

from helpers import ADMIN_HEADERS
from app.security.audit import AuditEvent, AuditEventType, AuditLog, RequestMeta

META = RequestMeta(endpoint="/api/v1/pages/1", method="GET", ip="10.0.0.1", user_agent="pytest", shop="a.myshopify.com")


@pytest.mark.asyncio
async def test_record_is_persisted_by_worker():
    written = []

    async def writer(event):
        written.append(event)

    log = AuditLog(writer, workers=1)
    await log.start()
    event = log.record(AuditEventType.access_denied, META, store_id="s1", details={"reason": "x"})
    await log.flush()
    await log.stop()

    assert written == [event]
    assert event.event_type == "access_denied"
    assert event.shop == "a.myshopify.com"
    assert event.details == {"reason": "x"}


@pytest.mark.asyncio
async def test_failing_writer_is_retried_then_dropped():
    attempts = []

    async def writer(event):
        attempts.append(event)
        raise RuntimeError("database down")

    log = AuditLog(writer, workers=1, retries=3, retry_backoff=0)
    await log.start()
    log.record(AuditEventType.unauthorized, META)
    await log.flush()

    assert len(attempts) == 3
    assert log.dropped == 1

    # the worker survived; later events still go through the same path
    log.record(AuditEventType.unauthorized, META)
    await log.flush()
    assert len(attempts) == 6
    await log.stop()


@pytest.mark.asyncio
async def test_record_never_blocks_or_raises_when_queue_is_full():
    gate = asyncio.Event()

    async def slow_writer(event):
        await gate.wait()

    log = AuditLog(slow_writer, max_queue=1, workers=1)
    await log.start()

    for _ in range(5):
        log.record(AuditEventType.rate_limited, META)

    assert log.dropped >= 3
    gate.set()
    await log.stop()


def test_security_line_is_logged_synchronously(caplog):
    async def writer(event):
        pass

    log = AuditLog(writer)
    with caplog.at_level("ERROR", logger="security.audit"):
        log.record(AuditEventType.cross_tenant_attempt, META, store_id="s2", attempted_store_id="s1")

    assert "[SECURITY] CROSS_TENANT_ATTEMPT: GET /api/v1/pages/1" in caplog.text


def test_payload_round_trip():
    event = AuditEvent(event_type="invalid_signature", endpoint="/proxy/lp/x", method="GET", details={"a": 1})
    assert AuditEvent.from_payload(event.to_payload()) == event


def test_audit_rows_are_append_only_via_api(client):
    assert client.delete("/api/v1/admin/audit-logs", headers=ADMIN_HEADERS).status_code == 405
    assert client.put("/api/v1/admin/audit-logs", headers=ADMIN_HEADERS, json={}).status_code == 405


def test_admin_api_requires_key(client):
    assert client.get("/api/v1/admin/audit-logs").status_code == 403
    assert client.get("/api/v1/admin/audit-logs", headers={"X-Admin-Key": "wrong"}).status_code == 403
