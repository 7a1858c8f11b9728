from __future__ import annotations

from collections import Counter
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.db.session import async_session
from app.models.analytics_event import AnalyticsEvent, AnalyticsEventType
from app.models.form_submission import FormSubmission
from app.models.page import Page
from app.schemas.analytics import AnalyticsEventCreate, AnalyticsSummary

logger = get_logger(__name__)


async def record_event(db: AsyncSession, *, page: Page, event_in: AnalyticsEventCreate) -> AnalyticsEvent:
    event = AnalyticsEvent(
        store_id=page.store_id,  # always the page's store
        page_id=page.id,
        event_type=event_in.event_type.value,
        block_id=event_in.block_id,
        visitor_id=event_in.visitor_id,
        session_id=event_in.session_id,
        utm_source=event_in.utm_source,
        utm_medium=event_in.utm_medium,
        utm_campaign=event_in.utm_campaign,
        referrer=event_in.referrer,
        ab_test_id=event_in.ab_test_id,
        variant_id=event_in.variant_id,
        event_metadata=event_in.metadata,
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


async def record_submission_event(
    *,
    page: Page,
    submission: FormSubmission,
    visitor_id: str | None,
    session_id: str | None,
) -> None:
    """
    Counts a stored submission in the page analytics. The submission is
    already committed, so a failure here is logged and not raised.
    Runs in its own session to leave the caller's session untouched.
    """
    utm = submission.utm_params or {}
    event = AnalyticsEvent(
        store_id=page.store_id,
        page_id=page.id,
        event_type=AnalyticsEventType.form_submission.value,
        block_id=submission.block_id or None,
        visitor_id=visitor_id or "anonymous",
        session_id=session_id,
        utm_source=utm.get("utm_source"),
        utm_medium=utm.get("utm_medium"),
        utm_campaign=utm.get("utm_campaign"),
        referrer=submission.referrer,
    )
    try:
        async with async_session() as db:
            db.add(event)
            await db.commit()
    except SQLAlchemyError:
        logger.exception("Failed to record form_submission event for page %s", page.id)


async def list_page_events(
    db: AsyncSession,
    *,
    page_id: UUID,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[AnalyticsEvent]:
    query = select(AnalyticsEvent).where(AnalyticsEvent.page_id == page_id)
    if start is not None:
        query = query.where(AnalyticsEvent.created_at >= start)
    if end is not None:
        query = query.where(AnalyticsEvent.created_at <= end)
    result = await db.execute(query.order_by(desc(AnalyticsEvent.created_at)))
    return list(result.scalars().all())


def summarize(events: list[AnalyticsEvent]) -> AnalyticsSummary:
    by_type = Counter(e.event_type for e in events)
    views = [e for e in events if e.event_type == AnalyticsEventType.page_view.value]

    return AnalyticsSummary(
        page_views=by_type[AnalyticsEventType.page_view.value],
        unique_visitors=len({e.visitor_id for e in views}),
        form_submissions=by_type[AnalyticsEventType.form_submission.value],
        button_clicks=by_type[AnalyticsEventType.button_click.value],
        phone_clicks=by_type[AnalyticsEventType.phone_click.value],
        by_source=dict(Counter(e.utm_source or "direct" for e in views)),
        by_day=dict(Counter(e.created_at.date().isoformat() for e in views)),
    )


async def page_summary(
    db: AsyncSession,
    *,
    page_id: UUID,
    start: datetime | None = None,
    end: datetime | None = None,
) -> AnalyticsSummary:
    return summarize(await list_page_events(db, page_id=page_id, start=start, end=end))
