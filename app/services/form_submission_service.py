from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.models.form_submission import FormSubmission
from app.models.page import Page
from app.schemas.form_submission import FormSubmissionCreate
from app.security.pii_cipher import PiiCipher
from app.services import analytics_service


async def create_submission(
    db: AsyncSession,
    cipher: PiiCipher,
    *,
    page: Page,
    submission_in: FormSubmissionCreate,
) -> FormSubmission:
    """
    Persist a submission owned by the page's store.
    PII keys in `data` are encrypted immediately before the insert.
    """
    # scrypt + AES off the event loop
    encrypted = await run_in_threadpool(cipher.encrypt_fields, submission_in.data, page.store_id)

    submission = FormSubmission(
        store_id=page.store_id,
        page_id=page.id,
        block_id=submission_in.block_id,
        data=encrypted,
        utm_params=submission_in.utm_params,
        landing_page=submission_in.landing_page,
        referrer=submission_in.referrer,
    )
    db.add(submission)
    await db.commit()
    await db.refresh(submission)

    await analytics_service.record_submission_event(
        page=page,
        submission=submission,
        visitor_id=submission_in.visitor_id,
        session_id=submission_in.session_id,
    )
    return submission


async def list_submissions(db: AsyncSession, *, page_id: UUID) -> list[FormSubmission]:
    result = await db.execute(
        select(FormSubmission)
        .where(FormSubmission.page_id == page_id)
        .order_by(desc(FormSubmission.submitted_at))
    )
    return list(result.scalars().all())


def _decrypt_all(cipher: PiiCipher, submissions: list[FormSubmission]) -> list[dict[str, Any]]:
    rows = []
    for s in submissions:
        rows.append(
            {
                "id": s.id,
                "store_id": s.store_id,
                "page_id": s.page_id,
                "block_id": s.block_id,
                # decrypted with the row's own store id; failures surface as None
                "data": cipher.decrypt_fields(s.data or {}, s.store_id),
                "utm_params": s.utm_params or {},
                "landing_page": s.landing_page,
                "referrer": s.referrer,
                "submitted_at": s.submitted_at,
            }
        )
    return rows


async def list_decrypted_submissions(
    db: AsyncSession,
    cipher: PiiCipher,
    *,
    page_id: UUID,
) -> list[dict[str, Any]]:
    submissions = await list_submissions(db, page_id=page_id)
    return await run_in_threadpool(_decrypt_all, cipher, submissions)


def submission_view(cipher: PiiCipher, submission: FormSubmission) -> dict[str, Any]:
    return _decrypt_all(cipher, [submission])[0]
