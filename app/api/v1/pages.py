from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_pii_cipher, load_page
from app.db.session import get_db
from app.models.page import PageStatus
from app.schemas.analytics import AnalyticsEventRead, AnalyticsSummary
from app.schemas.form_submission import FormSubmissionCreate, FormSubmissionRead
from app.schemas.page import (
    PageCreate,
    PageRead,
    PageSummary,
    PageUpdate,
    PageVersionRead,
    PublicPageRead,
)
from app.security.authorization import AccessGuard
from app.security.dependencies import get_access_guard
from app.security.pii_cipher import PiiCipher
from app.services import analytics_service, form_submission_service, store_service
from app.services.page_service import PageService

router = APIRouter(tags=["pages"])


@router.get("/pages/list", response_model=list[PageSummary])
async def list_page_summaries(
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    ctx = guard.require_context("page")
    pages = await PageService.list_pages(db, ctx.store_id)
    return [
        PageSummary(
            id=p.id,
            store_id=p.store_id,
            title=p.title,
            slug=p.slug,
            status=p.status,
            allow_indexing=p.allow_indexing,
            created_at=p.created_at,
            updated_at=p.updated_at,
            block_count=len(p.blocks or []),
        )
        for p in pages
    ]


@router.get("/pages", response_model=list[PageRead])
async def list_pages(
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    ctx = guard.require_context("page")
    return await PageService.list_pages(db, ctx.store_id)


@router.post("/pages", response_model=PageRead, status_code=status.HTTP_201_CREATED)
async def create_page(
    page_in: PageCreate,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    return await PageService.create_page(db, page_in, store_id=guard.owner_for_create())


@router.get("/pages/{page_id}", response_model=PageRead)
async def get_page(
    page_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    page = await load_page(db, page_id)
    guard.check(page.store_id, resource="page")
    return page


@router.patch("/pages/{page_id}", response_model=PageRead)
async def update_page(
    page_id: UUID,
    page_in: PageUpdate,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    page = await load_page(db, page_id)
    guard.check(page.store_id, resource="page")
    return await PageService.update_page(db, page, page_in.model_dump(exclude_unset=True))


@router.delete("/pages/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page(
    page_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    page = await load_page(db, page_id)
    guard.check(page.store_id, resource="page")
    await PageService.delete_page(db, page)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -----------------------------
# Versions
# -----------------------------
async def _load_version(db: AsyncSession, page_id: UUID, version_id: UUID):
    version = await PageService.get_version(db, page_id, version_id)
    if version is None:
        raise HTTPException(status_code=404, detail="Version not found")
    return version


@router.get("/pages/{page_id}/versions", response_model=list[PageVersionRead])
async def list_page_versions(
    page_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    page = await load_page(db, page_id)
    guard.check(page.store_id, resource="page_version")
    return await PageService.list_versions(db, page.id)


@router.post(
    "/pages/{page_id}/versions",
    response_model=PageVersionRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_page_version(
    page_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    page = await load_page(db, page_id)
    guard.check(page.store_id, resource="page_version")
    return await PageService.create_version(db, page)


@router.post("/pages/{page_id}/versions/{version_id}/restore", response_model=PageRead)
async def restore_page_version(
    page_id: UUID,
    version_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    page = await load_page(db, page_id)
    guard.check(page.store_id, resource="page_version")
    version = await _load_version(db, page.id, version_id)
    return await PageService.restore_version(db, page, version)


@router.get("/public/pages/{page_id}", response_model=PublicPageRead)
async def get_public_page(
    page_id: UUID,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Published pages only; exposes the public storefront fields of the store.
    """
    page = await PageService.get_page(db, page_id)
    if page is None or page.status != PageStatus.published.value:
        raise HTTPException(status_code=404, detail="Page not found")

    store_info = None
    if page.store_id is not None:
        store = await store_service.get_store(db, page.store_id)
        if store is None or not store.is_usable:
            raise HTTPException(status_code=404, detail="Page not found")
        store_info = {
            "shopify_domain": store.shopify_domain,
            "storefront_access_token": store.storefront_access_token,
        }

    response.headers["Cache-Control"] = "public, max-age=300, stale-while-revalidate=3600"
    return PublicPageRead.model_validate(page).model_copy(update={"store_info": store_info})


# -----------------------------
# Form submissions
# -----------------------------
@router.post(
    "/pages/{page_id}/submissions",
    response_model=FormSubmissionRead,
    status_code=status.HTTP_201_CREATED,
)
async def submit_form(
    page_id: UUID,
    submission_in: FormSubmissionCreate,
    db: AsyncSession = Depends(get_db),
    cipher: PiiCipher = Depends(get_pii_cipher),
):
    """
    Public: visitors submit forms. The owner is the page's store.
    """
    page = await load_page(db, page_id)
    submission = await form_submission_service.create_submission(
        db,
        cipher,
        page=page,
        submission_in=submission_in,
    )
    return form_submission_service.submission_view(cipher, submission)


@router.get("/pages/{page_id}/submissions", response_model=list[FormSubmissionRead])
async def list_submissions(
    page_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
    cipher: PiiCipher = Depends(get_pii_cipher),
):
    page = await load_page(db, page_id)
    guard.check(page.store_id, resource="form_submission")
    return await form_submission_service.list_decrypted_submissions(db, cipher, page_id=page.id)


# -----------------------------
# Analytics
# -----------------------------
@router.get("/pages/{page_id}/analytics", response_model=list[AnalyticsEventRead])
async def get_page_analytics(
    page_id: UUID,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    page = await load_page(db, page_id)
    guard.check(page.store_id, resource="analytics")
    return await analytics_service.list_page_events(db, page_id=page.id, start=start_date, end=end_date)


@router.get("/pages/{page_id}/analytics/summary", response_model=AnalyticsSummary)
async def get_page_analytics_summary(
    page_id: UUID,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    page = await load_page(db, page_id)
    guard.check(page.store_id, resource="analytics")
    return await analytics_service.page_summary(db, page_id=page.id, start=start_date, end=end_date)
