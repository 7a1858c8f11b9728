from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import load_ab_test, load_page
from app.db.session import get_db
from app.models.ab_test import AbTest
from app.models.analytics_event import AnalyticsEventType
from app.models.page import PageStatus
from app.schemas.ab_test import (
    AbTestCreate,
    AbTestRead,
    AbTestResults,
    AbTestUpdate,
    AbTestVariantCreate,
    AbTestVariantRead,
    AbTestVariantUpdate,
    ActiveAbTest,
    VariantResult,
)
from app.security.audit import AuditEventType, RequestMeta
from app.security.authorization import FORBIDDEN_DETAIL, AccessGuard
from app.security.dependencies import get_access_guard
from app.services import analytics_service
from app.services.ab_test_service import AbTestService
from app.services.page_service import PageService

router = APIRouter(prefix="/ab-tests", tags=["ab-tests"])


async def _check_variant_page(db: AsyncSession, guard: AccessGuard, test: AbTest, page_id: UUID) -> None:
    """A variant may only point at a page of the test's own store."""
    page = await load_page(db, page_id)
    if page.store_id is not None and str(page.store_id) != str(test.store_id):
        guard.audit_log.record(
            AuditEventType.cross_tenant_attempt,
            RequestMeta.from_request(guard.request, shop=guard.context.shop if guard.context else None),
            store_id=guard.store_id,
            attempted_store_id=page.store_id,
            details={"reason": "variant_page_store_mismatch", "resource": "ab_test_variant"},
        )
        raise HTTPException(status_code=403, detail=FORBIDDEN_DETAIL)


@router.get("", response_model=list[AbTestRead])
async def list_ab_tests(
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    ctx = guard.require_context("ab_test")
    return await AbTestService.list_tests(db, ctx.store_id)


@router.get("/for-page/{page_id}", response_model=ActiveAbTest | None)
async def get_active_test_for_page(page_id: UUID, db: AsyncSession = Depends(get_db)):
    """
    Public: storefront pages ask which running test (if any) they belong to.
    """
    page = await PageService.get_page(db, page_id)
    if page is None or page.status != PageStatus.published.value:
        return None

    test = await AbTestService.get_running_test_for_page(db, page.id)
    if test is None:
        return None
    variants = await AbTestService.list_variants(db, test.id)
    return ActiveAbTest(
        test=AbTestRead.model_validate(test),
        variants=[AbTestVariantRead.model_validate(v) for v in variants],
    )


@router.post("", response_model=AbTestRead, status_code=status.HTTP_201_CREATED)
async def create_ab_test(
    test_in: AbTestCreate,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    page = await load_page(db, test_in.original_page_id)
    guard.check(page.store_id, resource="ab_test")
    return await AbTestService.create_test(db, test_in, page=page)


@router.get("/{test_id}", response_model=AbTestRead)
async def get_ab_test(
    test_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    test = await load_ab_test(db, test_id)
    guard.check(test.store_id, resource="ab_test")
    return test


@router.patch("/{test_id}", response_model=AbTestRead)
async def update_ab_test(
    test_id: UUID,
    test_in: AbTestUpdate,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    test = await load_ab_test(db, test_id)
    guard.check(test.store_id, resource="ab_test")
    return await AbTestService.update_test(db, test, test_in.model_dump(exclude_unset=True))


@router.delete("/{test_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ab_test(
    test_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    test = await load_ab_test(db, test_id)
    guard.check(test.store_id, resource="ab_test")
    await AbTestService.delete_test(db, test)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{test_id}/results", response_model=AbTestResults)
async def get_ab_test_results(
    test_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    test = await load_ab_test(db, test_id)
    guard.check(test.store_id, resource="ab_test")

    goal_by_type = {
        AnalyticsEventType.form_submission.value: "form_submissions",
        AnalyticsEventType.button_click.value: "button_clicks",
        AnalyticsEventType.page_view.value: "page_views",
    }

    results = []
    for variant in await AbTestService.list_variants(db, test.id):
        summary = await analytics_service.page_summary(
            db,
            page_id=variant.page_id,
            start=test.start_date,
            end=test.end_date,
        )
        conversions = getattr(summary, goal_by_type.get(test.goal_type, "form_submissions"))
        rate = (conversions / summary.page_views * 100) if summary.page_views else 0.0
        results.append(
            VariantResult(
                variant=AbTestVariantRead.model_validate(variant),
                summary=summary,
                conversion_rate=round(rate, 2),
            )
        )

    return AbTestResults(test=AbTestRead.model_validate(test), results=results)


# -----------------------------
# Variants
# -----------------------------
@router.get("/{test_id}/variants", response_model=list[AbTestVariantRead])
async def list_variants(
    test_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    test = await load_ab_test(db, test_id)
    guard.check(test.store_id, resource="ab_test")
    return await AbTestService.list_variants(db, test.id)


@router.post(
    "/{test_id}/variants",
    response_model=AbTestVariantRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_variant(
    test_id: UUID,
    variant_in: AbTestVariantCreate,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    test = await load_ab_test(db, test_id)
    guard.check(test.store_id, resource="ab_test")
    await _check_variant_page(db, guard, test, variant_in.page_id)
    return await AbTestService.create_variant(db, test, variant_in)


@router.patch("/{test_id}/variants/{variant_id}", response_model=AbTestVariantRead)
async def update_variant(
    test_id: UUID,
    variant_id: UUID,
    variant_in: AbTestVariantUpdate,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    test = await load_ab_test(db, test_id)
    guard.check(test.store_id, resource="ab_test")

    variant = await AbTestService.get_variant(db, test.id, variant_id)
    if variant is None:
        raise HTTPException(status_code=404, detail="Variant not found")

    changes = variant_in.model_dump(exclude_unset=True)
    if changes.get("page_id") is not None:
        await _check_variant_page(db, guard, test, changes["page_id"])
    return await AbTestService.update_variant(db, variant, changes)


@router.delete("/{test_id}/variants/{variant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_variant(
    test_id: UUID,
    variant_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    test = await load_ab_test(db, test_id)
    guard.check(test.store_id, resource="ab_test")

    variant = await AbTestService.get_variant(db, test.id, variant_id)
    if variant is None:
        raise HTTPException(status_code=404, detail="Variant not found")
    await AbTestService.delete_variant(db, variant)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
