"""
Shopify App Proxy routes.

Shopify forwards ``https://<shop>/apps/<subpath>/...`` here with a signed
query string; every route depends on require_app_proxy_signature, so an
unsigned or tampered request never reaches a handler body.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_pii_cipher
from app.core.logging import get_logger
from app.db.session import get_db
from app.schemas.form_submission import ProxyFormSubmission
from app.security.audit import AuditEventType, RequestMeta
from app.security.authorization import FORBIDDEN_DETAIL
from app.security.pii_cipher import PiiCipher
from app.security.rate_limit import general_rate_limit
from app.security.signatures import require_app_proxy_signature
from app.services import form_submission_service, store_service
from app.services.page_renderer import render_404_page, render_page
from app.services.page_service import PageService

logger = get_logger(__name__)

router = APIRouter(
    tags=["app-proxy"],
    dependencies=[Depends(general_rate_limit)],
)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def _html(content: str, status_code: int = 200, cache: Optional[str] = None) -> HTMLResponse:
    headers = dict(SECURITY_HEADERS)
    headers["Cache-Control"] = cache or "no-store"
    return HTMLResponse(content=content, status_code=status_code, headers=headers)


@router.get("/lp/{slug}", response_class=HTMLResponse)
async def render_landing_page(
    slug: str,
    request: Request,
    preview: bool = False,
    shop: Optional[str] = Depends(require_app_proxy_signature),
    db: AsyncSession = Depends(get_db),
):
    store = await store_service.get_active_store_by_domain(db, shop)
    if store is None:
        request.app.state.audit_log.record(
            AuditEventType.access_denied,
            RequestMeta.from_request(request, shop=shop),
            details={"reason": "proxy_unknown_or_inactive_store", "slug": slug},
        )
        return _html(render_404_page(), status_code=404)

    if preview:
        page = await PageService.get_page_by_slug(db, slug, store.id)
    else:
        page = await PageService.get_published_page_by_slug(db, slug, store.id)

    if page is None:
        return _html(render_404_page(), status_code=404)

    cache = "no-store" if preview else "public, max-age=60"
    return _html(render_page(page, store), cache=cache)


@router.post("/api/submit-form", status_code=status.HTTP_201_CREATED)
async def submit_form(
    submission_in: ProxyFormSubmission,
    request: Request,
    shop: Optional[str] = Depends(require_app_proxy_signature),
    db: AsyncSession = Depends(get_db),
    cipher: PiiCipher = Depends(get_pii_cipher),
):
    store = await store_service.get_active_store_by_domain(db, shop)
    if store is None:
        raise HTTPException(status_code=404, detail="Store not found")

    page = await PageService.get_page(db, submission_in.page_id)
    if page is None:
        raise HTTPException(status_code=404, detail="Page not found")

    if str(page.store_id) != str(store.id):
        request.app.state.audit_log.record(
            AuditEventType.cross_tenant_attempt,
            RequestMeta.from_request(request, shop=shop),
            store_id=store.id,
            attempted_store_id=page.store_id,
            details={"reason": "proxy_form_page_store_mismatch", "resource": "form_submission"},
        )
        raise HTTPException(status_code=403, detail=FORBIDDEN_DETAIL)

    submission = await form_submission_service.create_submission(
        db,
        cipher,
        page=page,
        submission_in=submission_in,
    )
    logger.info("Proxy form submission %s stored for shop %s", submission.id, store.shopify_domain)
    return {"success": True, "id": str(submission.id)}
