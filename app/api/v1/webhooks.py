from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.db.session import get_db
from app.security.audit import AuditEventType, RequestMeta
from app.security.rate_limit import strict_rate_limit
from app.security.signatures import verify_webhook_hmac
from app.services import store_service

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"], dependencies=[Depends(strict_rate_limit)])


@router.post("/app-uninstalled")
async def app_uninstalled(
    request: Request,
    x_shopify_hmac_sha256: str | None = Header(default=None, alias="X-Shopify-Hmac-Sha256"),
    x_shopify_shop_domain: str | None = Header(default=None, alias="X-Shopify-Shop-Domain"),
    db: AsyncSession = Depends(get_db),
):
    """
    Shopify app/uninstalled webhook. The raw body must be HMAC verified
    before anything is parsed or changed.
    """
    if not x_shopify_hmac_sha256 or not x_shopify_shop_domain:
        raise HTTPException(status_code=401, detail="Missing webhook headers")

    secret = settings.SHOPIFY_API_SECRET
    if not secret:
        logger.error("Webhook received but SHOPIFY_API_SECRET is not configured")
        raise HTTPException(status_code=500, detail="Server configuration error")

    raw_body = await request.body()
    if not verify_webhook_hmac(raw_body, x_shopify_hmac_sha256, secret):
        request.app.state.audit_log.record(
            AuditEventType.invalid_signature,
            RequestMeta.from_request(request, shop=x_shopify_shop_domain),
            details={"reason": "webhook_hmac_mismatch", "topic": "app/uninstalled"},
        )
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    store = await store_service.mark_store_uninstalled(db, x_shopify_shop_domain)
    if store is None:
        logger.warning("Uninstall webhook for unknown shop: %s", x_shopify_shop_domain)

    return {"success": True}
