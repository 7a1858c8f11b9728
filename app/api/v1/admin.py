from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.audit import AuditLogList
from app.schemas.store import StoreInstall, StoreRead
from app.security.admin_auth import require_admin
from app.security.audit import AuditEventType
from app.security.rate_limit import strict_rate_limit
from app.services import audit_service, store_service

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(strict_rate_limit), Depends(require_admin)],
)


@router.post("/stores", response_model=StoreRead, status_code=status.HTTP_201_CREATED)
async def install_store(store_in: StoreInstall, db: AsyncSession = Depends(get_db)):
    """
    Install or reinstall a store. Stands in for the OAuth callback.
    """
    return await store_service.install_store(
        db,
        shop=store_in.shop,
        name=store_in.name,
        access_token=store_in.access_token,
        storefront_access_token=store_in.storefront_access_token,
        scopes=store_in.scopes,
    )


@router.get("/audit-logs", response_model=AuditLogList)
async def list_audit_logs(
    event_type: Optional[AuditEventType] = None,
    store_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    return await audit_service.list_audit_logs(
        db,
        event_type=event_type.value if event_type else None,
        store_id=store_id,
        limit=limit,
    )
