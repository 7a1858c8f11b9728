from typing import Optional

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.security.authorization import AccessGuard
from app.security.context import StoreContext
from app.security.store_context import resolve_store_context


async def get_store_context(
    shop: Optional[str] = Query(None, description="Shop domain, e.g. mystore.myshopify.com"),
    store_id_hint: Optional[str] = Query(None, alias="storeId", description="Internal store id"),
    db: AsyncSession = Depends(get_db),
) -> Optional[StoreContext]:
    """
    FastAPI dependency resolving the request's store context.
    Returns None (not an error) when there is no usable store: many routes are public.

    The storeId parameter name must not collide with `{store_id}` path params.
    """
    return await resolve_store_context(db, shop=shop, store_id=store_id_hint)


async def get_access_guard(
    request: Request,
    context: Optional[StoreContext] = Depends(get_store_context),
) -> AccessGuard:
    """
    Per-request ownership guard. Every tenant-scoped route depends on this.
    """
    return AccessGuard(request, context, request.app.state.audit_log)
