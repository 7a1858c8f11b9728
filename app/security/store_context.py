from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.security.context import StoreContext
from app.services import store_service

logger = get_logger(__name__)


def _parse_store_id(raw: str) -> UUID | None:
    try:
        return UUID(raw)
    except (ValueError, TypeError, AttributeError):
        return None


async def resolve_store_context(
    db: AsyncSession,
    *,
    shop: str | None = None,
    store_id: str | None = None,
) -> StoreContext | None:
    """
    Map a tenant hint (internal store id or shop domain) to an active store.

    No hint, unknown store, inactive/uninstalled store, malformed id or a
    lookup error all yield None. Rejecting is left to the route's guard.
    """
    if not shop and not store_id:
        return None

    try:
        if store_id:
            parsed = _parse_store_id(store_id)
            if parsed is None:
                return None
            store = await store_service.get_store(db, parsed)
        else:
            store = await store_service.get_store_by_domain(db, shop)
    except Exception:
        logger.exception("Error resolving store context")
        return None

    if store is None or not store.is_usable:
        return None

    return StoreContext(store_id=store.id, shop=store.shopify_domain, name=store.name)
