from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.store import InstallState, Store

logger = get_logger(__name__)

# Client-editable columns; domain, credentials and install state are not
UPDATABLE_FIELDS = ("name", "custom_domain")


async def get_store(db: AsyncSession, store_id: UUID) -> Store | None:
    res = await db.execute(select(Store).where(Store.id == store_id))
    return res.scalar_one_or_none()


async def get_store_by_domain(db: AsyncSession, shop: str) -> Store | None:
    res = await db.execute(select(Store).where(Store.shopify_domain == shop))
    return res.scalar_one_or_none()


async def get_active_store_by_domain(db: AsyncSession, shop: str | None) -> Store | None:
    if not shop:
        return None
    store = await get_store_by_domain(db, shop)
    if store is None or not store.is_usable:
        return None
    return store


async def install_store(
    db: AsyncSession,
    *,
    shop: str,
    name: str,
    access_token: str | None = None,
    storefront_access_token: str | None = None,
    scopes: str | None = None,
) -> Store:
    """
    Create the store on first install, reactivate it on reinstall.
    One row per shop domain.
    """
    store = await get_store_by_domain(db, shop)
    now = datetime.utcnow()

    if store is None:
        store = Store(shopify_domain=shop, name=name)
        db.add(store)
    else:
        store.name = name

    store.shopify_access_token = access_token
    store.storefront_access_token = storefront_access_token
    store.shopify_scopes = scopes
    store.install_state = InstallState.installed.value
    store.installed_at = now
    store.uninstalled_at = None
    store.is_active = True

    await db.commit()
    await db.refresh(store)
    logger.info("Store installed: %s", shop)
    return store


async def mark_store_uninstalled(db: AsyncSession, shop: str) -> Store | None:
    store = await get_store_by_domain(db, shop)
    if store is None:
        return None

    store.install_state = InstallState.uninstalled.value
    store.uninstalled_at = datetime.utcnow()
    store.is_active = False
    # Credentials are useless after uninstall; do not keep them around
    store.shopify_access_token = None
    store.storefront_access_token = None

    await db.commit()
    await db.refresh(store)
    logger.info("Store uninstalled: %s", shop)
    return store


async def update_store(db: AsyncSession, store: Store, changes: dict[str, Any]) -> Store:
    for field in UPDATABLE_FIELDS:
        if field in changes:
            setattr(store, field, changes[field])
    await db.commit()
    await db.refresh(store)
    return store
