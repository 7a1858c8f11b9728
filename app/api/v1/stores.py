from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.store import StoreRead, StoreUpdate
from app.security.authorization import AccessGuard
from app.security.dependencies import get_access_guard
from app.services import store_service

router = APIRouter(prefix="/stores")


@router.get("", response_model=list[StoreRead])
async def list_stores(
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    """
    Only ever the caller's own store.
    """
    ctx = guard.require_context("store")
    store = await store_service.get_store(db, ctx.store_id)
    return [store] if store else []


@router.get("/{store_id}", response_model=StoreRead)
async def get_store(
    store_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    guard.check(store_id, resource="store")
    store = await store_service.get_store(db, store_id)
    if store is None:
        raise HTTPException(status_code=404, detail="Store not found")
    return store


@router.patch("/{store_id}", response_model=StoreRead)
async def update_store(
    store_id: UUID,
    store_in: StoreUpdate,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    guard.check(store_id, resource="store")
    store = await store_service.get_store(db, store_id)
    if store is None:
        raise HTTPException(status_code=404, detail="Store not found")
    return await store_service.update_store(db, store, store_in.model_dump(exclude_unset=True))
