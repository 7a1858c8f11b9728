from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.tracking_number import TrackingNumberCreate, TrackingNumberRead, TrackingNumberUpdate
from app.security.authorization import AccessGuard
from app.security.dependencies import get_access_guard
from app.services import tracking_number_service

router = APIRouter(prefix="/tracking-numbers", tags=["tracking-numbers"])


async def _load_number(db: AsyncSession, number_id: UUID):
    number = await tracking_number_service.get_tracking_number(db, number_id)
    if number is None:
        raise HTTPException(status_code=404, detail="Tracking number not found")
    return number


@router.get("", response_model=list[TrackingNumberRead])
async def list_tracking_numbers(
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    ctx = guard.require_context("tracking_number")
    return await tracking_number_service.list_tracking_numbers(db, store_id=ctx.store_id)


@router.post("", response_model=TrackingNumberRead, status_code=status.HTTP_201_CREATED)
async def add_tracking_number(
    number_in: TrackingNumberCreate,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    # The body names a store; it must be the caller's own
    guard.check(number_in.store_id, resource="tracking_number")
    return await tracking_number_service.add_tracking_number(
        db,
        store_id=number_in.store_id,
        phone_number=number_in.phone_number,
        forward_to=number_in.forward_to,
    )


@router.patch("/{number_id}", response_model=TrackingNumberRead)
async def update_tracking_number(
    number_id: UUID,
    number_in: TrackingNumberUpdate,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    number = await _load_number(db, number_id)
    guard.check(number.store_id, resource="tracking_number")
    return await tracking_number_service.update_tracking_number(
        db, number, number_in.model_dump(exclude_unset=True)
    )


@router.delete("/{number_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tracking_number(
    number_id: UUID,
    db: AsyncSession = Depends(get_db),
    guard: AccessGuard = Depends(get_access_guard),
):
    number = await _load_number(db, number_id)
    guard.check(number.store_id, resource="tracking_number")
    await tracking_number_service.delete_tracking_number(db, number)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
