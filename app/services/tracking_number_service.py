from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tracking_number import TrackingNumber


async def list_tracking_numbers(db: AsyncSession, *, store_id: UUID) -> list[TrackingNumber]:
    res = await db.execute(
        select(TrackingNumber)
        .where(TrackingNumber.store_id == store_id)
        .order_by(desc(TrackingNumber.created_at))
    )
    return list(res.scalars().all())


async def get_tracking_number(db: AsyncSession, number_id: UUID) -> TrackingNumber | None:
    res = await db.execute(select(TrackingNumber).where(TrackingNumber.id == number_id))
    return res.scalar_one_or_none()


async def add_tracking_number(
    db: AsyncSession,
    *,
    store_id: UUID,
    phone_number: str,
    forward_to: str | None = None,
) -> TrackingNumber:
    number = TrackingNumber(
        store_id=store_id,
        phone_number=phone_number,
        forward_to=forward_to,
        is_available=True,
    )
    db.add(number)
    await db.commit()
    await db.refresh(number)
    return number


async def update_tracking_number(db: AsyncSession, number: TrackingNumber, changes: dict[str, Any]) -> TrackingNumber:
    for field, value in changes.items():
        setattr(number, field, value)
    await db.commit()
    await db.refresh(number)
    return number


async def delete_tracking_number(db: AsyncSession, number: TrackingNumber) -> None:
    await db.delete(number)
    await db.commit()
