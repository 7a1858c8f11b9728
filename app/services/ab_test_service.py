from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.ab_test import AbTest, AbTestStatus, AbTestVariant
from app.models.page import Page
from app.schemas.ab_test import AbTestCreate, AbTestVariantCreate


class AbTestService:
    @staticmethod
    async def get_test(db: AsyncSession, test_id: UUID) -> AbTest | None:
        res = await db.execute(select(AbTest).where(AbTest.id == test_id))
        return res.scalar_one_or_none()

    @staticmethod
    async def list_tests(db: AsyncSession, store_id: UUID) -> list[AbTest]:
        res = await db.execute(
            select(AbTest).where(AbTest.store_id == store_id).order_by(desc(AbTest.created_at))
        )
        return list(res.scalars().all())

    @staticmethod
    async def get_running_test_for_page(db: AsyncSession, page_id: UUID) -> AbTest | None:
        res = await db.execute(
            select(AbTest)
            .where(
                AbTest.original_page_id == page_id,
                AbTest.status == AbTestStatus.running.value,
            )
            .order_by(desc(AbTest.created_at))
            .limit(1)
        )
        return res.scalar_one_or_none()

    @staticmethod
    async def create_test(db: AsyncSession, test_in: AbTestCreate, *, page: Page) -> AbTest:
        test = AbTest(
            store_id=page.store_id,  # owner follows the original page
            name=test_in.name,
            description=test_in.description,
            original_page_id=page.id,
            traffic_split_type=test_in.traffic_split_type,
            goal_type=test_in.goal_type,
        )
        db.add(test)
        await db.commit()
        await db.refresh(test)
        return test

    @staticmethod
    async def update_test(db: AsyncSession, test: AbTest, changes: dict[str, Any]) -> AbTest:
        if isinstance(changes.get("status"), AbTestStatus):
            changes["status"] = changes["status"].value
        for field, value in changes.items():
            setattr(test, field, value)
        await db.commit()
        await db.refresh(test)
        return test

    @staticmethod
    async def delete_test(db: AsyncSession, test: AbTest) -> None:
        # variants go with the test
        variants = await AbTestService.list_variants(db, test.id)
        for v in variants:
            await db.delete(v)
        await db.delete(test)
        await db.commit()

    @staticmethod
    async def list_variants(db: AsyncSession, test_id: UUID) -> list[AbTestVariant]:
        res = await db.execute(
            select(AbTestVariant)
            .where(AbTestVariant.ab_test_id == test_id)
            .order_by(AbTestVariant.created_at)
        )
        return list(res.scalars().all())

    @staticmethod
    async def get_variant(db: AsyncSession, test_id: UUID, variant_id: UUID) -> AbTestVariant | None:
        res = await db.execute(
            select(AbTestVariant).where(
                AbTestVariant.id == variant_id,
                AbTestVariant.ab_test_id == test_id,
            )
        )
        return res.scalar_one_or_none()

    @staticmethod
    async def create_variant(db: AsyncSession, test: AbTest, variant_in: AbTestVariantCreate) -> AbTestVariant:
        variant = AbTestVariant(
            ab_test_id=test.id,
            page_id=variant_in.page_id,
            name=variant_in.name,
            traffic_percentage=variant_in.traffic_percentage,
            utm_source_match=variant_in.utm_source_match,
            is_control=variant_in.is_control,
        )
        db.add(variant)
        await db.commit()
        await db.refresh(variant)
        return variant

    @staticmethod
    async def update_variant(db: AsyncSession, variant: AbTestVariant, changes: dict[str, Any]) -> AbTestVariant:
        for field, value in changes.items():
            setattr(variant, field, value)
        await db.commit()
        await db.refresh(variant)
        return variant

    @staticmethod
    async def delete_variant(db: AsyncSession, variant: AbTestVariant) -> None:
        await db.delete(variant)
        await db.commit()
