from __future__ import annotations

import time
from typing import Any
from uuid import UUID

from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.page import Page, PageStatus
from app.models.page_version import PageVersion
from app.schemas.page import PageCreate


class PageService:
    @staticmethod
    async def get_page(db: AsyncSession, page_id: UUID) -> Page | None:
        result = await db.execute(select(Page).where(Page.id == page_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_pages(db: AsyncSession, store_id: UUID) -> list[Page]:
        result = await db.execute(
            select(Page)
            .where(Page.store_id == store_id)
            .order_by(desc(Page.updated_at))
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_page_by_slug(db: AsyncSession, slug: str, store_id: UUID | None) -> Page | None:
        query = select(Page).where(Page.slug == slug)
        if store_id is None:
            query = query.where(Page.store_id.is_(None))
        else:
            query = query.where(Page.store_id == store_id)
        result = await db.execute(query.limit(1))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_published_page_by_slug(db: AsyncSession, slug: str, store_id: UUID) -> Page | None:
        page = await PageService.get_page_by_slug(db, slug, store_id)
        if page is None or page.status != PageStatus.published.value:
            return None
        return page

    @staticmethod
    async def _unique_slug(db: AsyncSession, slug: str, store_id: UUID | None, page_id: UUID | None = None) -> str:
        existing = await PageService.get_page_by_slug(db, slug, store_id)
        if existing is None or existing.id == page_id:
            return slug
        # Slugs are unique per store; suffix on clash
        return f"{slug}-{int(time.time() * 1000)}"

    @staticmethod
    async def create_page(
        db: AsyncSession,
        page_in: PageCreate,
        *,
        store_id: UUID | None,
    ) -> Page:
        page = Page(
            store_id=store_id,
            title=page_in.title,
            slug=await PageService._unique_slug(db, page_in.slug, store_id),
            blocks=page_in.blocks,
            sections=page_in.sections,
            pixel_settings=page_in.pixel_settings,
            status=page_in.status.value,
            allow_indexing=page_in.allow_indexing,
        )
        db.add(page)
        await db.commit()
        await db.refresh(page)
        return page

    @staticmethod
    async def update_page(db: AsyncSession, page: Page, changes: dict[str, Any]) -> Page:
        # store_id is never in `changes`: the update schema has no such field
        if "slug" in changes and changes["slug"] != page.slug:
            changes["slug"] = await PageService._unique_slug(db, changes["slug"], page.store_id, page.id)
        if "status" in changes and isinstance(changes["status"], PageStatus):
            changes["status"] = changes["status"].value

        for field, value in changes.items():
            setattr(page, field, value)

        await db.commit()
        await db.refresh(page)
        return page

    @staticmethod
    async def delete_page(db: AsyncSession, page: Page) -> None:
        await db.delete(page)
        await db.commit()

    # -----------------------------
    # Versions
    # -----------------------------
    @staticmethod
    async def list_versions(db: AsyncSession, page_id: UUID) -> list[PageVersion]:
        result = await db.execute(
            select(PageVersion)
            .where(PageVersion.page_id == page_id)
            .order_by(desc(PageVersion.version_number))
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_version(db: AsyncSession, page_id: UUID, version_id: UUID) -> PageVersion | None:
        # Scoped by page: a version id from another page is not found
        result = await db.execute(
            select(PageVersion).where(
                PageVersion.id == version_id,
                PageVersion.page_id == page_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _snapshot(page: Page, version_number: int) -> PageVersion:
        return PageVersion(
            page_id=page.id,
            version_number=version_number,
            title=page.title,
            blocks=list(page.blocks or []),
            pixel_settings=page.pixel_settings,
        )

    @staticmethod
    async def _next_version_number(db: AsyncSession, page_id: UUID) -> int:
        result = await db.execute(
            select(func.max(PageVersion.version_number)).where(PageVersion.page_id == page_id)
        )
        return (result.scalar() or 0) + 1

    @staticmethod
    async def create_version(db: AsyncSession, page: Page) -> PageVersion:
        version = PageService._snapshot(page, await PageService._next_version_number(db, page.id))
        db.add(version)
        await db.commit()
        await db.refresh(version)
        return version

    @staticmethod
    async def restore_version(db: AsyncSession, page: Page, version: PageVersion) -> Page:
        """
        Copies the version's content back onto the page. The current content
        is kept as a new version first so a restore can itself be undone.
        """
        db.add(PageService._snapshot(page, await PageService._next_version_number(db, page.id)))

        page.title = version.title
        page.blocks = list(version.blocks or [])
        page.pixel_settings = version.pixel_settings

        await db.commit()
        await db.refresh(page)
        return page
