from uuid import UUID

from fastapi import HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.ab_test import AbTest
from app.models.page import Page
from app.security.pii_cipher import PiiCipher
from app.services.ab_test_service import AbTestService
from app.services.page_service import PageService


def get_pii_cipher(request: Request) -> PiiCipher:
    return request.app.state.pii_cipher


# -----------------------------
# Loaders: 404 before any ownership decision
# -----------------------------
async def load_page(db: AsyncSession, page_id: UUID) -> Page:
    page = await PageService.get_page(db, page_id)
    if page is None:
        raise HTTPException(status_code=404, detail="Page not found")
    return page


async def load_ab_test(db: AsyncSession, test_id: UUID) -> AbTest:
    test = await AbTestService.get_test(db, test_id)
    if test is None:
        raise HTTPException(status_code=404, detail="A/B test not found")
    return test
