from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.analytics import AnalyticsEventCreate, AnalyticsEventRead
from app.services import analytics_service
from app.services.page_service import PageService

router = APIRouter(tags=["analytics"])


@router.post("/analytics", response_model=AnalyticsEventRead, status_code=status.HTTP_201_CREATED)
async def record_analytics_event(
    event_in: AnalyticsEventCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Public tracking beacon. store_id is always taken from the page.
    """
    page = await PageService.get_page(db, event_in.page_id)
    if page is None:
        raise HTTPException(status_code=400, detail="Unknown page")
    return await analytics_service.record_event(db, page=page, event_in=event_in)
