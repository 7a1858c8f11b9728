from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.analytics_event import AnalyticsEventType


class AnalyticsEventCreate(BaseModel):
    # Any client-sent store_id is ignored; the owner is the page's store
    page_id: UUID
    event_type: AnalyticsEventType
    visitor_id: str = Field(..., min_length=1, max_length=100)
    block_id: Optional[str] = Field(default=None, max_length=100)
    session_id: Optional[str] = Field(default=None, max_length=100)
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    referrer: Optional[str] = None
    ab_test_id: Optional[UUID] = None
    variant_id: Optional[UUID] = None
    metadata: Optional[Dict[str, Any]] = None


class AnalyticsEventRead(BaseModel):
    id: UUID
    store_id: Optional[UUID]
    page_id: UUID
    event_type: str
    block_id: Optional[str]
    visitor_id: str
    session_id: Optional[str]
    utm_source: Optional[str]
    utm_medium: Optional[str]
    utm_campaign: Optional[str]
    referrer: Optional[str]
    ab_test_id: Optional[UUID]
    variant_id: Optional[UUID]
    created_at: datetime

    class Config:
        from_attributes = True


class AnalyticsSummary(BaseModel):
    page_views: int = 0
    unique_visitors: int = 0
    form_submissions: int = 0
    button_clicks: int = 0
    phone_clicks: int = 0
    by_source: Dict[str, int] = Field(default_factory=dict)
    by_day: Dict[str, int] = Field(default_factory=dict)
