from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class FormSubmissionCreate(BaseModel):
    block_id: str = Field(default="", max_length=100)
    data: Dict[str, Any] = Field(default_factory=dict)
    utm_params: Dict[str, str] = Field(default_factory=dict)
    landing_page: Optional[str] = None
    referrer: Optional[str] = None
    visitor_id: Optional[str] = Field(default=None, max_length=100)
    session_id: Optional[str] = Field(default=None, max_length=100)


class ProxyFormSubmission(FormSubmissionCreate):
    page_id: UUID


class FormSubmissionRead(BaseModel):
    id: UUID
    store_id: Optional[UUID]
    page_id: UUID
    block_id: str
    data: Dict[str, Any]
    utm_params: Dict[str, Any]
    landing_page: Optional[str]
    referrer: Optional[str]
    submitted_at: datetime

    class Config:
        from_attributes = True
