from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.models.page import PageStatus
from app.schemas.validators import reject_null


class PageCreate(BaseModel):
    """
    store_id is not accepted from clients: the owner comes from the store context.
    """
    title: str = Field(..., min_length=1, max_length=500)
    slug: str = Field(..., min_length=1, max_length=200, pattern=r"^[a-z0-9][a-z0-9-]*$")
    blocks: List[Dict[str, Any]] = Field(default_factory=list)
    sections: List[Dict[str, Any]] = Field(default_factory=list)
    pixel_settings: Optional[Dict[str, Any]] = None
    status: PageStatus = PageStatus.draft
    allow_indexing: bool = True


class PageUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=200, pattern=r"^[a-z0-9][a-z0-9-]*$")
    blocks: Optional[List[Dict[str, Any]]] = None
    sections: Optional[List[Dict[str, Any]]] = None
    pixel_settings: Optional[Dict[str, Any]] = None
    status: Optional[PageStatus] = None
    allow_indexing: Optional[bool] = None

    @field_validator("title", "slug", "blocks", "sections", "status", "allow_indexing")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class PageRead(BaseModel):
    id: UUID
    store_id: Optional[UUID]
    title: str
    slug: str
    blocks: List[Dict[str, Any]]
    sections: List[Dict[str, Any]]
    pixel_settings: Optional[Dict[str, Any]]
    status: str
    allow_indexing: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PageSummary(BaseModel):
    """Lightweight listing row, no block payload."""
    id: UUID
    store_id: Optional[UUID]
    title: str
    slug: str
    status: str
    allow_indexing: bool
    created_at: datetime
    updated_at: datetime
    block_count: int


class PublicPageRead(PageRead):
    store_info: Optional[Dict[str, Optional[str]]] = None


class PageVersionRead(BaseModel):
    id: UUID
    page_id: UUID
    version_number: int
    title: str
    blocks: List[Dict[str, Any]]
    pixel_settings: Optional[Dict[str, Any]]
    created_at: datetime

    class Config:
        from_attributes = True
