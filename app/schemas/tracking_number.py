from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.schemas.validators import reject_null

_PHONE = r"^\+?[0-9 ()\-]{7,20}$"


class TrackingNumberCreate(BaseModel):
    store_id: UUID
    phone_number: str = Field(..., pattern=_PHONE)
    forward_to: Optional[str] = Field(default=None, pattern=_PHONE)


class TrackingNumberUpdate(BaseModel):
    forward_to: Optional[str] = Field(default=None, pattern=_PHONE)
    is_available: Optional[bool] = None

    @field_validator("is_available")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class TrackingNumberRead(BaseModel):
    id: UUID
    store_id: Optional[UUID]
    phone_number: str
    forward_to: Optional[str]
    is_available: bool
    assigned_at: Optional[datetime]
    expires_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True
