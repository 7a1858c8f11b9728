from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.schemas.validators import reject_null


class StoreInstall(BaseModel):
    """Admin install / reinstall payload (stands in for the OAuth callback)."""
    shop: str = Field(..., min_length=3, max_length=255, pattern=r"^[a-zA-Z0-9][a-zA-Z0-9.-]*$")
    name: str = Field(..., min_length=1, max_length=255)
    access_token: Optional[str] = None
    storefront_access_token: Optional[str] = None
    scopes: Optional[str] = None


class StoreUpdate(BaseModel):
    # Unknown keys (store_id, shopify_domain, tokens, install_state) are ignored
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    custom_domain: Optional[str] = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class StoreRead(BaseModel):
    """Credentials are deliberately absent."""
    id: UUID
    name: str
    shopify_domain: str
    custom_domain: Optional[str]
    install_state: str
    installed_at: Optional[datetime]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
