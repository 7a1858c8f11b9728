"""
Common Pydantic models for the Storefront Pages API
"""
from pydantic import BaseModel
from datetime import datetime


class HealthResponse(BaseModel):
    """
    Health check response model
    """
    status: str
    message: str
    timestamp: datetime
    version: str
