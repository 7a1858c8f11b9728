"""
Health check endpoints for monitoring application status.
Mounted outside the rate-limited router.
"""
from datetime import datetime

from fastapi import APIRouter

from app.models.common import HealthResponse

router = APIRouter(prefix="/health")


@router.get("", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint to verify the API is running
    """
    return HealthResponse(
        status="healthy",
        message="Storefront Pages API is running",
        timestamp=datetime.utcnow(),
        version="1.0.0",
    )


@router.get("/ready", response_model=HealthResponse)
async def readiness_check():
    """
    Readiness check endpoint for Kubernetes deployments
    """
    return HealthResponse(
        status="ready",
        message="Storefront Pages API is ready to accept requests",
        timestamp=datetime.utcnow(),
        version="1.0.0",
    )
