from fastapi import APIRouter, Depends

from app.api.v1 import ab_tests, admin, analytics, health, pages, stores, tracking_numbers, webhooks
from app.security.rate_limit import general_rate_limit

router = APIRouter()

# Health probes are never throttled
router.include_router(health.router, tags=["health"])

limited = APIRouter(dependencies=[Depends(general_rate_limit)])
limited.include_router(stores.router, tags=["stores"])
limited.include_router(pages.router)
limited.include_router(analytics.router)
limited.include_router(ab_tests.router)
limited.include_router(tracking_numbers.router)
limited.include_router(webhooks.router)

# Admin
limited.include_router(admin.router)

router.include_router(limited)
