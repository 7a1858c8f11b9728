from app.core.config import settings

# Tier name -> (max requests, window seconds, key suffix)
RATE_LIMIT_TIERS = {
    "general": {
        "limit": settings.RATE_LIMIT_GENERAL_MAX,   # 100 / minute
        "window_seconds": settings.RATE_LIMIT_WINDOW_SECONDS,
        "key_suffix": "",
        "message": "Please try again later",
    },
    "strict": {
        "limit": settings.RATE_LIMIT_STRICT_MAX,    # 10 / minute
        "window_seconds": settings.RATE_LIMIT_WINDOW_SECONDS,
        "key_suffix": ":strict",
        "message": "This endpoint has stricter rate limits. Please try again later.",
    },
}

# Never throttled, whatever router they end up on
RATE_LIMIT_EXEMPT_PATHS = frozenset({"/health", "/health/ready", "/api/v1/health", "/api/v1/health/ready"})
