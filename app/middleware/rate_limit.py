"""Rate limiting middleware for API protection"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from app.config import settings


def get_identifier(request: Request) -> str:
    """
    Get identifier for rate limiting based on authentication

    Priority:
    1. Admin key
    2. IP address (media tokens rotate too often to key on)
    """
    admin_key = request.headers.get("x-admin-key")
    if admin_key == settings.ADMIN_API_KEY:
        return "admin:authenticated"

    return get_remote_address(request)


# Create limiter instance
limiter = Limiter(
    key_func=get_identifier,
    default_limits=settings.RATE_LIMIT_DEFAULT,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


# Rate limit configurations for different endpoints
RATE_LIMITS = {
    "media": settings.MEDIA_RATE_LIMIT,
    "auth": "20/minute",
    "password_reset": "5/15minutes",
    "csv_import": "10/hour",
}


def get_rate_limit(endpoint: str) -> str:
    """Get rate limit for specific endpoint"""
    return RATE_LIMITS.get(endpoint, settings.RATE_LIMIT_DEFAULT[0])
