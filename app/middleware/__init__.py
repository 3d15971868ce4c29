"""Middleware modules for production-ready features"""
from app.middleware.monitoring import (
    MonitoringMiddleware,
    record_import_rows,
    record_media_stream,
    record_token_issued,
    record_token_rejection,
)
from app.middleware.rate_limit import get_rate_limit, limiter
from app.middleware.security import SecurityMiddleware

__all__ = [
    "MonitoringMiddleware",
    "SecurityMiddleware",
    "record_import_rows",
    "record_media_stream",
    "record_token_issued",
    "record_token_rejection",
    "limiter",
    "get_rate_limit",
]
