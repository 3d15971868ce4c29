"""Monitoring and observability middleware"""
import time
from typing import Callable
from fastapi import Request, Response
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from app.utils.logger import logger


# ===== Prometheus Metrics =====

# Request metrics
http_requests_total = Counter(
    "coursehub_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "coursehub_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"]
)

# Media metrics
media_streams_total = Counter(
    "coursehub_media_streams_total",
    "Media responses served",
    ["capability", "kind"]  # kind: full, partial, embed
)

media_token_rejections_total = Counter(
    "coursehub_media_token_rejections_total",
    "Media tokens rejected by the validator",
    ["reason"]  # revoked, expired, bad_signature, wrong_capability
)

media_tokens_issued_total = Counter(
    "coursehub_media_tokens_issued_total",
    "Media tokens issued",
    ["capability"]
)

# Import metrics
import_rows_total = Counter(
    "coursehub_import_rows_total",
    "CSV import rows processed",
    ["outcome"]  # successful, failed
)

# Error metrics
http_errors_total = Counter(
    "coursehub_http_errors_total",
    "Total HTTP errors",
    ["method", "endpoint", "status"]
)


def _route_label(request: Request) -> str:
    """Templated route path so ids and tokens do not explode label cardinality"""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class MonitoringMiddleware(BaseHTTPMiddleware):
    """Middleware for monitoring and metrics collection"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and collect metrics"""
        start_time = time.time()
        method = request.method

        # Add request ID for tracing
        request_id = request.headers.get("x-request-id", f"req_{int(time.time() * 1000)}")
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            status = response.status_code
            endpoint = _route_label(request)

            duration = time.time() - start_time
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)

            # Log slow requests
            if duration > 1.0:
                logger.warning(
                    f"Slow request detected: {method} {endpoint}",
                    extra={
                        "request_id": request_id,
                        "method": method,
                        "path": endpoint,
                        "duration": duration,
                        "status": status
                    }
                )

            if status >= 400:
                http_errors_total.labels(method=method, endpoint=endpoint, status=status).inc()

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration:.3f}s"

            return response

        except Exception as e:
            duration = time.time() - start_time
            endpoint = _route_label(request)
            http_errors_total.labels(method=method, endpoint=endpoint, status=500).inc()

            logger.error(
                f"Request failed: {method} {endpoint}",
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": endpoint,
                    "duration": duration,
                    "error": str(e)
                },
                exc_info=True
            )
            raise


def record_media_stream(capability: str, kind: str):
    """Record a served media response"""
    media_streams_total.labels(capability=capability, kind=kind).inc()


def record_token_rejection(reason: str):
    """Record a rejected media token"""
    media_token_rejections_total.labels(reason=reason).inc()


def record_token_issued(capability: str):
    media_tokens_issued_total.labels(capability=capability).inc()


def record_import_rows(successful: int, failed: int):
    """Record CSV import row outcomes"""
    import_rows_total.labels(outcome="successful").inc(successful)
    import_rows_total.labels(outcome="failed").inc(failed)
