"""FastAPI application entry point"""
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import (
    admin,
    auth,
    coupons,
    course_content,
    courses,
    enrollments,
    health,
    live_chat,
    media,
    payments,
)
from app.config import settings
from app.database import SessionLocal
from app.errors import AppError, ConfigurationError, RangeNotSatisfiableError
from app.middleware.rate_limit import limiter
from app.middleware.security import SecurityMiddleware
from app.models.admin_user import AdminUser
from app.utils.google_oauth import GoogleTokenVerifier
from app.utils.logger import logger, setup_logging
from app.utils.media_tokens import MediaTokenService
from app.utils.payment_gateway import PaymentGateway
from app.utils.realtime import RoomManager
from app.utils.revocation import DatabaseRevocationRegistry, InMemoryRevocationRegistry

# Setup logging
setup_logging(settings.LOG_LEVEL)


def build_revocation_registry(retention_seconds: int):
    """Revocation registry for the configured backend"""
    if settings.REVOCATION_BACKEND == "memory":
        return InMemoryRevocationRegistry(retention_seconds)
    if settings.REVOCATION_BACKEND == "database":
        return DatabaseRevocationRegistry(SessionLocal, retention_seconds)
    raise ConfigurationError(f"Unknown REVOCATION_BACKEND: {settings.REVOCATION_BACKEND}")


def build_media_tokens() -> MediaTokenService:
    # Revoked tokens must be remembered for as long as any token can live
    retention = max(settings.MEDIA_VIDEO_TOKEN_TTL, settings.MEDIA_DOCUMENT_TOKEN_TTL)
    return MediaTokenService(
        secret=settings.media_token_secret,
        registry=build_revocation_registry(retention),
        video_ttl=settings.MEDIA_VIDEO_TOKEN_TTL,
        document_ttl=settings.MEDIA_DOCUMENT_TOKEN_TTL,
    )


def bootstrap_admin() -> None:
    """Create the configured super-admin on first start"""
    if not (settings.BOOTSTRAP_ADMIN_EMAIL and settings.BOOTSTRAP_ADMIN_PASSWORD):
        return

    db = SessionLocal()
    try:
        email = settings.BOOTSTRAP_ADMIN_EMAIL.strip().lower()
        if db.query(AdminUser).filter(AdminUser.email == email).first():
            return
        admin.create_admin(db, "Administrator", email, settings.BOOTSTRAP_ADMIN_PASSWORD, "super-admin")
        logger.info(f"Bootstrap super-admin created: {email}", extra={"action": "bootstrap_admin"})
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    if not settings.JWT_SECRET:
        raise ConfigurationError("JWT_SECRET must be set")

    app.state.media_tokens = build_media_tokens()
    app.state.realtime = RoomManager()
    app.state.payment_gateway = PaymentGateway()
    app.state.google_verifier = GoogleTokenVerifier()

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    os.makedirs(settings.IMPORT_TMP_DIR, exist_ok=True)
    bootstrap_admin()

    logger.info("CourseHub backend starting up", extra={
        "version": "0.1.0",
        "environment": settings.HOST,
        "log_level": settings.LOG_LEVEL,
        "revocation_backend": settings.REVOCATION_BACKEND,
        "rate_limiting": settings.RATE_LIMIT_ENABLED,
        "monitoring": settings.METRICS_ENABLED
    })
    yield
    # Shutdown
    app.state.payment_gateway.session.close()
    logger.info("CourseHub backend shutting down")


# Create FastAPI app
app = FastAPI(
    title="CourseHub",
    description="Course platform with secure media delivery",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ===== Middleware Setup =====

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Hotlink protection and default security headers
app.add_middleware(SecurityMiddleware)

# Monitoring middleware
if settings.METRICS_ENABLED:
    from app.middleware.monitoring import MonitoringMiddleware
    app.add_middleware(MonitoringMiddleware)

    # Prometheus metrics
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/health", "/health/ready", "/health/live"],
        inprogress_name="coursehub_requests_inprogress",
        inprogress_labels=True
    )
    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint=settings.METRICS_PATH, include_in_schema=False)

# Rate limiting (decorated routes look the limiter up on app.state)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors"""
    logger.warning(
        "Rate limit exceeded",
        extra={
            "path": request.url.path,
            "method": request.method,
            "client": request.client.host if request.client else "unknown"
        }
    )
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Too many requests. Please try again later.",
        }
    )

# ===== Route Setup =====

# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(courses.router)
# Media routes first: /course-content/secure-media/... must not match /course-content/{course_id}
app.include_router(media.router)
app.include_router(course_content.router)
app.include_router(enrollments.router)
app.include_router(coupons.router)
app.include_router(payments.router)
app.include_router(live_chat.router)


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "service": "CourseHub",
        "version": "0.1.0",
        "status": "operational",
        "docs": "/docs",
        "health": "/health",
        "metrics": settings.METRICS_PATH if settings.METRICS_ENABLED else None
    }


# ===== Error Handlers =====

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Render service errors as {"success": false, "message": ...}"""
    if isinstance(exc, RangeNotSatisfiableError):
        return Response(status_code=exc.status_code, headers=exc.headers)

    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__}: {exc.message}",
            extra={"path": request.url.path, "method": request.method}
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
        headers=exc.headers or None,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request body/query validation failures are reported as 400"""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "form"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": message},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for uncaught errors"""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method
        },
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": str(exc) if settings.DEBUG else "An unexpected error occurred. Please contact support."
        }
    )
