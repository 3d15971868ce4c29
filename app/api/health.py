"""Health check endpoints"""
import time
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.api.deps import require_admin
from app.config import settings
from app.database import get_db
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.user import User

router = APIRouter(prefix="/health", tags=["health"])

# Track startup time
STARTUP_TIME = time.time()


@router.get("")
def health_check():
    """
    Basic health check endpoint

    Returns 200 if service is running
    """
    return {
        "status": "healthy",
        "service": "CourseHub",
        "version": "0.1.0",
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/ready")
def readiness_check(request: Request, db: Session = Depends(get_db)):
    """
    Readiness check - verifies dependencies are available

    Checks:
    - Database connectivity and latency
    - Media token service configured

    Returns 200 if ready to serve traffic, 503 if not ready
    """
    checks = {
        "database": False,
        "database_latency_ms": None,
        "media_tokens": getattr(request.app.state, "media_tokens", None) is not None,
    }

    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000
        checks["database"] = True
        checks["database_latency_ms"] = round(latency_ms, 2)
    except Exception as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "checks": checks,
                "message": f"Database check failed: {str(e)}"
            },
        )

    # More than 1 second
    if latency_ms > 1000 or not checks["media_tokens"]:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "degraded", "checks": checks},
        )

    return {
        "status": "ready",
        "checks": checks,
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/live")
def liveness_check():
    """
    Liveness check - verifies service is alive

    Used by Kubernetes liveness probe
    """
    return {
        "status": "alive",
        "uptime_seconds": round(time.time() - STARTUP_TIME, 2),
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/stats")
def health_stats(
    request: Request,
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
) -> Dict[str, Any]:
    """Platform counts for the admin dashboard (Admin only)"""
    registry = request.app.state.media_tokens.registry
    return {
        "status": "healthy",
        "users": db.query(User).count(),
        "courses": {
            "total": db.query(Course).count(),
            "active": db.query(Course).filter(Course.status == "active").count(),
        },
        "enrollments": db.query(Enrollment).filter(Enrollment.payment_status == "completed").count(),
        "revocation_backend": settings.REVOCATION_BACKEND,
        "revoked_media_tokens": len(registry) if hasattr(registry, "__len__") else None,
        "uptime_seconds": round(time.time() - STARTUP_TIME, 2),
        "timestamp": datetime.utcnow().isoformat()
    }
