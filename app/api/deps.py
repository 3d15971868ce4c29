"""API dependencies for authentication, authorization and shared components.

Dual-mode admin auth: admin dependencies accept EITHER
  - Authorization: Bearer <JWT>   (session token from POST /admin/login)
  - X-Admin-Key                   (static bootstrap key, implicit super-admin)

Learner endpoints accept only a Bearer session token from /auth/login.

Role hierarchy (higher level → more permissions):
    super-admin (2) > admin (1)
"""
from typing import Callable, NamedTuple, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.admin_user import AdminUser
from app.models.user import User
from app.utils.jwt_utils import decode_access_token

_bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Role hierarchy
# ---------------------------------------------------------------------------

_ROLE_HIERARCHY: dict[str, int] = {
    "super-admin": 2,
    "admin": 1,
}


class AdminContext(NamedTuple):
    """Resolved admin identity, populated by :func:`get_admin_context`."""
    sub: str      # admin_id (from DB) or "admin" (ADMIN_API_KEY super-admin)
    role: str     # super-admin | admin


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _resolve_admin_context(
    credentials: Optional[HTTPAuthorizationCredentials],
    x_admin_key: Optional[str],
    db: Session,
) -> AdminContext:
    """Extract AdminContext from JWT or static key header. Raises 401/403 on failure."""
    if credentials:
        payload = decode_access_token(credentials.credentials, db)
        if payload.get("type") != "admin":
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin token required",
            )
        admin = db.query(AdminUser).filter(
            AdminUser.admin_id == payload["sub"],
            AdminUser.is_active == True,
        ).first()
        if not admin:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Admin account not found or inactive",
            )
        return AdminContext(sub=admin.admin_id, role=admin.role)

    if x_admin_key:
        if x_admin_key == settings.ADMIN_API_KEY:
            return AdminContext(sub="admin", role="super-admin")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin key",
        )

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required. Provide Authorization: Bearer <token> or X-Admin-Key header.",
    )


# ---------------------------------------------------------------------------
# Admin dependencies
# ---------------------------------------------------------------------------

def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    x_admin_key: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> str:
    """Require admin authentication (any admin role accepted).

    Returns the admin subject string.
    For role-aware code, use :func:`get_admin_context` or :func:`require_role` instead.
    """
    ctx = _resolve_admin_context(credentials, x_admin_key, db)
    return ctx.sub


def get_admin_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    x_admin_key: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> AdminContext:
    """Resolve and return the full admin context (id + role)."""
    return _resolve_admin_context(credentials, x_admin_key, db)


def require_role(min_role: str) -> Callable:
    """Return a FastAPI dependency that enforces a minimum admin role.

    Usage::

        @router.post("/sensitive")
        def endpoint(ctx: AdminContext = Depends(require_role("super-admin"))):
            ...
    """
    min_level = _ROLE_HIERARCHY.get(min_role, 0)

    def _role_dep(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
        x_admin_key: Optional[str] = Header(None),
        db: Session = Depends(get_db),
    ) -> AdminContext:
        ctx = _resolve_admin_context(credentials, x_admin_key, db)
        if _ROLE_HIERARCHY.get(ctx.role, 0) < min_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{min_role}' or higher required (your role: '{ctx.role}')",
            )
        return ctx

    # Give FastAPI a unique name so it doesn't collapse distinct dependencies
    _role_dep.__name__ = f"require_role_{min_role.replace('-', '_')}"
    return _role_dep


# ---------------------------------------------------------------------------
# Learner dependencies
# ---------------------------------------------------------------------------

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Require a learner session. Returns the User ORM object."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Provide Authorization: Bearer <token>.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials, db)
    if payload.get("type") != "user":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User token required",
        )

    user = db.query(User).filter(User.user_id == payload["sub"]).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


def get_session_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> dict:
    """Decoded claims of the caller's own session token (used by logout)."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization: Bearer <token> header required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_access_token(credentials.credentials, db)


# ---------------------------------------------------------------------------
# Shared components (built once in the application lifespan)
# ---------------------------------------------------------------------------

def get_media_tokens(request: Request):
    return request.app.state.media_tokens


def get_realtime(request: Request):
    return request.app.state.realtime


def get_payment_gateway(request: Request):
    return request.app.state.payment_gateway


def get_google_verifier(request: Request):
    return request.app.state.google_verifier
