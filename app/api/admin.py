"""Admin account, user management and CSV import endpoints"""
import math
import os
import secrets
import shutil
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.api.deps import AdminContext, get_admin_context, require_admin, require_role
from app.config import settings
from app.database import get_db
from app.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.middleware.monitoring import record_import_rows
from app.middleware.rate_limit import get_rate_limit, limiter
from app.models.admin_user import AdminUser
from app.models.user import User
from app.schemas.admin_user import (
    AdminAuthResponse,
    AdminLogin,
    AdminPasswordUpdate,
    AdminProfileUpdate,
    AdminUserCreate,
    AdminUserResponse,
)
from app.schemas.user import ImportResponse, ImportSummary, UserDetailResponse, UserListResponse
from app.utils.auth import generate_id, hash_password, verify_password
from app.utils.bulk_import import import_users_csv
from app.utils.jwt_utils import create_access_token
from app.utils.logger import logger

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Admin login
# ---------------------------------------------------------------------------

@router.post("/login", response_model=AdminAuthResponse)
@limiter.limit(get_rate_limit("auth"))
def admin_login(request: Request, data: AdminLogin, db: Session = Depends(get_db)):
    """Exchange admin email and password for an admin session token"""
    admin = db.query(AdminUser).filter(AdminUser.email == data.email.strip().lower()).first()
    if not admin or not verify_password(data.password, admin.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not admin.is_active:
        raise AuthenticationError("Admin account is deactivated")

    admin.last_login = datetime.utcnow()
    db.commit()
    db.refresh(admin)

    token = create_access_token(
        subject=admin.admin_id,
        token_type="admin",
        extra_claims={"role": admin.role},
    )
    logger.info(
        f"Issued admin session for {admin.admin_id} (role={admin.role})",
        extra={"admin_id": admin.admin_id, "action": "admin_login"},
    )
    return AdminAuthResponse(
        access_token=token,
        expires_in=settings.JWT_ADMIN_EXPIRE_SECONDS,
        admin=AdminUserResponse.model_validate(admin),
    )


# ---------------------------------------------------------------------------
# Admin user CRUD (super-admin only)
# ---------------------------------------------------------------------------

def create_admin(db: Session, name: str, email: str, password: str, role: str) -> AdminUser:
    email = email.strip().lower()
    if db.query(AdminUser).filter(AdminUser.email == email).first():
        raise ConflictError("Admin with this email already exists")

    admin = AdminUser(
        admin_id=generate_id("adm_"),
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


@router.post("/admins", response_model=AdminUserResponse, status_code=status.HTTP_201_CREATED)
def create_admin_user(
    data: AdminUserCreate,
    db: Session = Depends(get_db),
    ctx: AdminContext = Depends(require_role("super-admin")),
):
    """Create a named admin account (super-admin only)."""
    admin = create_admin(db, data.name, data.email, data.password, data.role)
    logger.info(
        f"Created admin user: {admin.admin_id}",
        extra={"admin_id": ctx.sub, "action": "create_admin"},
    )
    return admin


@router.get("/admins", response_model=List[AdminUserResponse])
def list_admin_users(
    db: Session = Depends(get_db),
    _: AdminContext = Depends(require_role("super-admin")),
):
    """List all admin accounts (super-admin only)."""
    return db.query(AdminUser).order_by(AdminUser.created_at.desc()).all()


@router.delete("/admins/{admin_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_admin_user(
    admin_id: str,
    db: Session = Depends(get_db),
    ctx: AdminContext = Depends(require_role("super-admin")),
):
    """Deactivate (soft-delete) an admin account (super-admin only)."""
    if admin_id == ctx.sub:
        raise ValidationError("You cannot deactivate your own account")

    admin = db.query(AdminUser).filter(AdminUser.admin_id == admin_id).first()
    if not admin:
        raise HTTPException(status_code=404, detail=f"Admin user {admin_id} not found")

    admin.is_active = False
    db.commit()

    logger.info(f"Deactivated admin user: {admin_id}", extra={"admin_id": ctx.sub, "action": "deactivate_admin"})
    return None


def _get_admin_or_404(db: Session, admin_id: str) -> AdminUser:
    admin = db.query(AdminUser).filter(AdminUser.admin_id == admin_id).first()
    if not admin:
        raise NotFoundError("Admin user not found")
    return admin


@router.put("/admins/{admin_id}/password")
def update_admin_password(
    admin_id: str,
    data: AdminPasswordUpdate,
    db: Session = Depends(get_db),
    ctx: AdminContext = Depends(get_admin_context),
):
    """Change your own admin password. The current password must be supplied."""
    if ctx.sub != admin_id:
        raise AuthorizationError("You can only change your own password")

    admin = _get_admin_or_404(db, admin_id)
    if not verify_password(data.current_password, admin.password_hash):
        raise AuthenticationError("Current password is incorrect")

    admin.password_hash = hash_password(data.new_password)
    db.commit()

    logger.info(f"Admin password changed: {admin_id}", extra={"admin_id": admin_id, "action": "change_admin_password"})
    return {"success": True, "message": "Password updated successfully"}


@router.put("/admins/{admin_id}/profile", response_model=AdminUserResponse)
def update_admin_profile(
    admin_id: str,
    data: AdminProfileUpdate,
    db: Session = Depends(get_db),
    ctx: AdminContext = Depends(get_admin_context),
):
    """Update an admin's name and email (self, or any admin for a super-admin)"""
    if ctx.sub != admin_id and ctx.role != "super-admin":
        raise AuthorizationError("You can only update your own profile")

    admin = _get_admin_or_404(db, admin_id)
    email = data.email.strip().lower()
    clash = db.query(AdminUser).filter(AdminUser.email == email, AdminUser.admin_id != admin_id).first()
    if clash:
        raise ConflictError("Another admin with this email already exists")

    admin.name = data.name
    admin.email = email
    db.commit()
    db.refresh(admin)

    logger.info(f"Admin profile updated: {admin_id}", extra={"admin_id": ctx.sub, "action": "update_admin_profile"})
    return admin


# ---------------------------------------------------------------------------
# Learner accounts
# ---------------------------------------------------------------------------

@router.get("/users", response_model=UserListResponse)
def list_users(
    page: int = 1,
    limit: int = 10,
    search: str = "",
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
):
    """Paginated learner list, searchable by name, email, phone or segment"""
    page = max(page, 1)
    limit = min(max(limit, 1), 100)

    query = db.query(User)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            User.username.ilike(pattern),
            User.email.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.phone.ilike(pattern),
            User.trading_segment.ilike(pattern),
        ))

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return UserListResponse(
        users=users,
        total=total,
        total_pages=math.ceil(total / limit) if total else 0,
        current_page=page,
    )


@router.get("/users/{user_id}", response_model=UserDetailResponse)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
):
    """Full learner profile"""
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return user


@router.post("/users/import", response_model=ImportResponse)
@limiter.limit(get_rate_limit("csv_import"))
def import_users(
    request: Request,
    csv_file: UploadFile = File(...),
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    """
    Bulk-create learner accounts from a CSV export (Admin only)

    Rows are processed independently; per-row failures are listed in the
    summary instead of failing the request. Users whose ``labels`` map to
    known courses are enrolled automatically.
    """
    filename = csv_file.filename or ""
    if not filename.lower().endswith(".csv") and csv_file.content_type not in ("text/csv", "application/vnd.ms-excel"):
        raise ValidationError("Only CSV files are allowed")

    os.makedirs(settings.IMPORT_TMP_DIR, exist_ok=True)
    path = os.path.join(settings.IMPORT_TMP_DIR, f"import-{secrets.token_hex(8)}.csv")
    with open(path, "wb") as out:
        shutil.copyfileobj(csv_file.file, out)

    if os.path.getsize(path) > settings.MAX_CSV_SIZE:
        os.unlink(path)
        raise ValidationError("CSV file is too large")

    logger.info(f"CSV import started: {filename}", extra={"admin_id": admin_id, "action": "csv_import"})

    summary = import_users_csv(db, path)
    record_import_rows(summary["successful"], summary["failed"])

    return ImportResponse(results=ImportSummary(**summary))
