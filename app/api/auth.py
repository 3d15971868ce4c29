"""Learner authentication endpoints"""
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_google_verifier, get_session_payload
from app.config import settings
from app.database import get_db
from app.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from app.middleware.rate_limit import get_rate_limit, limiter
from app.models.password_reset import PasswordReset
from app.models.revoked_token import RevokedToken
from app.models.user import User
from app.schemas.user import (
    AuthResponse,
    ForgotPasswordRequest,
    GoogleLogin,
    ResetPasswordRequest,
    UserLogin,
    UserRegister,
    UserResponse,
    VerifyResetCodeRequest,
)
from app.utils.auth import generate_id, generate_reset_code, hash_password, verify_password
from app.utils.email import send_password_changed, send_password_reset_code, send_welcome_email
from app.utils.jwt_utils import create_access_token
from app.utils.logger import logger

router = APIRouter(prefix="/auth", tags=["authentication"])

RESET_CODE_MINUTES = 10
RESET_CODE_TTL = timedelta(minutes=RESET_CODE_MINUTES)


def _session_for(user: User) -> AuthResponse:
    token = create_access_token(
        subject=user.user_id,
        token_type="user",
        extra_claims={"email": user.email},
    )
    return AuthResponse(
        access_token=token,
        expires_in=settings.JWT_USER_EXPIRE_SECONDS,
        user=UserResponse.model_validate(user),
    )


# ---------------------------------------------------------------------------
# Register / login
# ---------------------------------------------------------------------------

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("auth"))
def register(request: Request, data: UserRegister, db: Session = Depends(get_db)):
    """Create a learner account and return a session token"""
    existing = db.query(User).filter(
        or_(User.email == data.email, User.username == data.username)
    ).first()
    if existing:
        field = "email" if existing.email == data.email else "username"
        raise ConflictError(f"User with this {field} already exists")

    user = User(
        user_id=generate_id("usr_"),
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        import_source="manual",
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    send_welcome_email(user.email, user.display_name)
    logger.info(f"Registered user: {user.user_id}", extra={"user_id": user.user_id, "action": "register"})
    return _session_for(user)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(get_rate_limit("auth"))
def login(request: Request, data: UserLogin, db: Session = Depends(get_db)):
    """Exchange email and password for a session token"""
    user = db.query(User).filter(User.email == data.email.strip().lower()).first()
    if not user or not verify_password(data.password, user.password_hash or ""):
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    logger.info(f"User login: {user.user_id}", extra={"user_id": user.user_id, "action": "login"})
    return _session_for(user)


@router.post("/google", response_model=AuthResponse)
def google_login(
    data: GoogleLogin,
    db: Session = Depends(get_db),
    verifier=Depends(get_google_verifier),
):
    """Sign in with a Google ID token (or an authorization code to exchange for one).

    Links the Google account to an existing user with the same verified email.
    Unknown emails get 404 so the client can send the user to registration.
    """
    if not data.credential and not data.code:
        raise ValidationError("Google credential or authorization code is required")

    id_token = data.credential or verifier.exchange_code(data.code)
    claims = verifier.verify(id_token)
    email = claims["email"].lower()

    user = db.query(User).filter(
        or_(User.google_id == claims["sub"], User.email == email)
    ).first()
    if not user:
        raise NotFoundError("No account found for this Google user. Please register first.")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    if not user.google_id:
        user.google_id = claims["sub"]
        db.commit()

    logger.info(f"Google login: {user.user_id}", extra={"user_id": user.user_id, "action": "google_login"})
    return _session_for(user)


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    """Current learner profile"""
    return user


@router.post("/logout")
def logout(payload: dict = Depends(get_session_payload), db: Session = Depends(get_db)):
    """Revoke the caller's session token"""
    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc).replace(tzinfo=None)
    db.add(RevokedToken(jti=payload["jti"], expires_at=expires_at))
    db.commit()

    logger.info(f"Session revoked for {payload['sub']}", extra={"action": "logout"})
    return {"success": True, "message": "Logged out"}


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

def _active_reset(db: Session, email: str, code: str) -> PasswordReset:
    reset = db.query(PasswordReset).filter(
        PasswordReset.email == email,
        PasswordReset.code == code,
        PasswordReset.used == False,
        PasswordReset.expires_at > datetime.utcnow(),
    ).first()
    if not reset:
        raise ValidationError("Invalid or expired reset code")
    return reset


@router.post("/forgot-password")
@limiter.limit(get_rate_limit("password_reset"))
def forgot_password(request: Request, data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """Email a six digit reset code.

    The response is identical whether or not the email is registered.
    """
    email = data.email.strip().lower()
    user = db.query(User).filter(User.email == email, User.is_active == True).first()
    if user:
        db.query(PasswordReset).filter(PasswordReset.email == email).delete(synchronize_session=False)
        code = generate_reset_code()
        db.add(PasswordReset(email=email, code=code, expires_at=datetime.utcnow() + RESET_CODE_TTL))
        db.commit()
        send_password_reset_code(email, user.display_name, code, expires_minutes=RESET_CODE_MINUTES)
        logger.info("Password reset code issued", extra={"user_id": user.user_id, "action": "forgot_password"})

    return {"success": True, "message": "If that email is registered, a reset code has been sent"}


@router.post("/verify-reset-code")
def verify_reset_code(data: VerifyResetCodeRequest, db: Session = Depends(get_db)):
    """Check a reset code without consuming it"""
    _active_reset(db, data.email.strip().lower(), data.code)
    return {"success": True, "message": "Reset code is valid"}


@router.post("/reset-password")
def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    """Set a new password using a valid reset code"""
    email = data.email.strip().lower()
    reset = _active_reset(db, email, data.code)

    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    user.password_hash = hash_password(data.new_password)
    reset.used = True
    db.commit()
    send_password_changed(user.email, user.display_name)

    logger.info("Password reset completed", extra={"user_id": user.user_id, "action": "reset_password"})
    return {"success": True, "message": "Password has been reset"}
