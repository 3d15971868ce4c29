"""Session JWT utilities - HS256 signing and verification for user/admin sessions"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.utils.logger import logger


# ---------------------------------------------------------------------------
# Token creation
# ---------------------------------------------------------------------------

def create_access_token(
    subject: str,
    token_type: str,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """Sign and return a session JWT.

    Args:
        subject:      Value for the 'sub' claim (user_id or admin_id).
        token_type:   'user' or 'admin' - stored as 'type' claim and used
                      by deps.py to gate access.
        extra_claims: Additional claims to embed (role, email, etc.).

    Returns:
        Signed JWT string.
    """
    expire_seconds = (
        settings.JWT_USER_EXPIRE_SECONDS
        if token_type == "user"
        else settings.JWT_ADMIN_EXPIRE_SECONDS
    )

    now = int(datetime.now(timezone.utc).timestamp())

    payload: Dict[str, Any] = {
        "sub": subject,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + expire_seconds,
        "type": token_type,
        **(extra_claims or {}),
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------

def decode_access_token(token: str, db: Session) -> Dict[str, Any]:
    """Verify a session JWT and return its payload.

    Checks:
    1. Signature validity (HS256 with JWT_SECRET)
    2. Token not expired (jose handles 'exp')
    3. jti not in the revoked_tokens table

    Raises:
        HTTPException 401: on any verification failure.

    Returns:
        Decoded payload dict.
    """
    from app.models.revoked_token import RevokedToken

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as exc:
        logger.debug(f"JWT decode failed: {exc}")
        raise credentials_exception

    jti = payload.get("jti")
    if not jti or payload.get("type") not in ("user", "admin"):
        raise credentials_exception

    # Check revocation blocklist
    revoked = db.query(RevokedToken).filter(RevokedToken.jti == jti).first()
    if revoked:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload
