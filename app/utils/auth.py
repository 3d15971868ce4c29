"""Authentication utilities"""
import hashlib
import secrets

import bcrypt

from app.config import settings


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a bcrypt hash."""
    if not hashed_password:
        return False
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8"),
    )


def hash_token(token: str) -> str:
    """Hash an opaque token using SHA256"""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_id(prefix: str) -> str:
    """Generate a unique public ID such as ``usr_xxx`` or ``crs_xxx``"""
    return f"{prefix}{secrets.token_urlsafe(12)}"


def generate_temporary_password() -> str:
    """Random password for accounts created on a user's behalf (never returned)"""
    return secrets.token_urlsafe(16)


def generate_reset_code() -> str:
    """Six digit password reset code"""
    return f"{secrets.randbelow(1_000_000):06d}"
