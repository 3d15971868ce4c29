"""Revocation tables - session jti blocklist and media token blocklist"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from app.database import Base


class RevokedToken(Base):
    """Stores revoked session JWT IDs (jti claims).

    When a user logs out their jti is inserted here.
    decode_access_token() checks this table on every authenticated request.
    expires_at mirrors the token's original exp so old rows can be pruned safely.
    """

    __tablename__ = "revoked_tokens"

    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String(36), unique=True, nullable=False, index=True)
    revoked_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)


class RevokedMediaToken(Base):
    """Shared media token blocklist used when REVOCATION_BACKEND=database.

    Only the SHA-256 digest of the token is stored. Rows past ``expires_at``
    are ignored and purged lazily.
    """

    __tablename__ = "revoked_media_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    revoked_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
