"""Revocation registry for media access tokens.

A revoked token is rejected by the validator even while its signature and
expiry are still valid. Entries only need to outlive the longest token TTL,
after which the token would be rejected as expired anyway, so both backends
forget entries once ``retention_seconds`` have passed.
"""
import threading
import time
from datetime import datetime, timedelta
from typing import Callable, Dict

from sqlalchemy.exc import IntegrityError

from app.models.revoked_token import RevokedMediaToken
from app.utils.auth import hash_token
from app.utils.logger import logger


class InMemoryRevocationRegistry:
    """Process-local registry: token string -> monotonic removal time.

    Suitable for single-instance deployments. Expired entries are purged
    lazily on every write and on lookups that hit a stale entry.
    """

    def __init__(self, retention_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.retention_seconds = retention_seconds
        self._clock = clock
        self._entries: Dict[str, float] = {}
        self._lock = threading.Lock()

    def revoke(self, token: str) -> None:
        now = self._clock()
        with self._lock:
            self._purge(now)
            self._entries[token] = now + self.retention_seconds

    def is_revoked(self, token: str) -> bool:
        now = self._clock()
        with self._lock:
            removal_at = self._entries.get(token)
            if removal_at is None:
                return False
            if removal_at <= now:
                del self._entries[token]
                return False
            return True

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._entries)

    def _purge(self, now: float) -> None:
        stale = [token for token, removal_at in self._entries.items() if removal_at <= now]
        for token in stale:
            del self._entries[token]


class DatabaseRevocationRegistry:
    """Shared registry backed by the ``revoked_media_tokens`` table.

    Used when several API instances serve media behind a load balancer.
    Stores SHA-256 digests only.
    """

    def __init__(
        self,
        session_factory: Callable,
        retention_seconds: int,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.session_factory = session_factory
        self.retention_seconds = retention_seconds
        self._clock = clock

    def revoke(self, token: str) -> None:
        now = self._clock()
        token_hash = hash_token(token)
        db = self.session_factory()
        try:
            db.query(RevokedMediaToken).filter(RevokedMediaToken.expires_at <= now).delete(
                synchronize_session=False
            )
            expires_at = now + timedelta(seconds=self.retention_seconds)
            entry = db.query(RevokedMediaToken).filter(RevokedMediaToken.token_hash == token_hash).first()
            if entry:
                entry.revoked_at = now
                entry.expires_at = expires_at
            else:
                db.add(RevokedMediaToken(token_hash=token_hash, revoked_at=now, expires_at=expires_at))
            db.commit()
        except IntegrityError:
            # Another instance revoked the same token concurrently
            db.rollback()
            logger.debug("Media token already revoked", extra={"action": "revoke_media_token"})
        finally:
            db.close()

    def is_revoked(self, token: str) -> bool:
        db = self.session_factory()
        try:
            entry = db.query(RevokedMediaToken).filter(
                RevokedMediaToken.token_hash == hash_token(token),
                RevokedMediaToken.expires_at > self._clock(),
            ).first()
            return entry is not None
        finally:
            db.close()
