"""Media access tokens - issuance and validation.

A media token is an HS256 JWT that grants one user access to one content
item for one capability (``media-video`` or ``media-document``)::

    {"sub": user_id, "res": content_id, "cap": capability,
     "nonce": <128-bit hex>, "iat": ..., "exp": ..., "typ": "media"}

The random nonce makes every issued token distinct, so revoking one token
never affects another token for the same user and content.
"""
import secrets
import time
from typing import Callable, NamedTuple, Optional

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from app.errors import BadSignature, ConfigurationError, TokenExpired, TokenRevoked, WrongCapability
from app.utils.logger import logger

VIDEO = "media-video"
DOCUMENT = "media-document"
CAPABILITIES = (VIDEO, DOCUMENT)

_ALGORITHM = "HS256"
_TOKEN_TYPE = "media"


class MediaClaims(NamedTuple):
    """Validated contents of a media token."""
    subject: str       # user_id
    resource: str      # content_id
    capability: str    # media-video | media-document
    expires_at: int


class MediaTokenService:
    """Issues and validates media access tokens.

    Built once at application startup and shared by all requests. The
    service itself is stateless; revocation state lives in ``registry``.
    """

    def __init__(
        self,
        secret: Optional[str],
        registry,
        video_ttl: int = 3600,
        document_ttl: int = 7200,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ConfigurationError("Media token signing secret is not configured (set MEDIA_TOKEN_SECRET or JWT_SECRET)")
        self._secret = secret
        self.registry = registry
        self.ttls = {VIDEO: video_ttl, DOCUMENT: document_ttl}
        self._clock = clock

    def ttl_for(self, capability: str) -> int:
        return self.ttls[capability]

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue(self, subject: str, resource: str, capability: str, ttl: Optional[int] = None) -> str:
        """Sign a token binding ``subject`` to ``resource`` for ``capability``.

        Args:
            subject:    user_id the token is issued to.
            resource:   content_id the token unlocks.
            capability: ``media-video`` or ``media-document``.
            ttl:        lifetime in seconds; defaults to the capability's TTL.

        Returns:
            Signed token string.
        """
        if capability not in CAPABILITIES:
            raise ValueError(f"Unknown media capability: {capability}")

        now = int(self._clock())
        payload = {
            "sub": subject,
            "res": resource,
            "cap": capability,
            "nonce": secrets.token_hex(16),
            "iat": now,
            "exp": now + (ttl if ttl is not None else self.ttls[capability]),
            "typ": _TOKEN_TYPE,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    # ------------------------------------------------------------------
    # Validate
    # ------------------------------------------------------------------

    def validate(self, token: str, expected_capability: str) -> MediaClaims:
        """Verify a token and return its claims.

        Checks, in order: revocation registry, signature and expiry,
        capability.

        Raises:
            TokenRevoked, TokenExpired, BadSignature, WrongCapability
        """
        if not token:
            raise BadSignature("Access token is required")

        if self.registry.is_revoked(token):
            raise TokenRevoked()

        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
        except ExpiredSignatureError:
            raise TokenExpired()
        except JWTError as exc:
            logger.debug(f"Media token decode failed: {exc}")
            raise BadSignature()

        if payload.get("typ") != _TOKEN_TYPE or not payload.get("sub") or not payload.get("res"):
            raise BadSignature()

        if payload.get("cap") != expected_capability:
            raise WrongCapability()

        return MediaClaims(
            subject=payload["sub"],
            resource=payload["res"],
            capability=payload["cap"],
            expires_at=payload["exp"],
        )

    def revoke(self, token: str) -> None:
        self.registry.revoke(token)
