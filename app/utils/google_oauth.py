"""Google ID token verification"""
import threading
import time
from typing import Any, Dict, Optional

import requests
from jose import JWTError, jwt

from app.config import settings
from app.errors import AuthenticationError, ConfigurationError, UpstreamError
from app.utils.logger import logger

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
_CERTS_CACHE_SECONDS = 3600


class GoogleTokenVerifier:
    """Verifies Google Sign-In ID tokens against Google's published JWKS."""

    def __init__(self, client_id: Optional[str] = None, certs_url: Optional[str] = None):
        self.client_id = client_id or settings.GOOGLE_CLIENT_ID
        self.certs_url = certs_url or settings.GOOGLE_CERTS_URL
        self._jwks: Optional[Dict[str, Any]] = None
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    def _get_jwks(self) -> Dict[str, Any]:
        with self._lock:
            if self._jwks is None or time.time() - self._fetched_at > _CERTS_CACHE_SECONDS:
                try:
                    response = requests.get(self.certs_url, timeout=10)
                    response.raise_for_status()
                except requests.RequestException as exc:
                    logger.error("Could not fetch Google signing keys", extra={"error": str(exc)})
                    raise UpstreamError("Google sign-in is temporarily unavailable")
                self._jwks = response.json()
                self._fetched_at = time.time()
            return self._jwks

    def verify(self, id_token: str) -> Dict[str, Any]:
        """Return the verified claims (``sub``, ``email``, ``name`` ...)

        Raises:
            AuthenticationError: bad signature, wrong audience/issuer, expired,
                or an unverified email address.
        """
        if not self.client_id:
            raise ConfigurationError("Google sign-in is not configured")

        try:
            claims = jwt.decode(
                id_token,
                self._get_jwks(),
                algorithms=["RS256"],
                audience=self.client_id,
                issuer=GOOGLE_ISSUERS,
                options={"verify_at_hash": False},
            )
        except JWTError as exc:
            logger.info(f"Google ID token rejected: {exc}", extra={"action": "google_login"})
            raise AuthenticationError("Invalid Google credential")

        if not claims.get("email") or not claims.get("email_verified", False):
            raise AuthenticationError("Google account email is not verified")
        return claims

    def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an ID token"""
        if not self.client_id or not settings.GOOGLE_CLIENT_SECRET:
            raise ConfigurationError("Google sign-in is not configured")
        try:
            response = requests.post(
                settings.GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": settings.GOOGLE_CLIENT_SECRET,
                    "redirect_uri": settings.GOOGLE_REDIRECT_URI,
                    "grant_type": "authorization_code",
                },
                timeout=10,
            )
        except requests.RequestException as exc:
            logger.error("Google code exchange failed", extra={"error": str(exc)})
            raise UpstreamError("Google sign-in is temporarily unavailable")

        if response.status_code >= 500:
            logger.error("Google code exchange failed", extra={"error": response.text})
            raise UpstreamError("Google sign-in is temporarily unavailable")
        id_token = response.json().get("id_token") if response.ok else None
        if not id_token:
            raise AuthenticationError("Invalid Google authorization code")
        return id_token
