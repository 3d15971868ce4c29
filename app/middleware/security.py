"""Security headers and media hotlink protection"""
from typing import Callable, Set
from urllib.parse import urlparse

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.utils.logger import logger

_LOCAL_HOSTS = ("localhost", "127.0.0.1")


def _allowed_referer_hosts() -> Set[str]:
    hosts = set()
    for origin in settings.cors_origins_list + [settings.FRONTEND_URL, settings.PUBLIC_API_URL]:
        netloc = urlparse(origin).netloc
        if netloc:
            hosts.add(netloc)
    return hosts


class SecurityMiddleware(BaseHTTPMiddleware):
    """Rejects media requests embedded from foreign sites and sets baseline headers."""

    def __init__(self, app):
        super().__init__(app)
        self.allowed_hosts = _allowed_referer_hosts()

    def is_hotlink(self, request: Request) -> bool:
        referer = request.headers.get("referer")
        if "/secure-media/" not in request.url.path or not referer:
            return False
        referer_host = urlparse(referer).netloc
        if not referer_host:
            return True
        if referer_host == request.headers.get("host") or referer_host in self.allowed_hosts:
            return False
        return referer_host.split(":")[0] not in _LOCAL_HOSTS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self.is_hotlink(request):
            logger.warning(
                "Hotlinked media request blocked",
                extra={"path": request.url.path, "reason": "hotlink"},
            )
            return JSONResponse(status_code=403, content={"success": False, "message": "Hotlinking not allowed"})

        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        return response
