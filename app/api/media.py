"""Secure media endpoints - token minting and token-gated streaming"""
import os
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status
from fastapi.responses import HTMLResponse, StreamingResponse
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_media_tokens, require_admin
from app.config import settings
from app.database import get_db
from app.errors import AuthorizationError, NotFoundError, TokenError, ValidationError
from app.middleware.monitoring import record_media_stream, record_token_issued, record_token_rejection
from app.middleware.rate_limit import get_rate_limit, limiter
from app.models.content import ContentItem
from app.models.user import User
from app.schemas.content import RefreshTokenRequest, RevokeTokenRequest, SecureUrlResponse
from app.utils import media_tokens
from app.utils.entitlement import check_entitlement
from app.utils.logger import logger
from app.utils.media import (
    SECURITY_HEADERS,
    document_disposition,
    document_mime_type,
    embed_headers,
    extract_youtube_id,
    is_youtube_url,
    iter_file,
    parse_range,
    range_headers,
    render_video_embed,
    resolve_media_path,
)

router = APIRouter(prefix="/course-content", tags=["secure-media"])

MEDIA_CAPABILITIES = {
    "video": media_tokens.VIDEO,
    "document": media_tokens.DOCUMENT,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def capability_for(media_type: str) -> str:
    capability = MEDIA_CAPABILITIES.get(media_type)
    if not capability:
        raise ValidationError("Media type must be 'video' or 'document'")
    return capability


def has_media(content: ContentItem, media_type: str) -> bool:
    """Whether the slot can be served through a secure URL"""
    if media_type == "video":
        return bool(content.video_file) or is_youtube_url(content.video_url)
    return bool(content.document_file)


def secure_media_url(media_type: str, token: str, content_id: str) -> str:
    return f"{settings.PUBLIC_API_URL}/course-content/secure-media/{media_type}?token={token}&contentId={content_id}"


def mint_media_url(service, user_id: str, content: ContentItem, media_type: str) -> SecureUrlResponse:
    """Issue a token for one media slot and wrap it in a URL"""
    capability = capability_for(media_type)
    token = service.issue(user_id, content.content_id, capability)
    record_token_issued(capability)
    return SecureUrlResponse(
        media_url=secure_media_url(media_type, token, content.content_id),
        token=token,
        content_id=content.content_id,
        media_type=media_type,
        expires_in=service.ttl_for(capability),
    )


def _validate(service, token: str, capability: str):
    try:
        return service.validate(token, capability)
    except TokenError as exc:
        record_token_rejection(exc.reason)
        logger.info(
            f"Media token rejected: {exc.reason}",
            extra={"capability": capability, "reason": exc.reason, "action": "validate_media_token"},
        )
        raise


# ---------------------------------------------------------------------------
# Token minting (session-authenticated)
# ---------------------------------------------------------------------------

@router.get("/secure-url/{content_id}/{media_type}", response_model=SecureUrlResponse)
def get_secure_url(
    content_id: str,
    media_type: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    service=Depends(get_media_tokens),
):
    """Mint a fresh token-bearing URL for a video or document the user is entitled to"""
    capability_for(media_type)
    entitlement = check_entitlement(db, user.user_id, content_id)
    if not has_media(entitlement.content, media_type):
        raise NotFoundError("Media not found")
    return mint_media_url(service, user.user_id, entitlement.content, media_type)


@router.post("/refresh-media-token/{content_id}/{media_type}", response_model=SecureUrlResponse)
def refresh_media_token(
    content_id: str,
    media_type: str,
    data: Optional[RefreshTokenRequest] = Body(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    service=Depends(get_media_tokens),
):
    """Reissue a media token, typically after the previous one expired.

    When the old token is supplied it is revoked so only the new one stays usable.
    """
    capability_for(media_type)
    entitlement = check_entitlement(db, user.user_id, content_id)
    if not has_media(entitlement.content, media_type):
        raise NotFoundError("Media not found")

    if data and data.token:
        service.revoke(data.token)

    logger.info(
        "Media token refreshed",
        extra={"user_id": user.user_id, "content_id": content_id, "action": "refresh_media_token"},
    )
    return mint_media_url(service, user.user_id, entitlement.content, media_type)


@router.post("/secure-media/revoke")
def revoke_media_token(
    data: RevokeTokenRequest,
    admin_id: str = Depends(require_admin),
    service=Depends(get_media_tokens),
):
    """Revoke a media token before it expires (Admin only)"""
    service.revoke(data.token)
    logger.info("Media token revoked", extra={"admin_id": admin_id, "action": "revoke_media_token"})
    return {"success": True, "message": "Token revoked"}


# ---------------------------------------------------------------------------
# Streaming (token-authenticated)
# ---------------------------------------------------------------------------

@router.get("/secure-media/video")
@limiter.limit(get_rate_limit("media"))
def stream_video(
    request: Request,
    token: str = Query(""),
    content_id: str = Query("", alias="contentId"),
    db: Session = Depends(get_db),
    service=Depends(get_media_tokens),
):
    """
    Stream an uploaded video, honouring single byte ranges.

    Externally hosted YouTube videos are returned as an HTML player wrapper
    instead. The token must be a video token issued for ``contentId``.
    """
    claims = _validate(service, token, media_tokens.VIDEO)
    if not content_id or content_id != claims.resource:
        logger.warning(
            "Media token used for different content",
            extra={"user_id": claims.subject, "content_id": content_id, "action": "stream_video"},
        )
        raise AuthorizationError("Invalid token for this content")

    content = check_entitlement(db, claims.subject, claims.resource).content

    if not content.video_file:
        video_id = extract_youtube_id(content.video_url)
        if not video_id:
            raise NotFoundError("Video file not found")
        record_media_stream(media_tokens.VIDEO, "embed")
        return HTMLResponse(
            render_video_embed(video_id, content.content_id, claims.subject),
            headers=embed_headers(),
        )

    path = resolve_media_path(content.video_file)
    if not path:
        logger.error(
            "Video file missing from storage",
            extra={"content_id": content.content_id, "action": "stream_video", "reason": "storage_drift"},
        )
        raise NotFoundError("Video file not found on server")

    size = os.path.getsize(path)
    byte_range = parse_range(request.headers.get("range"), size)
    media_type = content.video_file.get("mimetype") or "video/mp4"
    headers = dict(SECURITY_HEADERS)

    if byte_range is None:
        headers["Accept-Ranges"] = "bytes"
        headers["Content-Length"] = str(size)
        record_media_stream(media_tokens.VIDEO, "full")
        return StreamingResponse(iter_file(path), status_code=status.HTTP_200_OK, media_type=media_type, headers=headers)

    headers.update(range_headers(byte_range, size))
    record_media_stream(media_tokens.VIDEO, "partial")
    return StreamingResponse(
        iter_file(path, byte_range.start, byte_range.end),
        status_code=status.HTTP_206_PARTIAL_CONTENT,
        media_type=media_type,
        headers=headers,
    )


@router.get("/secure-media/document")
@limiter.limit(get_rate_limit("media"))
def serve_document(
    request: Request,
    token: str = Query(""),
    content_id: Optional[str] = Query(None, alias="contentId"),
    db: Session = Depends(get_db),
    service=Depends(get_media_tokens),
):
    """Serve an uploaded document inline (spreadsheets as attachments)"""
    claims = _validate(service, token, media_tokens.DOCUMENT)
    if content_id and content_id != claims.resource:
        raise AuthorizationError("Invalid token for this content")

    content = check_entitlement(db, claims.subject, claims.resource).content

    path = resolve_media_path(content.document_file)
    if not path:
        if content.document_file:
            logger.error(
                "Document file missing from storage",
                extra={"content_id": content.content_id, "action": "serve_document", "reason": "storage_drift"},
            )
        raise NotFoundError("Document file not found on server")

    headers = dict(SECURITY_HEADERS)
    headers["Content-Length"] = str(os.path.getsize(path))
    headers["Content-Disposition"] = document_disposition(content.document_file)

    record_media_stream(media_tokens.DOCUMENT, "full")
    return StreamingResponse(iter_file(path), media_type=document_mime_type(content.document_file), headers=headers)
