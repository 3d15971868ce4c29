"""Media responder helpers - byte ranges, response headers, file streaming, embeds"""
import os
import re
from typing import AsyncIterator, Dict, NamedTuple, Optional
from urllib.parse import quote

import aiofiles

from app.config import settings
from app.errors import RangeNotSatisfiableError
from app.utils.templating import render_template

CHUNK_SIZE = 64 * 1024

# Applied to every media response
SECURITY_HEADERS: Dict[str, str] = {
    "Cache-Control": "private, no-cache, no-store, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
    "X-Frame-Options": "SAMEORIGIN",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'self'",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

EMBED_CSP = (
    "default-src 'none'; "
    "script-src 'unsafe-inline' https://www.youtube.com https://s.ytimg.com; "
    "frame-src https://www.youtube.com https://www.youtube-nocookie.com; "
    "style-src 'unsafe-inline'; "
    "img-src https://i.ytimg.com; "
    "frame-ancestors 'self'"
)

DOCUMENT_MIME_TYPES: Dict[str, str] = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".txt": "text/plain",
    ".csv": "text/csv",
}
DEFAULT_MIME_TYPE = "application/octet-stream"

_SPREADSHEET_EXTENSIONS = (".xls", ".xlsx")
_SPREADSHEET_MIME_TYPES = (DOCUMENT_MIME_TYPES[".xls"], DOCUMENT_MIME_TYPES[".xlsx"])

_RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")
_YOUTUBE_URL_RE = re.compile(r"^(https?://)?(www\.|m\.)?(youtube\.com|youtu\.be)/.+$")
_YOUTUBE_ID_RE = re.compile(r"^.*((youtu\.be/)|(v/)|(/u/\w/)|(embed/)|(watch\?))\??v?=?([^#&?]*).*")


# ---------------------------------------------------------------------------
# Byte ranges
# ---------------------------------------------------------------------------

class ByteRange(NamedTuple):
    start: int
    end: int      # inclusive

    @property
    def length(self) -> int:
        return self.end - self.start + 1


def parse_range(header: Optional[str], size: int) -> Optional[ByteRange]:
    """Parse a single ``Range: bytes=a-b`` header against a resource of ``size`` bytes.

    ``bytes=a-`` runs to the last byte and ``bytes=-n`` selects the final
    ``n`` bytes. Returns ``None`` when no Range header was sent.

    Raises:
        RangeNotSatisfiableError: malformed header, ``a >= size``,
            ``b >= size`` or ``a > b``.
    """
    if header is None:
        return None

    match = _RANGE_RE.match(header.strip())
    if not match or (not match.group(1) and not match.group(2)):
        raise RangeNotSatisfiableError(size)

    first, last = match.group(1), match.group(2)
    if not first:
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiableError(size)
        return ByteRange(max(size - suffix, 0), size - 1)

    start = int(first)
    end = int(last) if last else size - 1
    if start >= size or end >= size or start > end:
        raise RangeNotSatisfiableError(size)
    return ByteRange(start, end)


def range_headers(byte_range: ByteRange, size: int) -> Dict[str, str]:
    return {
        "Content-Range": f"bytes {byte_range.start}-{byte_range.end}/{size}",
        "Accept-Ranges": "bytes",
        "Content-Length": str(byte_range.length),
    }


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

def resolve_media_path(descriptor: Optional[dict]) -> Optional[str]:
    """Return the on-disk path of an uploaded file, or None when it is gone"""
    if not descriptor:
        return None
    path = descriptor.get("path") or os.path.join(settings.UPLOAD_DIR, descriptor.get("filename", ""))
    if not os.path.isfile(path):
        return None
    return path


async def iter_file(path: str, start: int = 0, end: Optional[int] = None) -> AsyncIterator[bytes]:
    """Yield ``path[start:end + 1]`` in chunks.

    The file is closed when the generator is closed, including when the
    client disconnects mid-stream.
    """
    async with aiofiles.open(path, "rb") as f:
        await f.seek(start)
        remaining = None if end is None else end - start + 1
        while remaining is None or remaining > 0:
            size = CHUNK_SIZE if remaining is None else min(CHUNK_SIZE, remaining)
            chunk = await f.read(size)
            if not chunk:
                break
            if remaining is not None:
                remaining -= len(chunk)
            yield chunk


def document_mime_type(descriptor: dict) -> str:
    """Stored mimetype, else a lookup on the file extension"""
    if descriptor.get("mimetype"):
        return descriptor["mimetype"]
    extension = os.path.splitext(descriptor.get("filename", ""))[1].lower()
    return DOCUMENT_MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


def document_disposition(descriptor: dict) -> str:
    """``inline`` for viewable documents, ``attachment`` for spreadsheets"""
    extension = os.path.splitext(descriptor.get("filename", ""))[1].lower()
    name = descriptor.get("original_name") or descriptor.get("filename") or "document"
    disposition = "inline"
    if extension in _SPREADSHEET_EXTENSIONS or descriptor.get("mimetype") in _SPREADSHEET_MIME_TYPES:
        disposition = "attachment"
    return f"{disposition}; filename*=UTF-8''{quote(name)}"


# ---------------------------------------------------------------------------
# External video
# ---------------------------------------------------------------------------

def is_youtube_url(url: Optional[str]) -> bool:
    return bool(url and _YOUTUBE_URL_RE.match(url))


def extract_youtube_id(url: Optional[str]) -> Optional[str]:
    """Return the 11 character video id from any common YouTube URL form"""
    if not url:
        return None
    match = _YOUTUBE_ID_RE.match(url)
    if match and len(match.group(7)) == 11:
        return match.group(7)
    return None


def render_video_embed(video_id: str, content_id: str, user_id: str) -> str:
    """HTML wrapper around the YouTube player.

    Content and user ids are only posted to the parent window for analytics.
    """
    embed_url = (
        f"https://www.youtube.com/embed/{quote(video_id)}"
        f"?enablejsapi=1&rel=0&modestbranding=1&playsinline=1&origin={quote(settings.FRONTEND_URL, safe='')}"
    )
    return render_template(
        "video_embed.html",
        title="Course video",
        embed_url=embed_url,
        parent_origin=settings.FRONTEND_URL,
        analytics={"contentId": content_id, "userId": user_id},
    )


def embed_headers() -> Dict[str, str]:
    headers = dict(SECURITY_HEADERS)
    headers["Content-Security-Policy"] = EMBED_CSP
    return headers
