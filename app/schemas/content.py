"""Course content schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class FileInfo(BaseModel):
    """Uploaded file descriptor as exposed to admins"""
    filename: str
    original_name: str
    size: int
    mimetype: str


class ContentAdminResponse(BaseModel):
    content_id: str
    course_id: str
    title: str
    description: str
    type: str
    duration: str
    order: int
    is_free: bool
    status: str
    video_url: Optional[str] = None
    document_url: Optional[str] = None
    video_file: Optional[FileInfo] = None
    document_file: Optional[FileInfo] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContentLearnerResponse(BaseModel):
    """Content as listed to an enrolled learner.

    Storage details are stripped; local media is reachable only through the
    token-bearing URLs.
    """
    content_id: str
    course_id: str
    title: str
    description: str
    type: str
    duration: str
    order: int
    is_free: bool
    has_video: bool
    has_document: bool
    video_url: Optional[str] = None          # external video link, if any
    document_url: Optional[str] = None       # external document link, if any
    secure_video_url: Optional[str] = None
    secure_document_url: Optional[str] = None
    completed: bool = False


class ContentPreviewResponse(BaseModel):
    content_id: str
    title: str
    description: str
    type: str
    duration: str
    order: int
    is_free: bool


class ProgressSummary(BaseModel):
    completed: int
    total: int
    percentage: int


class SecureUrlResponse(BaseModel):
    success: bool = True
    media_url: str
    token: str
    content_id: str
    media_type: str
    expires_in: int


class RefreshTokenRequest(BaseModel):
    token: Optional[str] = Field(None, description="Token being replaced; revoked when supplied")


class RevokeTokenRequest(BaseModel):
    token: str = Field(..., min_length=1)
