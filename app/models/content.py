"""ContentItem model - videos and documents attached to a course"""
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.database import Base

CONTENT_TYPES = ("video", "document", "pdf", "excel")
DOCUMENT_TYPES = ("document", "pdf", "excel")


class ContentItem(Base):
    """A single lesson item.

    Each media slot holds either an external URL or an uploaded file
    descriptor, never both::

        {"filename", "original_name", "path", "size", "mimetype"}
    """

    __tablename__ = "course_contents"

    id = Column(Integer, primary_key=True, index=True)
    content_id = Column(String(50), unique=True, nullable=False, index=True)   # "cnt_xxx"
    course_id = Column(String(50), ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="", nullable=False)
    type = Column(String(20), nullable=False)                 # video|document|pdf|excel
    duration = Column(String(50), default="", nullable=False)
    order = Column(Integer, default=0, nullable=False)
    is_free = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="active", nullable=False, index=True)   # active|inactive
    video_url = Column(String(1024), nullable=True)
    document_url = Column(String(1024), nullable=True)
    video_file = Column(JSON, nullable=True)
    document_file = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    course = relationship("Course", back_populates="contents")
    progress_records = relationship("ProgressRecord", back_populates="content", cascade="all, delete-orphan")

    @property
    def has_video(self) -> bool:
        return bool(self.video_url or self.video_file)

    @property
    def has_document(self) -> bool:
        return bool(self.document_url or self.document_file)
