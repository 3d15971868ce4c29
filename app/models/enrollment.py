"""Enrollment and ProgressRecord models"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.database import Base


class Enrollment(Base):
    """A user's enrollment in a course.

    Only ``payment_status == "completed"`` grants access to content.
    """

    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),)

    id = Column(Integer, primary_key=True, index=True)
    enrollment_id = Column(String(50), unique=True, nullable=False, index=True)   # "enr_xxx"
    user_id = Column(String(50), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(String(50), ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(String(100), nullable=True, index=True)
    payment_id = Column(String(100), nullable=True)
    payment_status = Column(String(20), default="pending", nullable=False, index=True)  # pending|completed|failed
    amount_paid = Column(Float, default=0, nullable=False)
    coupon_code = Column(String(50), nullable=True)
    progress = Column(Integer, default=0, nullable=False)    # 0-100
    completed = Column(Boolean, default=False, nullable=False)
    enrollment_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")


class ProgressRecord(Base):
    """Marks one content item as completed by one user"""

    __tablename__ = "content_progress"
    __table_args__ = (UniqueConstraint("user_id", "content_id", name="uq_progress_user_content"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(50), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(String(50), nullable=False, index=True)
    content_id = Column(String(50), ForeignKey("course_contents.content_id", ondelete="CASCADE"), nullable=False, index=True)
    completed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    content = relationship("ContentItem", back_populates="progress_records")
