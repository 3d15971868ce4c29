"""Course model"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import relationship

from app.database import Base


class Course(Base):
    """A sellable course.

    ``slug`` is the stable key the CSV label table points at.
    """

    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(String(50), unique=True, nullable=False, index=True)   # "crs_xxx"
    slug = Column(String(255), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="", nullable=False)
    category = Column(String(100), default="", nullable=False)
    level = Column(String(50), default="Beginner", nullable=False)
    instructor = Column(String(255), default="", nullable=False)
    thumbnail = Column(String(1024), nullable=True)
    price = Column(Float, default=0, nullable=False)
    discounted_price = Column(Float, nullable=True)
    status = Column(String(20), default="active", nullable=False, index=True)  # active|inactive
    students_enrolled = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    contents = relationship("ContentItem", back_populates="course", cascade="all, delete-orphan")
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")

    @property
    def effective_price(self) -> float:
        """Price actually charged: the discounted price when one is set"""
        if self.discounted_price is not None:
            return self.discounted_price
        return self.price
