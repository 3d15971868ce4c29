"""Course schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, description="URL key; derived from the title when omitted")
    description: str = ""
    category: str = ""
    level: str = "Beginner"
    instructor: str = ""
    thumbnail: Optional[str] = None
    price: float = Field(0, ge=0)
    discounted_price: Optional[float] = Field(None, ge=0)
    status: str = Field("active", pattern="^(active|inactive)$")


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    instructor: Optional[str] = None
    thumbnail: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    discounted_price: Optional[float] = Field(None, ge=0)
    status: Optional[str] = Field(None, pattern="^(active|inactive)$")


class CourseResponse(BaseModel):
    course_id: str
    slug: str
    title: str
    description: str
    category: str
    level: str
    instructor: str
    thumbnail: Optional[str] = None
    price: float
    discounted_price: Optional[float] = None
    status: str
    students_enrolled: int
    created_at: datetime

    class Config:
        from_attributes = True
