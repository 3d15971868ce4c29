"""Pydantic schemas for request/response validation"""
from app.schemas.content import ContentAdminResponse, ContentLearnerResponse, SecureUrlResponse
from app.schemas.course import CourseCreate, CourseResponse, CourseUpdate
from app.schemas.enrollment import EnrollmentCreate, EnrollmentResponse
from app.schemas.user import ImportSummary, UserRegister, UserResponse

__all__ = [
    "ContentAdminResponse",
    "ContentLearnerResponse",
    "SecureUrlResponse",
    "CourseCreate",
    "CourseResponse",
    "CourseUpdate",
    "EnrollmentCreate",
    "EnrollmentResponse",
    "ImportSummary",
    "UserRegister",
    "UserResponse",
]
