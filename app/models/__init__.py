"""Database models"""
from app.models.admin_user import AdminUser
from app.models.chat import ChatMessage, ChatSession
from app.models.content import ContentItem
from app.models.coupon import Coupon
from app.models.course import Course
from app.models.enrollment import Enrollment, ProgressRecord
from app.models.password_reset import PasswordReset
from app.models.revoked_token import RevokedMediaToken, RevokedToken
from app.models.user import User

__all__ = [
    "AdminUser",
    "ChatMessage",
    "ChatSession",
    "ContentItem",
    "Coupon",
    "Course",
    "Enrollment",
    "PasswordReset",
    "ProgressRecord",
    "RevokedMediaToken",
    "RevokedToken",
    "User",
]
