"""AdminUser model - named admin accounts with roles"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.database import Base


class AdminUser(Base):
    """An admin operator who signs in with email and password.

    The legacy ``ADMIN_API_KEY`` env var is implicitly treated as a ``super-admin``
    without a database row.
    """

    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True)
    admin_id = Column(String(50), unique=True, nullable=False, index=True)   # "adm_xxx"
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False)                                # super-admin|admin
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
