"""Coupon model"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String

from app.database import Base


class Coupon(Base):
    """Discount code. ``code`` is stored upper-cased."""

    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(255), default="", nullable=False)
    discount_type = Column(String(20), nullable=False)            # percentage|fixed
    discount_value = Column(Float, nullable=False)
    min_purchase = Column(Float, default=0, nullable=False)
    max_discount = Column(Float, nullable=True)                   # caps percentage discounts
    valid_from = Column(DateTime, default=datetime.utcnow, nullable=False)
    valid_until = Column(DateTime, nullable=False)
    usage_limit = Column(Integer, nullable=True)                  # null = unlimited
    used_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
