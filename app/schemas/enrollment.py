"""Enrollment schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class EnrollmentCreate(BaseModel):
    course_id: str
    coupon_code: Optional[str] = None


class EnrollmentStatusUpdate(BaseModel):
    payment_status: str = Field(..., pattern="^(pending|completed|failed)$")


class EnrollmentResponse(BaseModel):
    enrollment_id: str
    user_id: str
    course_id: str
    order_id: Optional[str] = None
    payment_status: str
    amount_paid: float
    coupon_code: Optional[str] = None
    progress: int
    completed: bool
    enrollment_date: datetime

    class Config:
        from_attributes = True


class CreateOrderRequest(BaseModel):
    course_id: str
    coupon_code: Optional[str] = None
    customer_phone: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    order_id: str
