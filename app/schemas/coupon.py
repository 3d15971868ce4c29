"""Coupon schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=3, max_length=50)
    description: str = ""
    discount_type: str = Field(..., pattern="^(percentage|fixed)$")
    discount_value: float = Field(..., gt=0)
    min_purchase: float = Field(0, ge=0)
    max_discount: Optional[float] = Field(None, gt=0)
    valid_from: Optional[datetime] = None
    valid_until: datetime
    usage_limit: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_percentage(self):
        if self.discount_type == "percentage" and self.discount_value > 100:
            raise ValueError("percentage discount cannot exceed 100")
        return self


class CouponUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""
    code: Optional[str] = Field(None, min_length=3, max_length=50)
    description: Optional[str] = None
    discount_type: Optional[str] = Field(None, pattern="^(percentage|fixed)$")
    discount_value: Optional[float] = Field(None, gt=0)
    min_purchase: Optional[float] = Field(None, ge=0)
    max_discount: Optional[float] = Field(None, gt=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    usage_limit: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None


class CouponResponse(BaseModel):
    id: int
    code: str
    description: str
    discount_type: str
    discount_value: float
    min_purchase: float
    max_discount: Optional[float] = None
    valid_from: datetime
    valid_until: datetime
    usage_limit: Optional[int] = None
    used_count: int
    is_active: bool

    class Config:
        from_attributes = True


class CouponCheck(BaseModel):
    code: str
    total_amount: Optional[float] = Field(None, ge=0)


class CouponApply(BaseModel):
    code: str
    total_amount: float = Field(..., ge=0)


class DiscountResponse(BaseModel):
    success: bool = True
    code: str
    discount_type: str
    discount_value: float
    discount_amount: float
    final_amount: float
