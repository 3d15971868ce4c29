"""Coupon validation and discount calculation"""
from datetime import datetime
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from app.errors import NotFoundError, ValidationError
from app.models.coupon import Coupon


class Discount(NamedTuple):
    coupon: Coupon
    discount_amount: float
    final_amount: float


def normalize_code(code: str) -> str:
    return code.strip().upper()


def calculate_discount(coupon: Coupon, total_amount: float) -> float:
    """Percentage discounts are capped by ``max_discount``; fixed ones by the total"""
    if coupon.discount_type == "percentage":
        discount = total_amount * coupon.discount_value / 100
        if coupon.max_discount is not None:
            discount = min(discount, coupon.max_discount)
    else:
        discount = min(coupon.discount_value, total_amount)
    return round(discount, 2)


def evaluate_coupon(
    db: Session,
    code: str,
    total_amount: Optional[float],
    now: Optional[datetime] = None,
) -> Discount:
    """Check a coupon can be used against ``total_amount`` and price it.

    Raises:
        NotFoundError: unknown or inactive code
        ValidationError: outside its validity window, usage limit reached,
            or below the minimum purchase
    """
    now = now or datetime.utcnow()
    coupon = db.query(Coupon).filter(
        Coupon.code == normalize_code(code),
        Coupon.is_active == True,
    ).first()
    if not coupon:
        raise NotFoundError("Invalid coupon code")

    if coupon.valid_from and now < coupon.valid_from:
        raise ValidationError("Coupon is not yet valid")
    if coupon.valid_until and now > coupon.valid_until:
        raise ValidationError("Coupon has expired")
    if coupon.usage_limit and coupon.used_count >= coupon.usage_limit:
        raise ValidationError("Coupon usage limit reached")

    if total_amount is None:
        return Discount(coupon=coupon, discount_amount=0.0, final_amount=0.0)

    if coupon.min_purchase and total_amount < coupon.min_purchase:
        raise ValidationError(f"Minimum purchase of {coupon.min_purchase:g} required")

    discount = calculate_discount(coupon, total_amount)
    return Discount(coupon=coupon, discount_amount=discount, final_amount=round(total_amount - discount, 2))


def redeem_coupon(db: Session, coupon: Coupon) -> None:
    """Count one use, deactivating the coupon when its limit is reached.

    The increment is done in SQL so concurrent redemptions are not lost.
    Caller commits.
    """
    db.query(Coupon).filter(Coupon.id == coupon.id).update(
        {Coupon.used_count: Coupon.used_count + 1},
        synchronize_session=False,
    )
    db.flush()
    db.refresh(coupon)
    if coupon.usage_limit and coupon.used_count >= coupon.usage_limit:
        coupon.is_active = False
