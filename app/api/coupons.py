"""Coupon endpoints"""
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, require_admin
from app.database import get_db
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models.coupon import Coupon
from app.models.user import User
from app.schemas.coupon import CouponApply, CouponCheck, CouponCreate, CouponResponse, CouponUpdate, DiscountResponse
from app.utils.coupons import evaluate_coupon, normalize_code
from app.utils.logger import logger

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post("", response_model=CouponResponse, status_code=status.HTTP_201_CREATED)
def create_coupon(
    data: CouponCreate,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    """Create a coupon (Admin only). Codes are stored uppercase."""
    code = normalize_code(data.code)
    if db.query(Coupon).filter(Coupon.code == code).first():
        raise ConflictError(f"Coupon {code} already exists")

    coupon = Coupon(
        code=code,
        description=data.description,
        discount_type=data.discount_type,
        discount_value=data.discount_value,
        min_purchase=data.min_purchase,
        max_discount=data.max_discount,
        valid_from=data.valid_from or datetime.utcnow(),
        valid_until=data.valid_until,
        usage_limit=data.usage_limit,
    )
    db.add(coupon)
    db.commit()
    db.refresh(coupon)

    logger.info(f"Coupon created: {code}", extra={"admin_id": admin_id, "action": "create_coupon"})
    return coupon


@router.get("", response_model=List[CouponResponse])
def list_coupons(
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
):
    return db.query(Coupon).order_by(Coupon.created_at.desc()).all()


def _get_coupon_or_404(db: Session, coupon_id: int) -> Coupon:
    coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
    if not coupon:
        raise NotFoundError("Coupon not found")
    return coupon


@router.put("/{coupon_id}", response_model=CouponResponse)
def update_coupon(
    coupon_id: int,
    data: CouponUpdate,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    """Edit or deactivate a coupon (Admin only)

    ``max_discount`` and ``usage_limit`` may be sent as null to remove the cap.
    """
    coupon = _get_coupon_or_404(db, coupon_id)
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in ("max_discount", "usage_limit")
    }

    if "code" in changes:
        code = normalize_code(changes["code"])
        clash = db.query(Coupon).filter(Coupon.code == code, Coupon.id != coupon.id).first()
        if clash:
            raise ConflictError(f"Coupon {code} already exists")
        changes["code"] = code

    discount_type = changes.get("discount_type", coupon.discount_type)
    if discount_type == "percentage" and changes.get("discount_value", coupon.discount_value) > 100:
        raise ValidationError("Percentage discount cannot exceed 100")
    if changes.get("valid_until", coupon.valid_until) <= changes.get("valid_from", coupon.valid_from):
        raise ValidationError("valid_until must be after valid_from")

    for field, value in changes.items():
        setattr(coupon, field, value)
    db.commit()
    db.refresh(coupon)

    logger.info(f"Coupon updated: {coupon.code}", extra={"admin_id": admin_id, "action": "update_coupon"})
    return coupon


@router.delete("/{coupon_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_coupon(
    coupon_id: int,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    """Delete a coupon (Admin only). Enrollments keep the code they were priced with."""
    coupon = _get_coupon_or_404(db, coupon_id)
    code = coupon.code
    db.delete(coupon)
    db.commit()

    logger.info(f"Coupon deleted: {code}", extra={"admin_id": admin_id, "action": "delete_coupon"})
    return None



@router.post("/validate")
def validate_coupon(
    data: CouponCheck,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Check a code is usable; prices it when ``total_amount`` is given"""
    discount = evaluate_coupon(db, data.code, data.total_amount)
    coupon = discount.coupon
    body = {
        "success": True,
        "valid": True,
        "code": coupon.code,
        "discount_type": coupon.discount_type,
        "discount_value": coupon.discount_value,
        "description": coupon.description,
    }
    if data.total_amount is not None:
        body["discount_amount"] = discount.discount_amount
        body["final_amount"] = discount.final_amount
    return body


@router.post("/apply", response_model=DiscountResponse)
def apply_coupon(
    data: CouponApply,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    """Price a purchase with a coupon. The use is counted when payment completes."""
    discount = evaluate_coupon(db, data.code, data.total_amount)
    return DiscountResponse(
        code=discount.coupon.code,
        discount_type=discount.coupon.discount_type,
        discount_value=discount.coupon.discount_value,
        discount_amount=discount.discount_amount,
        final_amount=discount.final_amount,
    )
