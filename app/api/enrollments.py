"""Enrollment endpoints"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, require_admin
from app.database import get_db
from app.errors import ConflictError, NotFoundError
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.user import User
from app.schemas.enrollment import EnrollmentCreate, EnrollmentResponse, EnrollmentStatusUpdate
from app.utils.coupons import evaluate_coupon, redeem_coupon
from app.utils.enrollments import get_or_create_enrollment, mark_completed
from app.utils.logger import logger

router = APIRouter(tags=["enrollments"])


@router.post("/enrollments", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
def enroll(
    data: EnrollmentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Enroll the current user in a course

    Free courses (or a coupon bringing the price to zero) complete
    immediately; paid courses stay pending until payment is verified.
    """
    course = db.query(Course).filter(Course.course_id == data.course_id, Course.status == "active").first()
    if not course:
        raise NotFoundError("Course not found")

    enrollment = get_or_create_enrollment(db, user.user_id, course.course_id)
    if enrollment.payment_status == "completed":
        raise ConflictError("You are already enrolled in this course")

    amount = course.effective_price or 0
    coupon = None
    if data.coupon_code and amount > 0:
        discount = evaluate_coupon(db, data.coupon_code, amount)
        coupon = discount.coupon
        amount = discount.final_amount
        enrollment.coupon_code = coupon.code

    if amount <= 0:
        if coupon is not None:
            redeem_coupon(db, coupon)
        mark_completed(db, enrollment, amount_paid=0)
    else:
        enrollment.payment_status = "pending"
        enrollment.amount_paid = amount

    db.commit()
    db.refresh(enrollment)

    logger.info(
        f"Enrollment {enrollment.payment_status}: {enrollment.enrollment_id}",
        extra={"user_id": user.user_id, "course_id": course.course_id, "action": "enroll"},
    )
    return enrollment


@router.get("/enrollments/me", response_model=List[EnrollmentResponse])
def my_enrollments(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """The current user's enrollments, newest first"""
    return db.query(Enrollment).filter(
        Enrollment.user_id == user.user_id
    ).order_by(Enrollment.enrollment_date.desc()).all()


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@router.get("/admin/enrollments/stats")
def enrollment_stats(
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
):
    """Counts by payment status and revenue from completed enrollments"""
    by_status = dict(
        db.query(Enrollment.payment_status, func.count(Enrollment.id)).group_by(Enrollment.payment_status).all()
    )
    revenue = db.query(func.coalesce(func.sum(Enrollment.amount_paid), 0)).filter(
        Enrollment.payment_status == "completed"
    ).scalar()
    return {
        "success": True,
        "total": sum(by_status.values()),
        "completed": by_status.get("completed", 0),
        "pending": by_status.get("pending", 0),
        "failed": by_status.get("failed", 0),
        "revenue": float(revenue or 0),
    }


@router.get("/admin/enrollments", response_model=List[EnrollmentResponse])
def list_enrollments(
    course_id: Optional[str] = None,
    user_id: Optional[str] = None,
    payment_status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
):
    """List enrollments with optional filters (Admin only)"""
    query = db.query(Enrollment)
    if course_id:
        query = query.filter(Enrollment.course_id == course_id)
    if user_id:
        query = query.filter(Enrollment.user_id == user_id)
    if payment_status:
        query = query.filter(Enrollment.payment_status == payment_status)
    return query.order_by(Enrollment.enrollment_date.desc()).offset(skip).limit(min(limit, 500)).all()


@router.put("/admin/enrollments/{enrollment_id}", response_model=EnrollmentResponse)
def update_enrollment_status(
    enrollment_id: str,
    data: EnrollmentStatusUpdate,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    """Manually set an enrollment's payment status (Admin only)"""
    enrollment = db.query(Enrollment).filter(Enrollment.enrollment_id == enrollment_id).first()
    if not enrollment:
        raise NotFoundError("Enrollment not found")

    if data.payment_status == "completed":
        mark_completed(db, enrollment)
    else:
        enrollment.payment_status = data.payment_status
    db.commit()
    db.refresh(enrollment)

    logger.info(
        f"Enrollment {enrollment_id} set to {data.payment_status}",
        extra={"admin_id": admin_id, "action": "update_enrollment"},
    )
    return enrollment
