"""Enrollment state transitions"""
from typing import Optional

from sqlalchemy.orm import Session

from app.models.course import Course
from app.models.enrollment import Enrollment
from app.utils.auth import generate_id


def get_or_create_enrollment(db: Session, user_id: str, course_id: str) -> Enrollment:
    """One enrollment row per (user, course); new rows start as pending"""
    enrollment = db.query(Enrollment).filter(
        Enrollment.user_id == user_id,
        Enrollment.course_id == course_id,
    ).first()
    if enrollment is None:
        enrollment = Enrollment(
            enrollment_id=generate_id("enr_"),
            user_id=user_id,
            course_id=course_id,
            payment_status="pending",
        )
        db.add(enrollment)
    return enrollment


def mark_completed(db: Session, enrollment: Enrollment, amount_paid: Optional[float] = None) -> bool:
    """Grant access. Increments the course counter on the first transition only.

    Returns True when the enrollment changed state. Caller commits.
    """
    if amount_paid is not None:
        enrollment.amount_paid = amount_paid
    if enrollment.payment_status == "completed":
        return False

    enrollment.payment_status = "completed"
    db.query(Course).filter(Course.course_id == enrollment.course_id).update(
        {Course.students_enrolled: Course.students_enrolled + 1},
        synchronize_session=False,
    )
    return True


def mark_failed(enrollment: Enrollment) -> None:
    """Only pending enrollments can fail; completed access is never withdrawn here"""
    if enrollment.payment_status == "pending":
        enrollment.payment_status = "failed"
