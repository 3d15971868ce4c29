"""Entitlement checks - may this user open this content item?"""
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from app.errors import CourseInactiveError, NotEnrolledError, NotFoundError
from app.models.content import ContentItem
from app.models.course import Course
from app.models.enrollment import Enrollment


class Entitlement(NamedTuple):
    content: ContentItem
    course: Course
    enrollment: Enrollment


def find_completed_enrollment(db: Session, user_id: str, course_id: str) -> Optional[Enrollment]:
    """Return the user's paid (or free) enrollment in a course, if any"""
    return db.query(Enrollment).filter(
        Enrollment.user_id == user_id,
        Enrollment.course_id == course_id,
        Enrollment.payment_status == "completed",
    ).first()


def check_entitlement(
    db: Session,
    user_id: str,
    content_id: str,
    require_active_course: bool = True,
) -> Entitlement:
    """Resolve content -> course -> enrollment for ``user_id``.

    Re-run at stream time, so access follows enrollment and course status
    changes even while a media token is still valid.

    Args:
        db: Database session
        user_id: Requesting user
        content_id: Content item being opened
        require_active_course: Reject when the owning course is inactive

    Returns:
        Entitlement with the resolved rows

    Raises:
        NotFoundError: content item (or its course) does not exist
        NotEnrolledError: no completed enrollment for the owning course
        CourseInactiveError: the owning course has been deactivated
    """
    content = db.query(ContentItem).filter(ContentItem.content_id == content_id).first()
    if not content:
        raise NotFoundError("Content not found")

    course = db.query(Course).filter(Course.course_id == content.course_id).first()
    if not course:
        raise NotFoundError("Course not found")

    enrollment = find_completed_enrollment(db, user_id, course.course_id)
    if not enrollment:
        raise NotEnrolledError()

    if require_active_course and course.status != "active":
        raise CourseInactiveError()

    return Entitlement(content=content, course=course, enrollment=enrollment)
