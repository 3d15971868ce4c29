"""Course progress accounting"""
from typing import Dict

from sqlalchemy.orm import Session

from app.models.content import ContentItem
from app.models.enrollment import ProgressRecord


def course_progress(db: Session, user_id: str, course_id: str) -> Dict[str, int]:
    """Completed items vs. currently active items for one user and course.

    The denominator is evaluated now, so adding content lowers the
    percentage of users who already finished the course.
    """
    completed = db.query(ProgressRecord).filter(
        ProgressRecord.user_id == user_id,
        ProgressRecord.course_id == course_id,
    ).count()
    total = db.query(ContentItem).filter(
        ContentItem.course_id == course_id,
        ContentItem.status == "active",
    ).count()
    percentage = min(round(completed / total * 100), 100) if total > 0 else 0
    return {"completed": completed, "total": total, "percentage": percentage}
