"""Course catalog endpoints"""
import re
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_realtime, require_admin
from app.database import get_db
from app.errors import ConflictError, NotFoundError
from app.models.course import Course
from app.schemas.course import CourseCreate, CourseResponse, CourseUpdate
from app.utils.auth import generate_id
from app.utils.logger import logger
from app.utils.realtime import ADMINS_ROOM

router = APIRouter(tags=["courses"])


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-") or "course"


def get_course_or_404(db: Session, course_id: str) -> Course:
    course = db.query(Course).filter(Course.course_id == course_id).first()
    if not course:
        raise NotFoundError("Course not found")
    return course


# ---------------------------------------------------------------------------
# Public catalog
# ---------------------------------------------------------------------------

@router.get("/courses", response_model=List[CourseResponse])
def list_courses(category: Optional[str] = None, db: Session = Depends(get_db)):
    """Active courses, newest first"""
    query = db.query(Course).filter(Course.status == "active")
    if category:
        query = query.filter(Course.category == category)
    return query.order_by(Course.created_at.desc()).all()


@router.get("/courses/{course_id}", response_model=CourseResponse)
def get_course(course_id: str, db: Session = Depends(get_db)):
    course = get_course_or_404(db, course_id)
    if course.status != "active":
        raise NotFoundError("Course not found")
    return course


# ---------------------------------------------------------------------------
# Admin management
# ---------------------------------------------------------------------------

@router.get("/admin/courses", response_model=List[CourseResponse])
def admin_list_courses(
    status_filter: Optional[str] = None,
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
):
    """All courses including inactive ones (Admin only)"""
    query = db.query(Course)
    if status_filter:
        query = query.filter(Course.status == status_filter)
    return query.order_by(Course.created_at.desc()).all()


@router.post("/admin/courses", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(
    data: CourseCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
    realtime=Depends(get_realtime),
):
    """Create a course (Admin only) and notify connected admins"""
    slug = slugify(data.slug or data.title)
    if db.query(Course).filter(Course.slug == slug).first():
        raise ConflictError(f"A course with slug '{slug}' already exists")

    course = Course(
        course_id=generate_id("crs_"),
        slug=slug,
        **data.model_dump(exclude={"slug"}),
    )
    db.add(course)
    db.commit()
    db.refresh(course)

    logger.info(
        f"Created course: {course.course_id}",
        extra={"admin_id": admin_id, "course_id": course.course_id, "action": "create_course"},
    )
    background_tasks.add_task(
        realtime.emit,
        ADMINS_ROOM,
        "newNotification",
        {"type": "course_created", "course_id": course.course_id, "title": course.title},
    )
    return course


@router.put("/admin/courses/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: str,
    data: CourseUpdate,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    """Update a course (Admin only). Deactivating it cuts off streaming immediately."""
    course = get_course_or_404(db, course_id)
    updates = data.model_dump(exclude_unset=True)

    if "slug" in updates and updates["slug"]:
        slug = slugify(updates["slug"])
        clash = db.query(Course).filter(Course.slug == slug, Course.course_id != course_id).first()
        if clash:
            raise ConflictError(f"A course with slug '{slug}' already exists")
        updates["slug"] = slug
    else:
        updates.pop("slug", None)

    for field, value in updates.items():
        setattr(course, field, value)
    db.commit()
    db.refresh(course)

    logger.info(
        f"Updated course: {course_id}",
        extra={"admin_id": admin_id, "course_id": course_id, "action": "update_course"},
    )
    return course


@router.delete("/admin/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(
    course_id: str,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    """Deactivate a course (Admin only). Enrollments and content are kept."""
    course = get_course_or_404(db, course_id)
    course.status = "inactive"
    db.commit()

    logger.info(
        f"Deactivated course: {course_id}",
        extra={"admin_id": admin_id, "course_id": course_id, "action": "delete_course"},
    )
    return None
