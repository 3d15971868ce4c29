"""Course content management, learner listings and progress"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_media_tokens, require_admin
from app.api.media import has_media, mint_media_url
from app.database import get_db
from app.errors import NotEnrolledError, NotFoundError, ValidationError
from app.models.content import CONTENT_TYPES, DOCUMENT_TYPES, ContentItem
from app.models.course import Course
from app.models.enrollment import Enrollment, ProgressRecord
from app.models.user import User
from app.schemas.content import ContentAdminResponse, ContentLearnerResponse, ContentPreviewResponse
from app.schemas.enrollment import EnrollmentResponse
from app.utils.auth import generate_id
from app.utils.entitlement import check_entitlement, find_completed_enrollment
from app.utils.logger import logger
from app.utils.progress import course_progress
from app.utils.storage import delete_file, save_upload

router = APIRouter(prefix="/course-content", tags=["course-content"])


def _has_upload(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)


def _get_content_or_404(db: Session, content_id: str) -> ContentItem:
    content = db.query(ContentItem).filter(ContentItem.content_id == content_id).first()
    if not content:
        raise NotFoundError("Content not found")
    return content


def _check_slots(
    content_type: str,
    video_url: Optional[str],
    video_file: Optional[UploadFile],
    document_url: Optional[str],
    document_file: Optional[UploadFile],
    existing: Optional[ContentItem] = None,
) -> None:
    """Each slot takes a URL or a file, never both, and the type needs its slot filled"""
    if content_type not in CONTENT_TYPES:
        raise ValidationError(f"Content type must be one of: {', '.join(CONTENT_TYPES)}")
    if video_url and _has_upload(video_file):
        raise ValidationError("Provide either a video URL or a video file, not both")
    if document_url and _has_upload(document_file):
        raise ValidationError("Provide either a document URL or a document file, not both")

    has_video = bool(video_url) or _has_upload(video_file) or bool(existing and existing.has_video)
    has_document = bool(document_url) or _has_upload(document_file) or bool(existing and existing.has_document)
    if content_type == "video" and not has_video:
        raise ValidationError("Video content requires a video URL or video file")
    if content_type in DOCUMENT_TYPES and not has_document:
        raise ValidationError("Document content requires a document URL or document file")


# ---------------------------------------------------------------------------
# Admin management
# ---------------------------------------------------------------------------

@router.post("/upload", response_model=ContentAdminResponse, status_code=status.HTTP_201_CREATED)
def upload_content(
    course_id: str = Form(...),
    title: str = Form(...),
    type: str = Form(...),
    description: str = Form(""),
    duration: str = Form(""),
    order: int = Form(0),
    is_free: bool = Form(False),
    video_url: Optional[str] = Form(None),
    document_url: Optional[str] = Form(None),
    video_file: Optional[UploadFile] = File(None),
    document_file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    """
    Create a content item (Admin only)

    Media comes either as an external URL or as an uploaded file per slot.
    Uploaded files are stored under a random name.
    """
    if not db.query(Course).filter(Course.course_id == course_id).first():
        raise NotFoundError("Course not found")
    _check_slots(type, video_url, video_file, document_url, document_file)

    content = ContentItem(
        content_id=generate_id("cnt_"),
        course_id=course_id,
        title=title,
        description=description,
        type=type,
        duration=duration,
        order=order,
        is_free=is_free,
        video_url=video_url or None,
        document_url=document_url or None,
    )

    stored = []
    try:
        if _has_upload(video_file):
            content.video_file = save_upload(video_file, "video")
            stored.append(content.video_file)
        if _has_upload(document_file):
            content.document_file = save_upload(document_file, "document")
            stored.append(content.document_file)
        db.add(content)
        db.commit()
    except Exception:
        db.rollback()
        for descriptor in stored:
            delete_file(descriptor)
        raise
    db.refresh(content)

    logger.info(
        f"Created content: {content.content_id}",
        extra={"admin_id": admin_id, "course_id": course_id, "content_id": content.content_id, "action": "create_content"},
    )
    return content


@router.put("/{content_id}", response_model=ContentAdminResponse)
def update_content(
    content_id: str,
    title: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    duration: Optional[str] = Form(None),
    order: Optional[int] = Form(None),
    is_free: Optional[bool] = Form(None),
    status_value: Optional[str] = Form(None, alias="status"),
    video_url: Optional[str] = Form(None),
    document_url: Optional[str] = Form(None),
    video_file: Optional[UploadFile] = File(None),
    document_file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    """
    Update a content item (Admin only)

    A new file or URL for a slot replaces what was there; a replaced
    uploaded file is deleted from storage.
    """
    content = _get_content_or_404(db, content_id)
    _check_slots(type or content.type, video_url, video_file, document_url, document_file, existing=content)
    if status_value is not None and status_value not in ("active", "inactive"):
        raise ValidationError("Status must be 'active' or 'inactive'")

    for field, value in (
        ("title", title),
        ("type", type),
        ("description", description),
        ("duration", duration),
        ("order", order),
        ("is_free", is_free),
        ("status", status_value),
    ):
        if value is not None:
            setattr(content, field, value)

    replaced = []
    stored = []
    try:
        if _has_upload(video_file):
            descriptor = save_upload(video_file, "video")
            stored.append(descriptor)
            replaced.append(content.video_file)
            content.video_file = descriptor
            content.video_url = None
        elif video_url:
            replaced.append(content.video_file)
            content.video_file = None
            content.video_url = video_url

        if _has_upload(document_file):
            descriptor = save_upload(document_file, "document")
            stored.append(descriptor)
            replaced.append(content.document_file)
            content.document_file = descriptor
            content.document_url = None
        elif document_url:
            replaced.append(content.document_file)
            content.document_file = None
            content.document_url = document_url

        db.commit()
    except Exception:
        db.rollback()
        for descriptor in stored:
            delete_file(descriptor)
        raise
    db.refresh(content)

    for descriptor in replaced:
        delete_file(descriptor)

    logger.info(
        f"Updated content: {content_id}",
        extra={"admin_id": admin_id, "content_id": content_id, "action": "update_content"},
    )
    return content


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_content(
    content_id: str,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    """Delete a content item, its stored files and all progress records for it (Admin only)"""
    content = _get_content_or_404(db, content_id)
    files = [content.video_file, content.document_file]

    db.query(ProgressRecord).filter(ProgressRecord.content_id == content_id).delete(synchronize_session=False)
    db.delete(content)
    db.commit()

    # Storage failures are logged only; the record is already gone
    for descriptor in files:
        delete_file(descriptor)

    logger.info(
        f"Deleted content: {content_id}",
        extra={"admin_id": admin_id, "content_id": content_id, "action": "delete_content"},
    )
    return None


@router.get("/admin/all-content", response_model=List[ContentAdminResponse])
def admin_list_content(
    course_id: Optional[str] = None,
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
):
    """All content items, optionally for one course (Admin only)"""
    query = db.query(ContentItem)
    if course_id:
        query = query.filter(ContentItem.course_id == course_id)
    return query.order_by(ContentItem.course_id, ContentItem.order).all()


@router.get("/admin/content/{content_id}", response_model=ContentAdminResponse)
def admin_get_content(
    content_id: str,
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
):
    return _get_content_or_404(db, content_id)


# ---------------------------------------------------------------------------
# Learner views
# ---------------------------------------------------------------------------

@router.get("/public/{course_id}")
def public_course_content(course_id: str, db: Session = Depends(get_db)):
    """Free preview items of a course; no media links"""
    contents = db.query(ContentItem).filter(
        ContentItem.course_id == course_id,
        ContentItem.status == "active",
        ContentItem.is_free == True,
    ).order_by(ContentItem.order).all()
    return {
        "success": True,
        "content": [ContentPreviewResponse.model_validate(c, from_attributes=True) for c in contents],
    }


@router.get("/progress/{course_id}")
def get_progress(
    course_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Completion summary for the current user in one course"""
    summary = course_progress(db, user.user_id, course_id)
    completed_ids = [
        record.content_id
        for record in db.query(ProgressRecord).filter(
            ProgressRecord.user_id == user.user_id,
            ProgressRecord.course_id == course_id,
        )
    ]
    enrollment = db.query(Enrollment).filter(
        Enrollment.user_id == user.user_id,
        Enrollment.course_id == course_id,
    ).first()
    return {
        "success": True,
        "progress": {**summary, "completed_contents": completed_ids},
        "enrollment": EnrollmentResponse.model_validate(enrollment) if enrollment else None,
    }


@router.get("/check-enrollment/{course_id}")
def check_enrollment(
    course_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    enrollment = find_completed_enrollment(db, user.user_id, course_id)
    return {
        "success": True,
        "enrolled": enrollment is not None,
        "enrollment": EnrollmentResponse.model_validate(enrollment) if enrollment else None,
    }


@router.post("/{content_id}/complete")
def mark_completed(
    content_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Record that the user finished a content item and recompute course progress"""
    entitlement = check_entitlement(db, user.user_id, content_id, require_active_course=False)
    course_id = entitlement.course.course_id
    enrollment = entitlement.enrollment

    already_done = db.query(ProgressRecord).filter(
        ProgressRecord.user_id == user.user_id,
        ProgressRecord.content_id == content_id,
    ).first()
    if already_done:
        return {
            "success": True,
            "message": "Content already marked as completed",
            "progress": course_progress(db, user.user_id, course_id),
            "enrollment": {"progress": enrollment.progress, "completed": enrollment.completed},
        }

    try:
        db.add(ProgressRecord(
            user_id=user.user_id,
            course_id=course_id,
            content_id=content_id,
            completed_at=datetime.utcnow(),
        ))
        db.flush()
    except IntegrityError:
        # Concurrent completion of the same item
        db.rollback()
        enrollment = find_completed_enrollment(db, user.user_id, course_id)

    summary = course_progress(db, user.user_id, course_id)
    enrollment.progress = summary["percentage"]
    if summary["total"] > 0 and summary["completed"] == summary["total"]:
        enrollment.completed = True
    db.commit()

    logger.info(
        "Content completed",
        extra={"user_id": user.user_id, "content_id": content_id, "action": "complete_content"},
    )
    return {
        "success": True,
        "message": "Content marked as completed",
        "progress": summary,
        "enrollment": {"progress": enrollment.progress, "completed": enrollment.completed},
    }


@router.get("/{course_id}")
def list_course_content(
    course_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    service=Depends(get_media_tokens),
):
    """
    Active content of a course the user is enrolled in

    Local media is only reachable through the freshly minted, token-bearing
    URLs in this listing; storage details are never returned.
    """
    if not find_completed_enrollment(db, user.user_id, course_id):
        raise NotEnrolledError("You are not enrolled in this course or payment is pending")

    contents = db.query(ContentItem).filter(
        ContentItem.course_id == course_id,
        ContentItem.status == "active",
    ).order_by(ContentItem.order).all()
    completed = {
        record.content_id
        for record in db.query(ProgressRecord).filter(
            ProgressRecord.user_id == user.user_id,
            ProgressRecord.course_id == course_id,
        )
    }

    items = []
    for content in contents:
        item = ContentLearnerResponse(
            content_id=content.content_id,
            course_id=content.course_id,
            title=content.title,
            description=content.description,
            type=content.type,
            duration=content.duration,
            order=content.order,
            is_free=content.is_free,
            has_video=content.has_video,
            has_document=content.has_document,
            document_url=None if content.document_file else content.document_url,
            completed=content.content_id in completed,
        )
        if has_media(content, "video"):
            item.secure_video_url = mint_media_url(service, user.user_id, content, "video").media_url
        elif content.video_url:
            item.video_url = content.video_url
        if has_media(content, "document"):
            item.secure_document_url = mint_media_url(service, user.user_id, content, "document").media_url
        items.append(item)

    return {"success": True, "content": items, "progress": course_progress(db, user.user_id, course_id)}
