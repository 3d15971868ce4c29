"""CSV bulk user import with label-driven auto-enrollment.

Exports from different CRMs name the same column differently ("Email 1",
"E-mail address", ...). Headers are normalised (trimmed, lower-cased,
whitespace collapsed) and each logical field is looked up through an ordered
tuple of candidate headers; the first non-empty candidate wins.

Rows are independent: a failing row is reported and rolled back without
affecting rows before or after it.
"""
import csv
import os
import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import ValidationError
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.user import User
from app.utils.auth import generate_id, generate_temporary_password, hash_password
from app.utils.logger import logger

# ---------------------------------------------------------------------------
# Header synonyms, highest priority first
# ---------------------------------------------------------------------------

FIELD_CANDIDATES: Dict[str, Tuple[str, ...]] = {
    "email": (
        "email 1", "email1", "email", "email 2", "email2",
        "primary email", "email address", "contact email",
    ),
    "first_name": ("first name", "firstname"),
    "last_name": ("last name", "lastname"),
    "phone": ("phone 1", "phone1", "phone", "primary phone"),
    "phone2": ("phone 2", "phone2", "secondary phone"),
    "birthday": ("birthdate", "birthday", "date of birth"),
    "created_at_utc": ("created at (utc+0)", "created at", "join date"),
    "last_activity_date": ("last activity date (utc+0)", "last activity"),
    "last_activity": ("last activity",),
    "discord_id": ("discord id", "discord", "discordid"),
    "tradingview_id": ("tradingview id", "tradingview", "tradingviewid"),
    "trading_segment": ("trading segment", "segment"),
    "badge": ("badge",),
    "address_street": ("address 1 - street", "address1", "street"),
    "address2_type": ("address 2 - type", "addresstype"),
    "address2_street": ("address 2 - street", "address2"),
    "address2_city": ("address 2 - city",),
    "address2_state": ("address 2 - state/region", "state2"),
    "address2_zip": ("address 2 - zip", "zip2"),
    "address2_country": ("address 2 - country", "country2"),
    "address3_street": ("address 3 - street", "address3"),
    "labels": ("labels",),
    "email_subscriber_status": ("email subscriber status", "email status"),
    "sms_subscriber_status": ("sms subscriber status", "sms status"),
    "source": ("source",),
    "language": ("language",),
}

DEFAULT_BADGE = "Beginner"

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
)

_NULL_VALUES = ("NULL", "null")


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def normalize_header(header: Optional[str], index: int) -> str:
    if not header or not header.strip():
        return f"column_{index}"
    return re.sub(r"\s+", " ", header.strip().lower())


def clean_value(value: Optional[str]) -> str:
    if value is None or value in _NULL_VALUES:
        return ""
    return str(value).strip()


def read_rows(lines: Iterable[str]) -> List[Dict[str, str]]:
    """Parse CSV text into normalised row dicts, dropping rows without data"""
    reader = csv.reader(lines)
    try:
        raw_headers = next(reader)
    except StopIteration:
        return []
    headers = [normalize_header(h, i) for i, h in enumerate(raw_headers)]

    rows = []
    for values in reader:
        row: Dict[str, str] = {}
        for header, value in zip(headers, values):
            # First non-empty occurrence of a duplicated header wins
            if header not in row or not row[header]:
                row[header] = clean_value(value)
        if any(row.values()):
            rows.append(row)
    return rows


def pick(row: Dict[str, str], field: str) -> str:
    """First non-empty value among the field's candidate headers"""
    for header in FIELD_CANDIDATES[field]:
        value = row.get(header)
        if value:
            return value
    return ""


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def parse_date(value: str) -> Optional[datetime]:
    """Best-effort date parsing; unparseable input yields None"""
    if not value:
        return None
    value = value.strip()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def clean_phone(value: str) -> str:
    """Keep digits and '+' only"""
    return re.sub(r"[^\d+]", "", value or "")


def split_labels(value: str) -> List[str]:
    return [label.strip() for label in value.split(";") if label.strip()]


def generate_username(db: Session, email: str, index: int) -> str:
    """Local part of the email (alphanumerics only), made unique with a counter"""
    base = re.sub(r"[^a-zA-Z0-9]", "", email.split("@")[0])
    if len(base) < 3:
        base = f"user_{int(datetime.utcnow().timestamp())}_{index}"

    username = base
    counter = 1
    while db.query(User.id).filter(User.username == username).first():
        username = f"{base}{counter}"
        counter += 1
    return username


def courses_for_labels(db: Session, labels: List[str], label_map: Dict[str, str]) -> List[Course]:
    """Map labels to courses through the label -> slug table, de-duplicated"""
    slugs: List[str] = []
    for label in labels:
        slug = label_map.get(label)
        if slug and slug not in slugs:
            slugs.append(slug)
    if not slugs:
        return []

    courses = db.query(Course).filter(Course.slug.in_(slugs)).all()
    found = {course.slug for course in courses}
    for slug in slugs:
        if slug not in found:
            logger.warning(f"Label maps to unknown course slug '{slug}'", extra={"action": "csv_import"})
    return courses


# ---------------------------------------------------------------------------
# Row processing
# ---------------------------------------------------------------------------

def _build_user(db: Session, row: Dict[str, str], email: str, index: int) -> User:
    address = {"street": pick(row, "address_street"), "city": "", "state": "", "zip_code": "", "country": ""}

    address2 = None
    if pick(row, "address2_street"):
        address2 = {
            "type": pick(row, "address2_type"),
            "street": pick(row, "address2_street"),
            "city": pick(row, "address2_city"),
            "state": pick(row, "address2_state"),
            "zip_code": pick(row, "address2_zip"),
            "country": pick(row, "address2_country"),
        }

    address3 = None
    if pick(row, "address3_street"):
        address3 = {"street": pick(row, "address3_street")}

    return User(
        user_id=generate_id("usr_"),
        username=generate_username(db, email, index),
        email=email,
        password_hash=hash_password(generate_temporary_password()),
        import_source="csv_import",
        import_date=datetime.utcnow(),
        first_name=pick(row, "first_name"),
        last_name=pick(row, "last_name"),
        phone=clean_phone(pick(row, "phone")),
        phone2=clean_phone(pick(row, "phone2")),
        birthday=parse_date(pick(row, "birthday")),
        discord_id=pick(row, "discord_id"),
        tradingview_id=pick(row, "tradingview_id"),
        trading_segment=pick(row, "trading_segment"),
        badge=pick(row, "badge") or DEFAULT_BADGE,
        address=address,
        address2=address2,
        address3=address3,
        labels=split_labels(pick(row, "labels")),
        email_subscriber_status=pick(row, "email_subscriber_status"),
        sms_subscriber_status=pick(row, "sms_subscriber_status"),
        source=pick(row, "source"),
        language=pick(row, "language"),
        last_activity=pick(row, "last_activity"),
        last_activity_date=parse_date(pick(row, "last_activity_date")),
        created_at_utc=parse_date(pick(row, "created_at_utc")),
    )


def enroll_in_courses(
    db: Session,
    user: User,
    courses: List[Course],
    summary: dict,
    row_number: int,
) -> int:
    """Create completed enrollments for ``courses``; returns how many were created"""
    created = 0
    for course in courses:
        try:
            exists = db.query(Enrollment.id).filter(
                Enrollment.user_id == user.user_id,
                Enrollment.course_id == course.course_id,
            ).first()
            if exists:
                continue

            db.add(Enrollment(
                enrollment_id=generate_id("enr_"),
                user_id=user.user_id,
                course_id=course.course_id,
                payment_status="completed",
                amount_paid=course.effective_price or 0,
            ))
            db.query(Course).filter(Course.id == course.id).update(
                {Course.students_enrolled: Course.students_enrolled + 1},
                synchronize_session=False,
            )
            db.commit()
            created += 1
        except Exception as exc:
            db.rollback()
            logger.warning(
                f"Auto-enrollment failed for {user.email} in {course.slug}",
                extra={"action": "csv_import", "user_id": user.user_id, "course_id": course.course_id, "error": str(exc)},
            )
            summary["enrollment_errors"].append(f"Row {row_number}: Failed to enroll in course - {exc}")
    return created


def import_rows(db: Session, rows: List[Dict[str, str]], label_map: Optional[Dict[str, str]] = None) -> dict:
    """Create users (and their label enrollments) from parsed rows.

    Args:
        db: Database session; committed once per row
        rows: Output of :func:`read_rows`
        label_map: label -> course slug; defaults to LABEL_COURSE_SLUGS

    Returns:
        {"total", "successful", "failed", "enrollments", "errors", "enrollment_errors"}
    """
    label_map = settings.LABEL_COURSE_SLUGS if label_map is None else label_map
    summary = {
        "total": 0,
        "successful": 0,
        "failed": 0,
        "enrollments": 0,
        "errors": [],
        "enrollment_errors": [],
    }

    for index, row in enumerate(rows):
        row_number = index + 2   # header is row 1
        summary["total"] += 1

        email = pick(row, "email")
        if not email:
            summary["failed"] += 1
            summary["errors"].append(f"Row {row_number}: No email address found")
            continue
        if not is_valid_email(email):
            summary["failed"] += 1
            summary["errors"].append(f'Row {row_number}: Invalid email format - "{email}"')
            continue

        email = email.lower()
        if db.query(User.id).filter(User.email == email).first():
            summary["failed"] += 1
            summary["errors"].append(f"Row {row_number}: User with email {email} already exists")
            continue

        try:
            user = _build_user(db, row, email, index)
            db.add(user)
            db.commit()
        except Exception as exc:
            db.rollback()
            summary["failed"] += 1
            summary["errors"].append(f"Row {row_number}: {exc}")
            logger.warning(f"CSV row {row_number} failed", extra={"action": "csv_import", "error": str(exc)})
            continue

        summary["successful"] += 1

        if user.labels:
            courses = courses_for_labels(db, user.labels, label_map)
            if courses:
                summary["enrollments"] += enroll_in_courses(db, user, courses, summary, row_number)

    return summary


def import_users_csv(db: Session, path: str, label_map: Optional[Dict[str, str]] = None) -> dict:
    """Run the import for an uploaded CSV file and delete the file afterwards.

    Raises:
        ValidationError: the file holds no data rows
    """
    try:
        with open(path, newline="", encoding="utf-8-sig", errors="replace") as f:
            rows = read_rows(f)
        if not rows:
            raise ValidationError("CSV file is empty or contains no valid data")

        summary = import_rows(db, rows, label_map)
        logger.info(
            f"CSV import completed: {summary['successful']}/{summary['total']} users imported",
            extra={"action": "csv_import"},
        )
        return summary
    finally:
        try:
            if os.path.exists(path):
                os.unlink(path)
        except OSError as exc:
            logger.warning(f"Could not delete uploaded CSV {path}", extra={"error": str(exc)})
