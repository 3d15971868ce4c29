"""Pytest configuration and fixtures"""
import os
import tempfile
from typing import Callable, Generator, List

# Settings are read at import time, so the environment must be ready first
_TMP_ROOT = tempfile.mkdtemp(prefix="coursehub-tests-")
os.environ.setdefault("JWT_SECRET", "test-session-secret")
os.environ.setdefault("MEDIA_TOKEN_SECRET", "test-media-secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TMP_ROOT, "course-content"))
os.environ.setdefault("IMPORT_TMP_DIR", os.path.join(_TMP_ROOT, "csv"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models.content import ContentItem
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.user import User
from app.utils import email as email_utils
from app.utils.auth import generate_id, hash_password
from app.utils.jwt_utils import create_access_token

TEST_DATABASE_URL = settings.DATABASE_URL

engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

VIDEO_BYTES = bytes(range(256)) * 40   # 10240 bytes
PDF_BYTES = b"%PDF-1.4 test document"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database session override"""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def media_service(client: TestClient):
    """The token service built by the application lifespan"""
    return client.app.state.media_tokens


@pytest.fixture
def outbox(monkeypatch) -> List[dict]:
    """Captures outgoing email instead of queueing it for SMTP delivery"""
    sent = []

    def _capture(to: str, subject: str, body: str, html: str = None) -> bool:
        sent.append({"to": to, "subject": subject, "body": body, "html": html})
        return True

    monkeypatch.setattr(email_utils, "send_email", _capture)
    return sent


@pytest.fixture
def admin_headers() -> dict:
    """Admin authentication headers"""
    return {"X-Admin-Key": settings.ADMIN_API_KEY}


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(email: str = None, password: str = "password123", **fields) -> User:
        counter["n"] += 1
        user = User(
            user_id=generate_id("usr_"),
            username=fields.pop("username", f"learner{counter['n']}"),
            email=email or f"learner{counter['n']}@example.com",
            password_hash=hash_password(password),
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user) -> User:
    return make_user(email="alice@example.com", username="alice")


def session_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.user_id, 'user')}"}


@pytest.fixture
def user_headers(user: User) -> dict:
    return session_headers(user)


@pytest.fixture
def auth_headers() -> Callable[[User], dict]:
    """Session headers for any user"""
    return session_headers


@pytest.fixture
def make_course(db: Session) -> Callable[..., Course]:
    def _make(slug: str = "basics-of-trading", price: float = 0, **fields) -> Course:
        course = Course(
            course_id=generate_id("crs_"),
            slug=slug,
            title=fields.pop("title", slug.replace("-", " ").title()),
            price=price,
            **fields,
        )
        db.add(course)
        db.commit()
        db.refresh(course)
        return course

    return _make


@pytest.fixture
def course(make_course) -> Course:
    return make_course()


def _store(filename: str, data: bytes, original_name: str, mimetype: str) -> dict:
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    path = os.path.join(settings.UPLOAD_DIR, filename)
    with open(path, "wb") as f:
        f.write(data)
    return {
        "filename": filename,
        "original_name": original_name,
        "path": path,
        "size": len(data),
        "mimetype": mimetype,
    }


@pytest.fixture
def make_content(db: Session) -> Callable[..., ContentItem]:
    def _make(course: Course, type: str = "video", **fields) -> ContentItem:
        content = ContentItem(
            content_id=generate_id("cnt_"),
            course_id=course.course_id,
            title=fields.pop("title", f"{type} lesson"),
            type=type,
            **fields,
        )
        db.add(content)
        db.commit()
        db.refresh(content)
        return content

    return _make


@pytest.fixture
def video_bytes() -> bytes:
    return VIDEO_BYTES


@pytest.fixture
def pdf_bytes() -> bytes:
    return PDF_BYTES


@pytest.fixture
def video_content(course: Course, make_content) -> ContentItem:
    descriptor = _store(f"{generate_id('vid_')}.mp4", VIDEO_BYTES, "intro.mp4", "video/mp4")
    return make_content(course, "video", title="Intro", order=1, video_file=descriptor)


@pytest.fixture
def pdf_content(course: Course, make_content) -> ContentItem:
    descriptor = _store(f"{generate_id('doc_')}.pdf", PDF_BYTES, "notes.pdf", "application/pdf")
    return make_content(course, "pdf", title="Notes", order=2, document_file=descriptor)


@pytest.fixture
def make_enrollment(db: Session) -> Callable[..., Enrollment]:
    def _make(user: User, course: Course, payment_status: str = "completed") -> Enrollment:
        enrollment = Enrollment(
            enrollment_id=generate_id("enr_"),
            user_id=user.user_id,
            course_id=course.course_id,
            payment_status=payment_status,
        )
        db.add(enrollment)
        db.commit()
        db.refresh(enrollment)
        return enrollment

    return _make


@pytest.fixture
def enrolled(user: User, course: Course, make_enrollment) -> Enrollment:
    return make_enrollment(user, course)
