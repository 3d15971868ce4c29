"""Tests for the CSV bulk user import"""
import os

from fastapi.testclient import TestClient

from app.config import settings
from app.models.enrollment import Enrollment
from app.models.user import User
from app.utils.bulk_import import import_rows, import_users_csv, pick, read_rows
from app.utils.entitlement import find_completed_enrollment


def post_csv(client: TestClient, admin_headers: dict, text: str, filename: str = "contacts.csv"):
    return client.post(
        "/admin/users/import",
        files={"csv_file": (filename, text.encode("utf-8"), "text/csv")},
        headers=admin_headers,
    )


def test_import_with_label_enrollment(client: TestClient, db, admin_headers, course):
    """A labelled row creates the user and enrolls them in the mapped course"""
    response = post_csv(client, admin_headers, "email,labels\na@x.com,Basics of Trading\n")
    assert response.status_code == 200

    results = response.json()["results"]
    assert results["total"] == 1
    assert results["successful"] == 1
    assert results["failed"] == 0
    assert results["enrollments"] == 1

    user = db.query(User).filter(User.email == "a@x.com").one()
    assert user.import_source == "csv_import"
    assert user.labels == ["Basics of Trading"]
    assert find_completed_enrollment(db, user.user_id, course.course_id) is not None

    db.refresh(course)
    assert course.students_enrolled == 1


def test_import_requires_admin(client: TestClient, user_headers):
    response = post_csv(client, user_headers, "email\na@x.com\n")
    assert response.status_code in (401, 403)


def test_import_rejects_non_csv(client: TestClient, admin_headers):
    response = client.post(
        "/admin/users/import",
        files={"csv_file": ("contacts.xlsx", b"PK", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_import_empty_file(client: TestClient, admin_headers):
    response = post_csv(client, admin_headers, "email,first name\n\n")
    assert response.status_code == 400
    assert response.json()["message"] == "CSV file is empty or contains no valid data"


def test_uploaded_file_is_deleted(client: TestClient, admin_headers):
    post_csv(client, admin_headers, "email\nb@x.com\n")
    assert os.listdir(settings.IMPORT_TMP_DIR) == []


def test_header_synonyms(db):
    """Alternative column names from different CRMs map to the same fields"""
    lines = [
        " Email 1 ,First Name,Last Name,Phone 1,Discord ID,Birthdate,Badge",
        "Jane@Example.com,Jane,Doe,+1 (555) 010-2000,jane#1234,1990-05-17,",
    ]
    summary = import_rows(db, read_rows(lines), label_map={})
    assert summary["successful"] == 1

    user = db.query(User).filter(User.email == "jane@example.com").one()
    assert user.first_name == "Jane"
    assert user.last_name == "Doe"
    assert user.phone == "+15550102000"
    assert user.discord_id == "jane#1234"
    assert user.birthday.year == 1990
    assert user.badge == "Beginner"
    assert user.username == "jane"


def test_first_candidate_wins():
    rows = read_rows(["Email 2,Email 1", "second@x.com,first@x.com"])
    assert pick(rows[0], "email") == "first@x.com"

    rows = read_rows(["Email 2,Email 1", "second@x.com,"])
    assert pick(rows[0], "email") == "second@x.com"


def test_null_values_and_blank_rows():
    rows = read_rows(["email,first name", "a@x.com,NULL", ",", "b@x.com,Bo"])
    assert len(rows) == 2
    assert rows[0]["first name"] == ""


def test_row_failures_are_isolated(db):
    lines = [
        "email,first name",
        ",No Email",
        "not-an-email,Bad",
        "ok@x.com,Good",
    ]
    summary = import_rows(db, read_rows(lines), label_map={})

    assert summary["total"] == 3
    assert summary["successful"] == 1
    assert summary["failed"] == 2
    assert summary["errors"] == [
        "Row 2: No email address found",
        'Row 3: Invalid email format - "not-an-email"',
    ]
    assert db.query(User).count() == 1


def test_reimport_marks_existing_as_failed(db):
    """Re-running an import never duplicates an account"""
    lines = ["email", "dup@x.com"]
    assert import_rows(db, read_rows(lines), label_map={})["successful"] == 1

    for _ in range(2):
        summary = import_rows(db, read_rows(lines), label_map={})
        assert summary["successful"] == 0
        assert summary["failed"] == 1
        assert summary["errors"] == ["Row 2: User with email dup@x.com already exists"]

    assert db.query(User).filter(User.email == "dup@x.com").count() == 1


def test_usernames_are_unique(db, make_user):
    make_user(email="taken@other.com", username="sam")
    summary = import_rows(db, read_rows(["email", "sam@x.com", "sam@y.com"]), label_map={})

    assert summary["successful"] == 2
    usernames = {u.username for u in db.query(User).filter(User.import_source == "csv_import")}
    assert usernames == {"sam1", "sam2"}


def test_multiple_labels_deduplicate_courses(db, make_course):
    basics = make_course("basics-of-trading")
    hunter = make_course("djit-hunter-master-entry")
    label_map = settings.LABEL_COURSE_SLUGS

    lines = [
        "email,labels",
        '"c@x.com","Basics of Trading; Basics of Trading Group member; Hunters Group member; VIP"',
    ]
    summary = import_rows(db, read_rows(lines), label_map=label_map)
    assert summary["enrollments"] == 2

    user = db.query(User).filter(User.email == "c@x.com").one()
    course_ids = {e.course_id for e in db.query(Enrollment).filter(Enrollment.user_id == user.user_id)}
    assert course_ids == {basics.course_id, hunter.course_id}


def test_label_for_missing_course_is_skipped(db):
    summary = import_rows(db, read_rows(["email,labels", "d@x.com,Basics of Trading"]))
    assert summary["successful"] == 1
    assert summary["enrollments"] == 0
    assert summary["enrollment_errors"] == []


def test_import_users_csv_deletes_file(db, tmp_path):
    path = tmp_path / "upload.csv"
    path.write_text("\ufeffEmail,First Name\ne@x.com,Eve\n", encoding="utf-8")

    summary = import_users_csv(db, str(path), label_map={})
    assert summary["successful"] == 1
    assert not path.exists()
