"""Tests for content management, learner listings and progress"""
import os

from fastapi.testclient import TestClient

from app.config import settings
from app.models.enrollment import ProgressRecord


def upload_video(client: TestClient, admin_headers: dict, course_id: str, **form):
    data = {"course_id": course_id, "title": "Lesson 1", "type": "video", "order": "1", **form}
    return client.post(
        "/course-content/upload",
        data=data,
        files={"video_file": ("lesson1.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")},
        headers=admin_headers,
    )


def test_upload_video_file(client: TestClient, admin_headers, course):
    response = upload_video(client, admin_headers, course.course_id)
    assert response.status_code == 201

    data = response.json()
    assert data["content_id"].startswith("cnt_")
    assert data["video_file"]["original_name"] == "lesson1.mp4"
    assert data["video_file"]["filename"] != "lesson1.mp4"
    assert data["video_file"]["filename"].endswith(".mp4")
    assert "path" not in data["video_file"]
    assert os.path.exists(os.path.join(settings.UPLOAD_DIR, data["video_file"]["filename"]))


def test_upload_requires_admin(client: TestClient, user_headers, course):
    response = upload_video(client, user_headers, course.course_id)
    assert response.status_code in (401, 403)


def test_upload_external_video(client: TestClient, admin_headers, course):
    response = client.post(
        "/course-content/upload",
        data={
            "course_id": course.course_id,
            "title": "Market structure",
            "type": "video",
            "video_url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["video_url"] == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def test_upload_rejects_url_and_file_together(client: TestClient, admin_headers, course):
    response = upload_video(client, admin_headers, course.course_id, video_url="https://youtu.be/dQw4w9WgXcQ")
    assert response.status_code == 400


def test_upload_video_type_needs_video(client: TestClient, admin_headers, course):
    response = client.post(
        "/course-content/upload",
        data={"course_id": course.course_id, "title": "Empty", "type": "video"},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_upload_rejects_unknown_document_type(client: TestClient, admin_headers, course):
    response = client.post(
        "/course-content/upload",
        data={"course_id": course.course_id, "title": "Script", "type": "document"},
        files={"document_file": ("run.exe", b"MZ", "application/octet-stream")},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_upload_unknown_course(client: TestClient, admin_headers):
    response = upload_video(client, admin_headers, "crs_missing")
    assert response.status_code == 404


def test_update_replaces_file(client: TestClient, admin_headers, video_content):
    old_path = video_content.video_file["path"]

    response = client.put(
        f"/course-content/{video_content.content_id}",
        data={"title": "Intro (updated)", "status": "inactive"},
        files={"video_file": ("new.mp4", b"new video bytes", "video/mp4")},
        headers=admin_headers,
    )
    assert response.status_code == 200

    data = response.json()
    assert data["title"] == "Intro (updated)"
    assert data["status"] == "inactive"
    assert data["video_file"]["original_name"] == "new.mp4"
    assert not os.path.exists(old_path)


def test_update_failure_keeps_storage_unchanged(client: TestClient, db, admin_headers, video_content):
    old_path = video_content.video_file["path"]
    before = set(os.listdir(settings.UPLOAD_DIR))

    response = client.put(
        f"/course-content/{video_content.content_id}",
        files={
            "video_file": ("new.mp4", b"new video bytes", "video/mp4"),
            "document_file": ("notes.exe", b"MZ", "application/octet-stream"),
        },
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Unsupported document file type: notes.exe"

    assert set(os.listdir(settings.UPLOAD_DIR)) == before
    assert os.path.exists(old_path)
    db.refresh(video_content)
    assert video_content.video_file["path"] == old_path



def test_update_switches_to_external_url(client: TestClient, admin_headers, video_content):
    old_path = video_content.video_file["path"]

    response = client.put(
        f"/course-content/{video_content.content_id}",
        data={"video_url": "https://youtu.be/dQw4w9WgXcQ"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["video_file"] is None
    assert not os.path.exists(old_path)


def test_delete_content(client: TestClient, db, admin_headers, user, video_content, enrolled):
    db.add(ProgressRecord(user_id=user.user_id, course_id=video_content.course_id, content_id=video_content.content_id))
    db.commit()
    path = video_content.video_file["path"]
    content_id = video_content.content_id

    response = client.delete(f"/course-content/{content_id}", headers=admin_headers)
    assert response.status_code == 204
    assert not os.path.exists(path)
    assert db.query(ProgressRecord).filter(ProgressRecord.content_id == content_id).count() == 0

    response = client.get(f"/course-content/admin/content/{content_id}", headers=admin_headers)
    assert response.status_code == 404


def test_admin_list_content(client: TestClient, admin_headers, course, video_content, pdf_content):
    response = client.get(f"/course-content/admin/all-content?course_id={course.course_id}", headers=admin_headers)
    assert response.status_code == 200
    assert [c["content_id"] for c in response.json()] == [video_content.content_id, pdf_content.content_id]


def test_learner_listing(client: TestClient, user_headers, course, video_content, pdf_content, enrolled):
    """Local media is only exposed as freshly minted secure URLs"""
    response = client.get(f"/course-content/{course.course_id}", headers=user_headers)
    assert response.status_code == 200

    data = response.json()
    assert data["progress"] == {"completed": 0, "total": 2, "percentage": 0}
    video, pdf = data["content"]
    assert "/secure-media/video?token=" in video["secure_video_url"]
    assert video["secure_document_url"] is None
    assert "video_file" not in video
    assert "/secure-media/document?token=" in pdf["secure_document_url"]


def test_learner_listing_hides_inactive(client: TestClient, db, user_headers, course, video_content, pdf_content, enrolled):
    pdf_content.status = "inactive"
    db.commit()

    response = client.get(f"/course-content/{course.course_id}", headers=user_headers)
    assert [c["content_id"] for c in response.json()["content"]] == [video_content.content_id]


def test_learner_listing_requires_enrollment(client: TestClient, user_headers, course, video_content):
    response = client.get(f"/course-content/{course.course_id}", headers=user_headers)
    assert response.status_code == 403


def test_public_preview(client: TestClient, course, make_content, video_content):
    make_content(course, "video", title="Free taster", is_free=True, video_url="https://youtu.be/dQw4w9WgXcQ")

    response = client.get(f"/course-content/public/{course.course_id}")
    assert response.status_code == 200
    content = response.json()["content"]
    assert [c["title"] for c in content] == ["Free taster"]
    assert "video_url" not in content[0]


def test_complete_content_updates_progress(client: TestClient, user_headers, course, video_content, pdf_content, enrolled):
    response = client.post(f"/course-content/{video_content.content_id}/complete", headers=user_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["progress"] == {"completed": 1, "total": 2, "percentage": 50}
    assert data["enrollment"] == {"progress": 50, "completed": False}

    # Idempotent
    response = client.post(f"/course-content/{video_content.content_id}/complete", headers=user_headers)
    assert response.json()["message"] == "Content already marked as completed"

    response = client.post(f"/course-content/{pdf_content.content_id}/complete", headers=user_headers)
    assert response.json()["enrollment"] == {"progress": 100, "completed": True}

    response = client.get(f"/course-content/progress/{course.course_id}", headers=user_headers)
    progress = response.json()["progress"]
    assert progress["percentage"] == 100
    assert set(progress["completed_contents"]) == {video_content.content_id, pdf_content.content_id}


def test_complete_requires_enrollment(client: TestClient, user_headers, video_content):
    response = client.post(f"/course-content/{video_content.content_id}/complete", headers=user_headers)
    assert response.status_code == 403


def test_check_enrollment(client: TestClient, user_headers, course, make_enrollment, user):
    response = client.get(f"/course-content/check-enrollment/{course.course_id}", headers=user_headers)
    assert response.json()["enrolled"] is False

    make_enrollment(user, course)
    response = client.get(f"/course-content/check-enrollment/{course.course_id}", headers=user_headers)
    assert response.json()["enrolled"] is True
