"""Tests for minting and refreshing secure media URLs"""
import time
from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from app.config import settings
from app.utils.media_tokens import VIDEO, MediaTokenService


def token_from(media_url: str) -> str:
    return parse_qs(urlparse(media_url).query)["token"][0]


def test_get_secure_video_url(client: TestClient, user_headers, video_content, enrolled):
    response = client.get(f"/course-content/secure-url/{video_content.content_id}/video", headers=user_headers)
    assert response.status_code == 200

    data = response.json()
    assert data["success"] is True
    assert data["content_id"] == video_content.content_id
    assert data["media_type"] == "video"
    assert data["expires_in"] == 3600
    assert "/course-content/secure-media/video?token=" in data["media_url"]
    assert f"contentId={video_content.content_id}" in data["media_url"]
    assert token_from(data["media_url"]) == data["token"]


def test_secure_url_then_stream(client: TestClient, user_headers, video_content, enrolled):
    minted = client.get(f"/course-content/secure-url/{video_content.content_id}/video", headers=user_headers).json()

    path = urlparse(minted["media_url"])
    response = client.get(f"{path.path}?{path.query}")
    assert response.status_code == 200


def test_document_url_lifetime(client: TestClient, user_headers, pdf_content, enrolled):
    response = client.get(f"/course-content/secure-url/{pdf_content.content_id}/document", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["expires_in"] == 7200


def test_secure_url_requires_enrollment(client: TestClient, user_headers, video_content):
    response = client.get(f"/course-content/secure-url/{video_content.content_id}/video", headers=user_headers)
    assert response.status_code == 403


def test_secure_url_requires_session(client: TestClient, video_content, enrolled):
    response = client.get(f"/course-content/secure-url/{video_content.content_id}/video")
    assert response.status_code == 401


def test_secure_url_bad_media_type(client: TestClient, user_headers, video_content, enrolled):
    response = client.get(f"/course-content/secure-url/{video_content.content_id}/audio", headers=user_headers)
    assert response.status_code == 400


def test_secure_url_slot_without_media(client: TestClient, user_headers, video_content, enrolled):
    response = client.get(f"/course-content/secure-url/{video_content.content_id}/document", headers=user_headers)
    assert response.status_code == 404


def test_secure_url_unknown_content(client: TestClient, user_headers, enrolled):
    response = client.get("/course-content/secure-url/cnt_missing/video", headers=user_headers)
    assert response.status_code == 404


def test_expired_token_then_refresh(client: TestClient, media_service, user, user_headers, video_content, enrolled):
    """An expired URL fails; refreshing yields a working URL and revokes the old token"""
    past = MediaTokenService(settings.media_token_secret, media_service.registry, clock=lambda: time.time() - 7200)
    expired = past.issue(user.user_id, video_content.content_id, VIDEO)
    stream = f"/course-content/secure-media/video?contentId={video_content.content_id}&token="

    response = client.get(stream + expired)
    assert response.status_code == 401

    response = client.post(
        f"/course-content/refresh-media-token/{video_content.content_id}/video",
        json={"token": expired},
        headers=user_headers,
    )
    assert response.status_code == 200
    fresh = response.json()["token"]
    assert fresh != expired

    assert client.get(stream + fresh).status_code == 200
    assert media_service.registry.is_revoked(expired)


def test_refresh_revokes_live_token(client: TestClient, media_service, user, user_headers, video_content, enrolled):
    old = media_service.issue(user.user_id, video_content.content_id, VIDEO)
    stream = f"/course-content/secure-media/video?contentId={video_content.content_id}&token="
    assert client.get(stream + old).status_code == 200

    response = client.post(
        f"/course-content/refresh-media-token/{video_content.content_id}/video",
        json={"token": old},
        headers=user_headers,
    )
    new = response.json()["token"]

    assert client.get(stream + old).status_code == 401
    assert client.get(stream + new).status_code == 200


def test_refresh_without_body(client: TestClient, user_headers, video_content, enrolled):
    response = client.post(f"/course-content/refresh-media-token/{video_content.content_id}/video", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["token"]


def test_refresh_requires_enrollment(client: TestClient, user_headers, video_content):
    response = client.post(f"/course-content/refresh-media-token/{video_content.content_id}/video", headers=user_headers)
    assert response.status_code == 403


def test_admin_revoke(client: TestClient, admin_headers, media_service, user, video_content, enrolled):
    token = media_service.issue(user.user_id, video_content.content_id, VIDEO)

    response = client.post("/course-content/secure-media/revoke", json={"token": token}, headers=admin_headers)
    assert response.status_code == 200

    stream = f"/course-content/secure-media/video?contentId={video_content.content_id}&token={token}"
    assert client.get(stream).status_code == 401


def test_revoke_requires_admin(client: TestClient, user_headers):
    response = client.post("/course-content/secure-media/revoke", json={"token": "abc"}, headers=user_headers)
    assert response.status_code in (401, 403)
