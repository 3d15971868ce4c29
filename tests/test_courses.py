"""Tests for the course catalog"""
from fastapi.testclient import TestClient


def test_create_course(client: TestClient, admin_headers):
    response = client.post("/admin/courses", json={
        "title": "Basics of Trading",
        "price": 4999,
        "discounted_price": 2999,
    }, headers=admin_headers)
    assert response.status_code == 201

    data = response.json()
    assert data["course_id"].startswith("crs_")
    assert data["slug"] == "basics-of-trading"
    assert data["students_enrolled"] == 0


def test_create_course_slug_conflict(client: TestClient, admin_headers, course):
    response = client.post("/admin/courses", json={"title": "Basics of Trading"}, headers=admin_headers)
    assert response.status_code == 409


def test_create_course_requires_admin(client: TestClient, user_headers):
    response = client.post("/admin/courses", json={"title": "Nope"}, headers=user_headers)
    assert response.status_code == 403


def test_public_catalog_hides_inactive(client: TestClient, admin_headers, make_course):
    active = make_course("active-course")
    hidden = make_course("hidden-course", status="inactive")

    slugs = [c["slug"] for c in client.get("/courses").json()]
    assert slugs == ["active-course"]

    assert client.get(f"/courses/{active.course_id}").status_code == 200
    assert client.get(f"/courses/{hidden.course_id}").status_code == 404

    all_courses = client.get("/admin/courses", headers=admin_headers).json()
    assert len(all_courses) == 2


def test_update_course(client: TestClient, admin_headers, course):
    response = client.put(f"/admin/courses/{course.course_id}", json={"price": 100, "slug": "New Slug"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["price"] == 100
    assert response.json()["slug"] == "new-slug"


def test_delete_course_deactivates(client: TestClient, admin_headers, course):
    response = client.delete(f"/admin/courses/{course.course_id}", headers=admin_headers)
    assert response.status_code == 204

    assert client.get(f"/courses/{course.course_id}").status_code == 404
