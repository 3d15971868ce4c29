"""Tests for enrollments and coupons"""
from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from app.models.coupon import Coupon


def make_coupon(db, code="SAVE20", discount_type="percentage", discount_value=20, **fields):
    coupon = Coupon(
        code=code,
        discount_type=discount_type,
        discount_value=discount_value,
        valid_until=fields.pop("valid_until", datetime.utcnow() + timedelta(days=30)),
        **fields,
    )
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


def test_enroll_in_free_course(client: TestClient, db, user_headers, course):
    response = client.post("/enrollments", json={"course_id": course.course_id}, headers=user_headers)
    assert response.status_code == 201
    assert response.json()["payment_status"] == "completed"

    db.refresh(course)
    assert course.students_enrolled == 1

    response = client.post("/enrollments", json={"course_id": course.course_id}, headers=user_headers)
    assert response.status_code == 409


def test_enroll_in_paid_course_is_pending(client: TestClient, db, user_headers, make_course):
    paid = make_course("paid-course", price=1000)

    response = client.post("/enrollments", json={"course_id": paid.course_id}, headers=user_headers)
    assert response.status_code == 201
    assert response.json()["payment_status"] == "pending"
    assert response.json()["amount_paid"] == 1000

    db.refresh(paid)
    assert paid.students_enrolled == 0


def test_full_discount_coupon_grants_access(client: TestClient, db, user_headers, make_course):
    paid = make_course("paid-course", price=500)
    coupon = make_coupon(db, code="FREEBIE", discount_type="fixed", discount_value=500, usage_limit=1)

    response = client.post("/enrollments", json={"course_id": paid.course_id, "coupon_code": "freebie"}, headers=user_headers)
    assert response.status_code == 201
    assert response.json()["payment_status"] == "completed"

    db.refresh(coupon)
    assert coupon.used_count == 1
    assert coupon.is_active is False


def test_my_enrollments(client: TestClient, user_headers, enrolled):
    response = client.get("/enrollments/me", headers=user_headers)
    assert response.status_code == 200
    assert [e["enrollment_id"] for e in response.json()] == [enrolled.enrollment_id]


def test_admin_updates_status(client: TestClient, db, admin_headers, user, make_course, make_enrollment):
    paid = make_course("paid-course", price=1000)
    enrollment = make_enrollment(user, paid, payment_status="pending")

    response = client.put(
        f"/admin/enrollments/{enrollment.enrollment_id}",
        json={"payment_status": "completed"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["payment_status"] == "completed"
    db.refresh(paid)
    assert paid.students_enrolled == 1

    stats = client.get("/admin/enrollments/stats", headers=admin_headers).json()
    assert stats["completed"] == 1
    assert stats["total"] == 1

    listing = client.get(f"/admin/enrollments?course_id={paid.course_id}", headers=admin_headers).json()
    assert len(listing) == 1


def test_admin_status_rejects_unknown_value(client: TestClient, admin_headers, enrolled):
    response = client.put(
        f"/admin/enrollments/{enrolled.enrollment_id}",
        json={"payment_status": "refunded"},
        headers=admin_headers,
    )
    assert response.status_code == 400


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------

def test_create_coupon(client: TestClient, admin_headers):
    response = client.post("/coupons", json={
        "code": "welcome10",
        "discount_type": "percentage",
        "discount_value": 10,
        "valid_until": (datetime.utcnow() + timedelta(days=7)).isoformat(),
    }, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["code"] == "WELCOME10"

    response = client.post("/coupons", json={
        "code": "WELCOME10",
        "discount_type": "fixed",
        "discount_value": 5,
        "valid_until": (datetime.utcnow() + timedelta(days=7)).isoformat(),
    }, headers=admin_headers)
    assert response.status_code == 409


def test_percentage_over_100_rejected(client: TestClient, admin_headers):
    response = client.post("/coupons", json={
        "code": "TOOMUCH",
        "discount_type": "percentage",
        "discount_value": 150,
        "valid_until": (datetime.utcnow() + timedelta(days=7)).isoformat(),
    }, headers=admin_headers)
    assert response.status_code == 400


def test_apply_coupon(client: TestClient, db, user_headers):
    make_coupon(db, code="SAVE20", max_discount=150)

    response = client.post("/coupons/apply", json={"code": "save20", "total_amount": 1000}, headers=user_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["discount_amount"] == 150
    assert data["final_amount"] == 850


def test_validate_coupon_errors(client: TestClient, db, user_headers):
    make_coupon(db, code="OLD", valid_until=datetime.utcnow() - timedelta(days=1))
    make_coupon(db, code="BIGSPEND", min_purchase=2000)

    assert client.post("/coupons/validate", json={"code": "MISSING"}, headers=user_headers).status_code == 404

    response = client.post("/coupons/validate", json={"code": "OLD"}, headers=user_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Coupon has expired"

    response = client.post("/coupons/validate", json={"code": "BIGSPEND", "total_amount": 500}, headers=user_headers)
    assert response.status_code == 400

    response = client.post("/coupons/validate", json={"code": "BIGSPEND"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["valid"] is True


def test_update_coupon(client: TestClient, db, admin_headers, user_headers):
    coupon = make_coupon(db, code="SPRING", max_discount=100)
    make_coupon(db, code="TAKEN")

    response = client.put(f"/coupons/{coupon.id}", json={"discount_value": 30, "max_discount": None}, headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["discount_value"] == 30
    assert data["max_discount"] is None
    assert data["code"] == "SPRING"

    assert client.put(f"/coupons/{coupon.id}", json={"code": "taken"}, headers=admin_headers).status_code == 409
    assert client.put(f"/coupons/{coupon.id}", json={"discount_value": 120}, headers=admin_headers).status_code == 400
    assert client.put("/coupons/9999", json={"discount_value": 5}, headers=admin_headers).status_code == 404
    assert client.put(f"/coupons/{coupon.id}", json={"is_active": False}, headers=user_headers).status_code == 403

    response = client.put(f"/coupons/{coupon.id}", json={"is_active": False}, headers=admin_headers)
    assert response.json()["is_active"] is False
    assert client.post("/coupons/validate", json={"code": "SPRING"}, headers=user_headers).status_code == 404


def test_delete_coupon(client: TestClient, db, admin_headers):
    coupon = make_coupon(db, code="GONE")

    response = client.delete(f"/coupons/{coupon.id}", headers=admin_headers)
    assert response.status_code == 204
    assert db.query(Coupon).filter(Coupon.code == "GONE").first() is None

    assert client.delete(f"/coupons/{coupon.id}", headers=admin_headers).status_code == 404
