"""Tests for gateway-backed purchases"""
import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_payment_gateway
from app.errors import UpstreamError
from app.main import app
from app.models.enrollment import Enrollment


class FakeGateway:
    def __init__(self):
        self.orders = {}
        self.fail = False

    def create_order(self, order_id, amount, customer, course_id, course_title, currency="INR"):
        if self.fail:
            raise UpstreamError("Payment gateway error: request failed")
        self.orders[order_id] = {"order_id": order_id, "order_amount": amount, "order_status": "ACTIVE", "cf_order_id": 42}
        return {"order_id": order_id, "payment_session_id": f"session_{order_id}"}

    def get_order(self, order_id):
        return self.orders[order_id]


@pytest.fixture
def gateway(client):
    fake = FakeGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: fake
    return fake


@pytest.fixture
def paid_course(make_course):
    return make_course("djit-hunter-master-entry", price=2000, discounted_price=1500)


def create_order(client, headers, course_id, **extra):
    return client.post("/payments/create-order", json={"course_id": course_id, "customer_phone": "9999999999", **extra}, headers=headers)


def test_create_order_and_verify(client: TestClient, db, gateway, user, user_headers, paid_course, outbox):
    response = create_order(client, user_headers, paid_course.course_id)
    assert response.status_code == 200
    data = response.json()
    assert data["order_amount"] == 1500
    assert data["payment_session_id"] == f"session_{data['order_id']}"

    enrollment = db.query(Enrollment).filter(Enrollment.order_id == data["order_id"]).one()
    assert enrollment.payment_status == "pending"

    # Not paid yet
    response = client.post("/payments/verify", json={"order_id": data["order_id"]}, headers=user_headers)
    assert response.json()["success"] is False
    assert response.json()["payment_status"] == "pending"

    gateway.orders[data["order_id"]]["order_status"] = "PAID"
    response = client.post("/payments/verify", json={"order_id": data["order_id"]}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["payment_status"] == "completed"

    db.refresh(paid_course)
    assert paid_course.students_enrolled == 1

    # Verifying twice does not double count
    client.post("/payments/verify", json={"order_id": data["order_id"]}, headers=user_headers)
    db.refresh(paid_course)
    assert paid_course.students_enrolled == 1
    assert [sent["subject"] for sent in outbox] == [f"Enrollment confirmed: {paid_course.title}"]


def test_expired_order_marks_failed(client: TestClient, db, gateway, user_headers, paid_course):
    order_id = create_order(client, user_headers, paid_course.course_id).json()["order_id"]
    gateway.orders[order_id]["order_status"] = "EXPIRED"

    response = client.post("/payments/verify", json={"order_id": order_id}, headers=user_headers)
    assert response.json()["payment_status"] == "failed"


def test_webhook_reconciles_with_gateway(client: TestClient, db, gateway, user_headers, paid_course):
    order_id = create_order(client, user_headers, paid_course.course_id).json()["order_id"]
    gateway.orders[order_id]["order_status"] = "PAID"

    response = client.post("/payments/webhook", json={"data": {"order": {"order_id": order_id}}})
    assert response.status_code == 200

    enrollment = db.query(Enrollment).filter(Enrollment.order_id == order_id).one()
    db.refresh(enrollment)
    assert enrollment.payment_status == "completed"


def test_verify_other_users_order(client: TestClient, gateway, user_headers, make_user, auth_headers, paid_course):
    order_id = create_order(client, user_headers, paid_course.course_id).json()["order_id"]
    intruder = make_user()

    response = client.post("/payments/verify", json={"order_id": order_id}, headers=auth_headers(intruder))
    assert response.status_code == 404


def test_free_course_skips_gateway(client: TestClient, gateway, user_headers, course):
    response = create_order(client, user_headers, course.course_id)
    assert response.status_code == 200
    assert response.json()["free"] is True
    assert gateway.orders == {}


def test_already_enrolled(client: TestClient, gateway, user, user_headers, paid_course, make_enrollment):
    make_enrollment(user, paid_course)
    assert create_order(client, user_headers, paid_course.course_id).status_code == 409


def test_gateway_failure(client: TestClient, gateway, user_headers, paid_course):
    gateway.fail = True
    response = create_order(client, user_headers, paid_course.course_id)
    assert response.status_code == 502
    assert response.json()["success"] is False
