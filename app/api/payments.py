"""Payment endpoints backed by the Cashfree orders API"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_payment_gateway
from app.database import get_db
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models.coupon import Coupon
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.user import User
from app.schemas.enrollment import CreateOrderRequest, VerifyPaymentRequest
from app.utils.auth import generate_id
from app.utils.coupons import evaluate_coupon, redeem_coupon
from app.utils.email import send_enrollment_confirmation
from app.utils.enrollments import get_or_create_enrollment, mark_completed, mark_failed
from app.utils.logger import logger
from app.utils.payment_gateway import PAID, TERMINAL_FAILURES, PaymentGateway

router = APIRouter(prefix="/payments", tags=["payments"])


def reconcile_order(db: Session, gateway: PaymentGateway, enrollment: Enrollment) -> str:
    """Pull the gateway's view of an order and apply it to the enrollment.

    Returns the gateway ``order_status``.
    """
    order = gateway.get_order(enrollment.order_id)
    order_status = order.get("order_status", "ACTIVE")

    if order_status == PAID:
        if order.get("cf_order_id"):
            enrollment.payment_id = str(order["cf_order_id"])
        newly_completed = mark_completed(db, enrollment, amount_paid=order.get("order_amount", enrollment.amount_paid))
        if newly_completed and enrollment.coupon_code:
            coupon = db.query(Coupon).filter(Coupon.code == enrollment.coupon_code).first()
            if coupon is not None:
                redeem_coupon(db, coupon)
        db.commit()
        if newly_completed:
            send_enrollment_confirmation(
                enrollment.user.email,
                enrollment.user.display_name,
                enrollment.course.title,
                enrollment.amount_paid,
            )
            logger.info(
                f"Payment completed for order {enrollment.order_id}",
                extra={"user_id": enrollment.user_id, "course_id": enrollment.course_id, "action": "payment_verified"},
            )
    elif order_status in TERMINAL_FAILURES:
        mark_failed(enrollment)
        db.commit()
        logger.info(
            f"Payment {order_status.lower()} for order {enrollment.order_id}",
            extra={"user_id": enrollment.user_id, "action": "payment_failed"},
        )
    return order_status


@router.post("/create-order")
def create_order(
    data: CreateOrderRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Create a gateway order for a course purchase

    The enrollment is created (or reused) as pending and linked to the
    new order id. Courses that cost nothing after discounts are granted
    immediately without touching the gateway.
    """
    course = db.query(Course).filter(Course.course_id == data.course_id, Course.status == "active").first()
    if not course:
        raise NotFoundError("Course not found")

    enrollment = get_or_create_enrollment(db, user.user_id, course.course_id)
    if enrollment.payment_status == "completed":
        raise ConflictError("You are already enrolled in this course")

    amount = course.effective_price or 0
    coupon = None
    enrollment.coupon_code = None
    if data.coupon_code and amount > 0:
        discount = evaluate_coupon(db, data.coupon_code, amount)
        coupon = discount.coupon
        amount = discount.final_amount
        enrollment.coupon_code = coupon.code

    if amount <= 0:
        if coupon is not None:
            redeem_coupon(db, coupon)
        mark_completed(db, enrollment, amount_paid=0)
        db.commit()
        return {"success": True, "free": True, "enrollment_id": enrollment.enrollment_id}

    phone = data.customer_phone or user.phone
    if not phone:
        raise ValidationError("A phone number is required for payment")

    order_id = generate_id("order_")
    order = gateway.create_order(
        order_id=order_id,
        amount=amount,
        customer={
            "customer_id": user.user_id,
            "customer_email": user.email,
            "customer_phone": phone,
            "customer_name": user.username,
        },
        course_id=course.course_id,
        course_title=course.title,
    )

    enrollment.order_id = order_id
    enrollment.payment_status = "pending"
    enrollment.amount_paid = amount
    db.commit()

    logger.info(
        f"Order created: {order_id}",
        extra={"user_id": user.user_id, "course_id": course.course_id, "action": "create_order"},
    )
    return {
        "success": True,
        "free": False,
        "order_id": order_id,
        "order_amount": amount,
        "payment_session_id": order.get("payment_session_id"),
        "enrollment_id": enrollment.enrollment_id,
    }


@router.post("/verify")
def verify_payment(
    data: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Confirm an order with the gateway and grant access once it is paid"""
    enrollment = db.query(Enrollment).filter(
        Enrollment.order_id == data.order_id,
        Enrollment.user_id == user.user_id,
    ).first()
    if not enrollment:
        raise NotFoundError("Order not found")

    order_status = reconcile_order(db, gateway, enrollment)
    db.refresh(enrollment)
    return {
        "success": order_status == PAID,
        "order_status": order_status,
        "payment_status": enrollment.payment_status,
        "course_id": enrollment.course_id,
    }


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Gateway notification hook

    The payload is only used to find the order; its status is always
    re-read from the gateway, so a forged notification cannot grant access.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("Invalid webhook payload")

    order_id = ((payload.get("data") or {}).get("order") or {}).get("order_id")
    if not order_id:
        raise ValidationError("Missing order id")

    enrollment = db.query(Enrollment).filter(Enrollment.order_id == order_id).first()
    if not enrollment:
        logger.warning(f"Webhook for unknown order {order_id}", extra={"action": "payment_webhook"})
        return {"success": True}

    reconcile_order(db, gateway, enrollment)
    return {"success": True}
