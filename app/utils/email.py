"""Fire-and-forget transactional email

Each message carries a plain-text body and an HTML alternative rendered
from ``app/templates/email``.
"""
import smtplib
import threading
from datetime import datetime
from email.message import EmailMessage
from typing import Optional

from app.config import settings
from app.utils.logger import logger
from app.utils.templating import render_template


def _deliver(message: EmailMessage) -> None:
    """Deliver an email in a daemon background thread (fire-and-forget)."""
    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
            smtp.starttls()
            if settings.SMTP_USER:
                smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
            smtp.send_message(message)
        logger.debug("Email delivered", extra={"action": "send_email"})
    except Exception as exc:
        logger.warning(
            "Email delivery failed",
            extra={"action": "send_email", "error": str(exc)},
        )


def send_email(to: str, subject: str, body: str, html: Optional[str] = None) -> bool:
    """
    Queue an email for delivery (non-blocking).

    Returns False without sending when SMTP_HOST is not configured; the
    caller's request never fails because of email.
    """
    if not settings.SMTP_HOST:
        logger.info(f"SMTP not configured, skipping email: {subject}", extra={"action": "send_email"})
        return False

    message = EmailMessage()
    message["From"] = settings.SMTP_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    if html:
        message.add_alternative(html, subtype="html")

    threading.Thread(target=_deliver, args=(message,), daemon=True).start()
    return True


def _render(template: str, subject: str, **context) -> str:
    return render_template(f"email/{template}", subject=subject, app_name=settings.APP_NAME, **context)


def send_welcome_email(to: str, name: str) -> bool:
    subject = f"Welcome to {settings.APP_NAME}!"
    courses_url = f"{settings.FRONTEND_URL}/courses"
    body = (
        f"Welcome, {name}!\n\n"
        f"We're excited to have you on board at {settings.APP_NAME}.\n"
        f"Explore our courses at {courses_url}"
    )
    html = _render("welcome.html", subject, name=name, courses_url=courses_url)
    return send_email(to, subject, body, html)


def send_password_reset_code(to: str, name: str, code: str, expires_minutes: int = 10) -> bool:
    subject = "Your password reset code"
    body = (
        f"Your password reset code is {code}.\n\n"
        f"The code expires in {expires_minutes} minutes. If you did not request a reset, ignore this email."
    )
    html = _render("password_reset.html", subject, name=name, code=code, expires_minutes=expires_minutes)
    return send_email(to, subject, body, html)


def send_password_changed(to: str, name: str) -> bool:
    subject = "Your password was reset"
    body = (
        "Your password has been reset.\n\n"
        "If you did not make this change, contact our support team immediately."
    )
    html = _render("password_changed.html", subject, name=name)
    return send_email(to, subject, body, html)


def send_enrollment_confirmation(to: str, name: str, course_title: str, amount: float) -> bool:
    subject = f"Enrollment confirmed: {course_title}"
    learning_url = f"{settings.FRONTEND_URL}/learning"
    body = (
        f"You are now enrolled in {course_title}.\n"
        f"Amount paid: {amount:.2f}\n\n"
        f"Start learning at {learning_url}"
    )
    html = _render(
        "enrollment_confirmation.html",
        subject,
        name=name,
        course_title=course_title,
        amount=amount,
        paid_on=datetime.utcnow().strftime("%d %b %Y"),
        learning_url=learning_url,
    )
    return send_email(to, subject, body, html)
