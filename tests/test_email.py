"""Tests for transactional email rendering and queueing"""
from app.config import settings
from app.utils import email


class ImmediateThread:
    """Runs the delivery target inline"""

    def __init__(self, target, args=(), daemon=None):
        self.target = target
        self.args = args

    def start(self):
        self.target(*self.args)


def queue_inline(monkeypatch) -> list:
    delivered = []
    monkeypatch.setattr(settings, "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(email.threading, "Thread", ImmediateThread)
    monkeypatch.setattr(email, "_deliver", delivered.append)
    return delivered


def test_send_email_skipped_without_smtp(monkeypatch):
    monkeypatch.setattr(settings, "SMTP_HOST", None)
    assert email.send_email("bob@example.com", "Hello", "body") is False


def test_welcome_email_has_html_alternative(monkeypatch):
    delivered = queue_inline(monkeypatch)

    assert email.send_welcome_email("bob@example.com", "<Bob>") is True

    message = delivered[0]
    assert message["To"] == "bob@example.com"
    assert message["Subject"] == f"Welcome to {settings.APP_NAME}!"
    assert message.get_content_type() == "multipart/alternative"

    html = message.get_body(preferencelist=("html",)).get_content()
    assert "Welcome, &lt;Bob&gt;!" in html
    assert f"{settings.FRONTEND_URL}/courses" in html
    assert message.get_body(preferencelist=("plain",)).get_content().startswith("Welcome, <Bob>!")


def test_enrollment_confirmation_email(monkeypatch):
    delivered = queue_inline(monkeypatch)

    email.send_enrollment_confirmation("bob@example.com", "Bob", "Basics of Trading", 499)

    html = delivered[0].get_body(preferencelist=("html",)).get_content()
    assert "Basics of Trading" in html
    assert "499.00" in html
    assert "Dear Bob," in html
