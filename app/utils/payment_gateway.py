"""Cashfree payment gateway client"""
from typing import Any, Dict, Optional

import requests

from app.config import settings
from app.errors import UpstreamError
from app.utils.logger import logger

# Cashfree order_status values
PAID = "PAID"
TERMINAL_FAILURES = ("EXPIRED", "TERMINATED", "CANCELLED")


class PaymentGateway:
    """Thin REST client for the Cashfree PG orders API.

    Every failure (network, non-2xx) surfaces as :class:`UpstreamError`.
    """

    def __init__(
        self,
        app_id: Optional[str] = None,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = 30,
    ):
        self.base_url = (base_url or settings.cashfree_base_url).rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "x-client-id": app_id or settings.CASHFREE_APP_ID or "",
            "x-client-secret": secret_key or settings.CASHFREE_SECRET_KEY or "",
            "x-api-version": settings.CASHFREE_API_VERSION,
            "Content-Type": "application/json",
        })

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            detail = None
            if getattr(exc, "response", None) is not None:
                try:
                    detail = exc.response.json().get("message")
                except ValueError:
                    detail = exc.response.text
            logger.error(
                f"Payment gateway request failed: {method} {path}",
                extra={"action": "payment_gateway", "error": detail or str(exc)},
            )
            raise UpstreamError(f"Payment gateway error: {detail or 'request failed'}")

    def create_order(
        self,
        order_id: str,
        amount: float,
        customer: Dict[str, str],
        course_id: str,
        course_title: str,
        currency: str = "INR",
    ) -> Dict[str, Any]:
        """Create a gateway order and return the gateway's order document"""
        payload = {
            "order_id": order_id,
            "order_amount": round(amount, 2),
            "order_currency": currency,
            "customer_details": customer,
            "order_meta": {
                "return_url": f"{settings.FRONTEND_URL}/payment-callback?order_id={{order_id}}&course_id={course_id}",
                "notify_url": f"{settings.PUBLIC_API_URL}/payments/webhook",
            },
            "order_tags": {"course_id": course_id, "course_title": course_title[:250]},
        }
        return self._request("POST", "/orders", json=payload)

    def get_order(self, order_id: str) -> Dict[str, Any]:
        """Fetch the current order document (``order_status`` is PAID once settled)"""
        return self._request("GET", f"/orders/{order_id}")
