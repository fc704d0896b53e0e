"""Razorpay payment-link client and webhook signature verification."""

import asyncio
import hashlib
import hmac
import logging
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import requests

from agrimart.core.config import settings
from agrimart.core.exceptions import PaymentGatewayError
from agrimart.middleware.metrics import record_provider_call

logger = logging.getLogger(__name__)

# Payment-link statuses that mean the buyer will not pay through this link
FAILED_LINK_STATUSES = frozenset({"cancelled", "expired", "failed"})
PAID_LINK_STATUS = "paid"


def to_minor_units(amount: Decimal) -> int:
    """Convert rupees to paise."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_webhook_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Check an HMAC-SHA256 hex signature over the raw request body."""
    if not signature or not secret:
        return False
    expected = compute_signature(body, secret)
    return hmac.compare_digest(expected, signature)


class RazorpayClient:
    """Thin REST client for hosted payment links.

    Blocking ``requests`` calls run in a worker thread so the event loop keeps
    serving other requests while the gateway responds.
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (key_id, key_secret)

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        start = time.perf_counter()
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"Razorpay request {method} {path} failed: {e}")
            raise PaymentGatewayError(f"Payment gateway is unavailable: {e}")
        finally:
            record_provider_call("razorpay", method, time.perf_counter() - start)

        try:
            data = response.json()
        except ValueError:
            raise PaymentGatewayError(
                "Invalid response from payment gateway",
                status=response.status_code,
                payload=response.text,
            )

        if not response.ok:
            error = data.get("error") if isinstance(data, dict) else None
            message = (error or {}).get("description") or f"HTTP {response.status_code}"
            logger.error(f"Razorpay {method} {path} returned {response.status_code}: {message}")
            raise PaymentGatewayError(message, status=response.status_code, payload=data)

        if not isinstance(data, dict):
            raise PaymentGatewayError("Invalid response from payment gateway", payload=data)
        return data

    async def create_payment_link(
        self,
        *,
        amount: Decimal,
        customer: dict[str, str],
        notes: dict[str, str],
        description: str,
        callback_url: str,
        currency: str = "INR",
    ) -> dict[str, Any]:
        """Create a hosted payment link.

        Returns:
            Gateway entity with ``id``, ``short_url`` and ``status``
        """
        body = {
            "amount": to_minor_units(amount),
            "currency": currency,
            "accept_partial": False,
            "description": description,
            "customer": customer,
            "notify": {"sms": True, "email": True},
            "reminder_enable": True,
            "notes": notes,
            "callback_url": callback_url,
            "callback_method": "get",
        }
        data = await asyncio.to_thread(self._request, "POST", "/payment_links", json=body)
        if "id" not in data or "short_url" not in data:
            raise PaymentGatewayError("Invalid response from payment gateway", payload=data)
        logger.info(f"Payment link created: {data['id']}")
        return data

    async def fetch_payment_link(self, link_id: str) -> dict[str, Any]:
        return await asyncio.to_thread(self._request, "GET", f"/payment_links/{link_id}")


def build_payment_gateway() -> RazorpayClient:
    return RazorpayClient(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        base_url=settings.RAZORPAY_BASE_URL,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
