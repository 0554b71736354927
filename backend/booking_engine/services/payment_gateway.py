"""
Payment provider client.

The engine never handles cards. It asks the payment service to capture a
deposit against an already-authorized payment reference, or to refund it,
and gets back a status plus an opaque reference.

    POST {base_url}/captures  {"payment_ref", "amount", "appointment_id"}
    POST {base_url}/refunds   {"payment_ref", "amount", "appointment_id"}
    → {"status": "authorized" | "captured" | "refunded" | "failed",
       "reference": "...", "amount": 25.0}
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import settings
from .errors import UpstreamPaymentFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    status: str
    reference: str
    amount: float


class PaymentGateway:
    """Interface of the payment collaborator."""

    def capture_deposit(self, payment_ref: str, amount: float, appointment_id: int) -> PaymentResult:
        raise NotImplementedError

    def refund(self, payment_ref: str, amount: float, appointment_id: int) -> PaymentResult:
        raise NotImplementedError


class UnconfiguredPaymentGateway(PaymentGateway):
    """Used when PAYMENTS_API_URL is not set: every call fails upstream."""

    def capture_deposit(self, payment_ref: str, amount: float, appointment_id: int) -> PaymentResult:
        raise UpstreamPaymentFailure("Payment processing is not configured")

    def refund(self, payment_ref: str, amount: float, appointment_id: int) -> PaymentResult:
        raise UpstreamPaymentFailure("Payment processing is not configured")


class HttpPaymentGateway(PaymentGateway):
    """Synchronous httpx client for the payment service."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _post(self, path: str, payload: dict) -> PaymentResult:
        url = f"{self.base_url}{path}"
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Payment request failed: POST {path} -> {e}")
            raise UpstreamPaymentFailure() from e

        if resp.status_code >= 400:
            logger.error(f"Payment API error: POST {path} -> {resp.status_code}")
            raise UpstreamPaymentFailure()

        try:
            data = resp.json()
            result = PaymentResult(
                status=str(data["status"]),
                reference=str(data.get("reference") or payload["payment_ref"]),
                amount=float(data.get("amount", payload["amount"])),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Payment API returned malformed body for POST {path}: {e}")
            raise UpstreamPaymentFailure() from e

        if result.status == "failed":
            raise UpstreamPaymentFailure("The payment was declined")

        return result

    def capture_deposit(self, payment_ref: str, amount: float, appointment_id: int) -> PaymentResult:
        return self._post("/captures", {
            "payment_ref": payment_ref,
            "amount": amount,
            "appointment_id": appointment_id,
        })

    def refund(self, payment_ref: str, amount: float, appointment_id: int) -> PaymentResult:
        return self._post("/refunds", {
            "payment_ref": payment_ref,
            "amount": amount,
            "appointment_id": appointment_id,
        })


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency for the configured gateway."""
    if not settings.payments_api_url:
        return UnconfiguredPaymentGateway()
    return HttpPaymentGateway(
        settings.payments_api_url,
        api_key=settings.payments_api_key,
        timeout=settings.payments_timeout,
    )
