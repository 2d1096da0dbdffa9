"""
storefront/integrations/refunds.py - Refund gateway integration.

The gateway is an HTTPS endpoint in front of Razorpay:

    POST {API_BASE_URL}/refundPayment
    {"razorpay_payment_id": "pay_...", "amount": 500}

and answers with `{success, refund: {status, id}, refundQueued, message}`.
Only the JSON body decides the outcome; the HTTP status code is not interpreted.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from storefront.config import settings
from storefront.core.results import Failure, Result, Success

logger = logging.getLogger("storefront.refunds")


@dataclass(frozen=True)
class RefundOutcome:
    queued: bool
    refund_status: str
    refund_id: Optional[str] = None


class RefundGateway:
    """Async client for the refund endpoint. No retries; the caller decides."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = (base_url if base_url is not None else settings.api_base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.refund_timeout_seconds
        self._transport = transport

    async def refund(self, payment_id: str, amount: float) -> Result[RefundOutcome]:
        if not self._base_url:
            return Failure("not_configured", "Refund endpoint is not configured")

        payload = {"razorpay_payment_id": payment_id, "amount": amount}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(f"{self._base_url}/refundPayment", json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Refund request failed for %s: %s", payment_id, exc)
            return Failure("transport", f"Refund request failed: {exc}")

        try:
            data = resp.json()
        except ValueError:
            logger.warning("Non-JSON refund response for %s (%s)", payment_id, resp.status_code)
            return Failure("invalid_response", "Invalid response from refund endpoint")
        if not isinstance(data, dict):
            return Failure("invalid_response", "Invalid response from refund endpoint")

        if data.get("success"):
            refund = data.get("refund") or {}
            return Success(
                RefundOutcome(
                    queued=False,
                    refund_status=refund.get("status") or "processed",
                    refund_id=refund.get("id") or None,
                ),
                message="Booking refunded & updated to Returned",
            )
        if data.get("refundQueued"):
            return Success(
                RefundOutcome(queued=True, refund_status="queued"),
                message="Refund queued, Razorpay will process it later",
            )

        logger.info("Refund rejected for %s: %s", payment_id, data.get("message"))
        return Failure("rejected", data.get("message") or "Refund failed")


_refund_gateway = None


def get_refund_gateway() -> RefundGateway:
    global _refund_gateway
    if _refund_gateway is None:
        _refund_gateway = RefundGateway()
    return _refund_gateway
