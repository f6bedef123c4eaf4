"""Midtrans Snap API client and notification signature helpers.

Midtrans API Reference:
- Snap: https://docs.midtrans.com/reference/snap-api
- HTTP notification: https://docs.midtrans.com/docs/https-notification-webhooks
"""

import base64
import enum
import hashlib
import hmac
import logging
from typing import Any, Optional

import httpx

from toiletcheck_api.config.env import get_midtrans_server_key, is_midtrans_production

logger = logging.getLogger(__name__)

SANDBOX_SNAP_URL = "https://app.sandbox.midtrans.com/snap/v1/transactions"
PRODUCTION_SNAP_URL = "https://app.midtrans.com/snap/v1/transactions"

SUCCESS_STATUSES = frozenset({"settlement", "capture"})
FAILURE_STATUSES = frozenset({"deny", "cancel", "expire"})


class PaymentOutcome(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"


def classify_transaction_status(status: Optional[str]) -> PaymentOutcome:
    """Map a Midtrans transaction_status onto one of three outcomes."""
    if status in SUCCESS_STATUSES:
        return PaymentOutcome.SUCCESS
    if status in FAILURE_STATUSES:
        return PaymentOutcome.FAILURE
    return PaymentOutcome.PENDING


def compute_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    """SHA-512 hex of order_id + status_code + gross_amount + server_key."""
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


def verify_signature(
    order_id: str,
    status_code: str,
    gross_amount: str,
    signature_key: str,
    server_key: str,
) -> bool:
    expected = compute_signature(order_id, status_code, gross_amount, server_key)
    return hmac.compare_digest(expected, signature_key or "")


class MidtransClient:
    """Midtrans Snap client.

    Environment Variables:
    - MIDTRANS_SERVER_KEY: server key (Basic auth username, empty password)
    - MIDTRANS_IS_PRODUCTION: "true" for the live gateway, sandbox otherwise
    """

    def __init__(self, server_key: Optional[str] = None, is_production: Optional[bool] = None):
        self.server_key = server_key if server_key is not None else get_midtrans_server_key()
        if not self.server_key:
            raise ValueError("MIDTRANS_SERVER_KEY is required.")
        self.is_production = is_midtrans_production() if is_production is None else is_production
        self.snap_url = PRODUCTION_SNAP_URL if self.is_production else SANDBOX_SNAP_URL

    def _headers(self) -> dict[str, str]:
        credentials = base64.b64encode(f"{self.server_key}:".encode()).decode()
        return {
            "Authorization": f"Basic {credentials}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def create_transaction(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a Snap transaction.

        Returns:
            {"token": ..., "redirect_url": ...}

        Raises:
            httpx.HTTPStatusError: If Midtrans rejects the request
        """
        async with httpx.AsyncClient() as client:
            response = await client.post(
                self.snap_url, headers=self._headers(), json=payload, timeout=30.0
            )
            response.raise_for_status()
            result = response.json()

        logger.info(
            "Midtrans transaction created",
            extra={
                "event": "midtrans.transaction.created",
                "order_id": payload.get("transaction_details", {}).get("order_id"),
                "production": self.is_production,
            },
        )
        return {"token": result.get("token"), "redirect_url": result.get("redirect_url")}


# Global client instance (singleton)
_midtrans_client: Optional[MidtransClient] = None


def get_midtrans_client() -> MidtransClient:
    """Get global Midtrans client instance (singleton).

    Raises:
        ValueError: If MIDTRANS_SERVER_KEY is not configured
    """
    global _midtrans_client
    if _midtrans_client is None:
        _midtrans_client = MidtransClient()
    return _midtrans_client
