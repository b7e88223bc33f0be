from __future__ import annotations

import hashlib
import hmac
import logging
import time

import requests

from app.core.exceptions import GatewayError
from app.services.gateways import PaymentGateway, RefundResult

logger = logging.getLogger(__name__)


class StripePaymentGateway(PaymentGateway):
    def __init__(self, secret_key: str, base_url: str = "https://api.stripe.com", timeout: float = 10.0) -> None:
        self._secret_key = secret_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()

    def refund(self, payment_intent_id: str, amount_minor_units: int) -> RefundResult:
        headers = {"Authorization": f"Bearer {self._secret_key}"}
        data = {"payment_intent": payment_intent_id, "amount": amount_minor_units}

        try:
            response = self._session.post(
                f"{self._base_url}/v1/refunds", headers=headers, data=data, timeout=self._timeout
            )
        except requests.RequestException as e:
            raise GatewayError(f"Stripe refund request failed: {e}") from e

        try:
            result = response.json()
        except ValueError:
            result = {}

        if response.status_code >= 400:
            message = (result.get("error") or {}).get("message") or response.text
            logger.error("Stripe refund error (%s): %s", response.status_code, message)
            raise GatewayError(f"Stripe refund failed: {message}")

        return RefundResult(
            refund_id=result.get("id", ""),
            status=result.get("status", "unknown"),
            amount=int(result.get("amount", amount_minor_units)),
        )


def verify_webhook_signature(payload: bytes, signature_header: str, secret: str, tolerance: int = 300) -> bool:
    """Check a ``Stripe-Signature`` header (``t=...,v1=...``) against the raw body"""
    if not signature_header:
        return False

    parts = {}
    for item in signature_header.split(","):
        key, _, value = item.partition("=")
        parts.setdefault(key.strip(), []).append(value.strip())

    try:
        timestamp = int(parts.get("t", [""])[0])
    except ValueError:
        return False

    if tolerance and abs(time.time() - timestamp) > tolerance:
        return False

    signed_payload = f"{timestamp}.".encode() + payload
    expected = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()
    return any(hmac.compare_digest(expected, candidate) for candidate in parts.get("v1", []))
