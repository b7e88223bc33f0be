from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Sequence

from app.core.exceptions import GatewayError


@dataclass(frozen=True)
class NotificationResult:
    success_count: int
    failure_count: int


@dataclass(frozen=True)
class RefundResult:
    refund_id: str
    status: str
    amount: int


class NotificationGateway(ABC):
    @abstractmethod
    def send(
        self,
        tokens: Sequence[str],
        title: str,
        body: str,
        data: Mapping[str, str] | None = None,
    ) -> NotificationResult:
        """Deliver a push message to every token. Raises GatewayError on transport failure."""
        raise NotImplementedError


class PaymentGateway(ABC):
    @abstractmethod
    def refund(self, payment_intent_id: str, amount_minor_units: int) -> RefundResult:
        """Refund part or all of a captured payment. Raises GatewayError on failure."""
        raise NotImplementedError


class LoggingNotificationGateway(NotificationGateway):
    """Used in dev/local when no push credentials are configured."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def send(self, tokens, title, body, data=None) -> NotificationResult:
        tokens = [t for t in tokens if t]
        self._logger.info(
            "Push notification (not delivered): %s - %s",
            title,
            body,
            extra={"token_count": len(tokens)},
        )
        return NotificationResult(success_count=0, failure_count=0)


class UnconfiguredPaymentGateway(PaymentGateway):
    def refund(self, payment_intent_id: str, amount_minor_units: int) -> RefundResult:
        raise GatewayError("Payment gateway is not configured")
