import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.models.booking import Booking, PaymentStatus
from app.schemas.payment import WebhookData

logger = logging.getLogger(__name__)

HANDLED_EVENTS = ("payment_intent.succeeded", "payment_intent.payment_failed")


class PaymentService:
    """Reconciles booking payment state from Stripe webhook events"""

    @staticmethod
    def _booking_id(intent: dict) -> Optional[int]:
        raw = (intent.get("metadata") or {}).get("booking_id")
        try:
            return int(raw) if raw is not None else None
        except (TypeError, ValueError):
            return None

    @staticmethod
    def handle_event(db: Session, event: WebhookData):
        """Apply a webhook event; returns (message, booking_id)"""
        if event.type not in HANDLED_EVENTS:
            logger.info("Ignoring webhook event %s", event.type)
            return f"{event.type} acknowledged", None

        intent = event.data.get("object") or {}
        booking_id = PaymentService._booking_id(intent)
        if booking_id is None:
            logger.warning("Webhook event %s carries no booking_id", event.type)
            return "No booking reference", None

        booking = db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            logger.warning("Webhook event %s for unknown booking", event.type, extra={"booking_id": booking_id})
            return "Booking not found", booking_id

        if event.type == "payment_intent.succeeded":
            # a refund already recorded wins over a late success event
            if booking.payment_status != PaymentStatus.REFUNDED:
                booking.payment_status = PaymentStatus.PAID
                booking.payment_intent_id = intent.get("id") or booking.payment_intent_id
            message = "Payment recorded"
        else:
            if booking.payment_status == PaymentStatus.PENDING:
                booking.payment_status = PaymentStatus.FAILED
            message = "Payment failure recorded"

        db.commit()
        logger.info(
            "%s (%s)", message, event.type,
            extra={"booking_id": booking_id},
        )
        return message, booking_id
