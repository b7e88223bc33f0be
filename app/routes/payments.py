from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from pydantic import ValidationError as PydanticValidationError
import json
import logging

from app.database import get_db
from app.core.config import settings
from app.core.exceptions import AuthenticationError, ValidationError
from app.schemas.payment import WebhookData, WebhookAck
from app.services.payment_service import PaymentService
from app.services.stripe_client import verify_webhook_signature

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/webhook/stripe", response_model=WebhookAck)
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """Handle Stripe payment intent events"""
    body = await request.body()

    if settings.STRIPE_WEBHOOK_SECRET:
        signature = request.headers.get("stripe-signature")
        if not verify_webhook_signature(body, signature, settings.STRIPE_WEBHOOK_SECRET):
            logger.warning("Rejected Stripe webhook with invalid signature")
            raise AuthenticationError("Invalid webhook signature")

    try:
        event = WebhookData.model_validate(json.loads(body))
    except (ValueError, PydanticValidationError) as e:
        raise ValidationError("Invalid webhook payload") from e

    message, booking_id = PaymentService.handle_event(db, event)
    return WebhookAck(message=message, booking_id=booking_id)
