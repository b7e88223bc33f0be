import logging

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.database import get_db
from app.core.config import Settings
from app.core.exceptions import AuthenticationError, PermissionDeniedError
from app.core.security import verify_token
from app.models.user import User, UserRole
from app.services.booking_service import BookingService
from app.services.gateways import LoggingNotificationGateway, UnconfiguredPaymentGateway
from app.services.push import FcmNotificationGateway
from app.services.stripe_client import StripePaymentGateway

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
):
    if not credentials:
        raise AuthenticationError("Not authenticated")

    payload = verify_token(credentials.credentials)
    if not payload:
        raise AuthenticationError("Invalid authentication credentials")

    user_id = payload.get("user_id")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return user

def require_role(required_roles: list):
    """Dependency to require specific user roles"""
    async def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in required_roles:
            raise PermissionDeniedError(
                f"Access denied. Required roles: {[role.value for role in required_roles]}"
            )
        return current_user
    return role_checker

require_staff = require_role([UserRole.STAFF, UserRole.ADMIN])
require_admin = require_role([UserRole.ADMIN])

def build_gateways(settings: Settings):
    """Pick real gateways when credentials are configured, fallbacks otherwise"""
    if settings.FIREBASE_PROJECT_ID and settings.FIREBASE_CLIENT_EMAIL and settings.FIREBASE_PRIVATE_KEY:
        notifications = FcmNotificationGateway.from_service_account(
            settings.FIREBASE_PROJECT_ID,
            settings.FIREBASE_CLIENT_EMAIL,
            settings.FIREBASE_PRIVATE_KEY,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
        )
    else:
        logger.info("Firebase service account not set, push notifications will only be logged")
        notifications = LoggingNotificationGateway()

    if settings.STRIPE_SECRET_KEY:
        payments = StripePaymentGateway(
            settings.STRIPE_SECRET_KEY, settings.STRIPE_BASE_URL, timeout=settings.GATEWAY_TIMEOUT_SECONDS
        )
    else:
        logger.warning("STRIPE_SECRET_KEY not set, refunds will fail")
        payments = UnconfiguredPaymentGateway()

    return notifications, payments

def get_booking_service(request: Request, db: Session = Depends(get_db)) -> BookingService:
    return BookingService(
        db,
        notifications=request.app.state.notification_gateway,
        payments=request.app.state.payment_gateway,
    )
