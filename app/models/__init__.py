from .user import User, UserPushToken, UserRole, Language
from .service import Service, ServiceCategory, VehicleType, WEEKDAYS
from .booking import (
    Booking, BookingItem, BookingNotification, ScheduleDay,
    BookingStatus, PaymentStatus, PaymentMethod, CancelledBy, NotificationType, NotificationChannel
)

from sqlalchemy.orm import configure_mappers
configure_mappers()

__all__ = [
    "User", "UserPushToken", "UserRole", "Language",
    "Service", "ServiceCategory", "VehicleType", "WEEKDAYS",
    "Booking", "BookingItem", "BookingNotification", "ScheduleDay",
    "BookingStatus", "PaymentStatus", "PaymentMethod", "CancelledBy",
    "NotificationType", "NotificationChannel"
]
