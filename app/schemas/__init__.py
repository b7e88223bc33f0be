from .user import (
    UserRegister, UserLogin, LogoutRequest, UserProfileUpdate, ChangePasswordRequest,
    UserResponse, AuthResponse, LoyaltyResponse, MessageResponse
)
from .service import ServiceCreate, ServiceUpdate, ServiceResponse, LocalizedServiceResponse, SeasonalRule
from .booking import (
    BookingCreate, BookingCancel, BookingRate, BookingStatusUpdate,
    BookingResponse, AdminBookingResponse, BookingListResponse, AdminBookingListResponse,
    SlotAvailabilityResponse, TimeSlotSchema
)
from .payment import WebhookData, WebhookAck

__all__ = [
    "UserRegister", "UserLogin", "LogoutRequest", "UserProfileUpdate", "ChangePasswordRequest",
    "UserResponse", "AuthResponse", "LoyaltyResponse", "MessageResponse",
    "ServiceCreate", "ServiceUpdate", "ServiceResponse", "LocalizedServiceResponse", "SeasonalRule",
    "BookingCreate", "BookingCancel", "BookingRate", "BookingStatusUpdate",
    "BookingResponse", "AdminBookingResponse", "BookingListResponse", "AdminBookingListResponse",
    "SlotAvailabilityResponse", "TimeSlotSchema",
    "WebhookData", "WebhookAck"
]
