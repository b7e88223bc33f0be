from pydantic import BaseModel, ConfigDict, Field, field_validator, computed_field
from typing import Optional, List
from datetime import date, datetime
from enum import Enum

from app.models.booking import (
    BookingStatus, PaymentStatus, PaymentMethod, CancelledBy, NotificationType, NotificationChannel
)
from app.models.service import VehicleType
from app.services.booking_rules import duration_in_minutes, status_color
from app.utils.validators import validate_time, validate_postal_code, normalize_license_plate

MAX_VEHICLE_YEAR = datetime.now().year + 1

class LocationType(str, Enum):
    ONSITE = "onsite"
    PICKUP = "pickup"
    MOBILE = "mobile"

class TimeSlotSchema(BaseModel):
    start: str
    end: str

    @field_validator('start', 'end')
    @classmethod
    def validate_hhmm(cls, v):
        return validate_time(v)

class VehicleSize(BaseModel):
    length: float = Field(ge=0)
    width: float = Field(ge=0)
    height: float = Field(ge=0)

class Vehicle(BaseModel):
    type: VehicleType
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1900, le=MAX_VEHICLE_YEAR)
    color: Optional[str] = None
    license_plate: Optional[str] = None
    size: Optional[VehicleSize] = None

    @field_validator('license_plate')
    @classmethod
    def validate_plate(cls, v):
        return normalize_license_plate(v)

class Coordinates(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: str = "Belgium"
    coordinates: Optional[Coordinates] = None

    @field_validator('postal_code')
    @classmethod
    def validate_postal(cls, v):
        return validate_postal_code(v)

class Location(BaseModel):
    type: LocationType = LocationType.ONSITE
    address: Optional[Address] = None

class BookingServiceLine(BaseModel):
    service_id: int
    quantity: int = Field(1, ge=1)
    addons: List[int] = []

class BookingCreate(BaseModel):
    services: List[BookingServiceLine] = Field(min_length=1)
    scheduled_date: date
    time_slot: TimeSlotSchema
    vehicle: Vehicle
    location: Optional[Location] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(None, max_length=500)
    special_requests: Optional[str] = Field(None, max_length=1000)

class BookingCancel(BaseModel):
    reason: str = ""

class BookingRate(BaseModel):
    score: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)

class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    staff_id: Optional[int] = None
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    reason: Optional[str] = None

class BookingItemResponse(BaseModel):
    id: int
    service_id: int
    quantity: int
    price: float
    duration: int
    loyalty_points: int
    addons: List[int] = []

    model_config = ConfigDict(from_attributes=True)

class RatingResponse(BaseModel):
    score: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

class CancellationResponse(BaseModel):
    reason: Optional[str] = None
    cancelled_by: Optional[CancelledBy] = None
    cancelled_at: Optional[datetime] = None
    refund_amount: Optional[float] = None
    refund_processed: bool = False

class NotificationLogResponse(BaseModel):
    type: NotificationType
    channel: NotificationChannel
    sent_at: datetime

    model_config = ConfigDict(from_attributes=True)

class BookingResponse(BaseModel):
    id: int
    user_id: int
    services: List[BookingItemResponse] = Field(validation_alias="items")
    scheduled_date: date
    time_slot: TimeSlotSchema
    status: BookingStatus
    vehicle: dict
    location: dict
    total_amount: float
    discount_amount: float
    loyalty_points_earned: int
    estimated_duration: int
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    payment_intent_id: Optional[str] = None
    notes: Optional[str] = None
    special_requests: Optional[str] = None
    staff_id: Optional[int] = None
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    rating: Optional[RatingResponse] = None
    cancellation: Optional[CancellationResponse] = None
    notifications: List[NotificationLogResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @computed_field
    @property
    def status_color(self) -> str:
        return status_color(self.status)

    @computed_field
    @property
    def duration_minutes(self) -> int:
        return duration_in_minutes(self.estimated_duration, self.actual_start_time, self.actual_end_time)

class AdminBookingResponse(BookingResponse):
    is_today: bool = False
    is_past_due: bool = False

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    pagination: Pagination

class AdminBookingListResponse(BaseModel):
    bookings: List[AdminBookingResponse]
    pagination: Pagination

class SlotAvailabilityResponse(BaseModel):
    scheduled_date: date
    time_slot: TimeSlotSchema
    available: bool
