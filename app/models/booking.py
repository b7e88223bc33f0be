from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, Text, Float, ForeignKey, Enum, JSON, CheckConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from app.database import Base

class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"

class PaymentMethod(str, enum.Enum):
    CARD = "card"
    CASH = "cash"
    LOYALTY_POINTS = "loyalty_points"
    BANK_TRANSFER = "bank_transfer"

class CancelledBy(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    SYSTEM = "system"

class NotificationType(str, enum.Enum):
    BOOKING_CONFIRMED = "booking_confirmed"
    REMINDER_24H = "reminder_24h"
    REMINDER_1H = "reminder_1h"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

class NotificationChannel(str, enum.Enum):
    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"

class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_booking_total"),
        CheckConstraint("estimated_duration >= 15", name="ck_booking_duration"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    scheduled_date = Column(Date, nullable=False, index=True)
    slot_start = Column(String(5), nullable=False)
    slot_end = Column(String(5), nullable=False)
    status = Column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True)
    # {"type", "make", "model", "year", "color", "license_plate", "size"}
    vehicle = Column(JSON, nullable=False)
    # {"type", "address": {..., "coordinates"}}
    location = Column(JSON, nullable=False)
    total_amount = Column(Float, nullable=False)
    discount_amount = Column(Float, default=0.0, nullable=False)
    loyalty_points_earned = Column(Integer, default=0, nullable=False)
    estimated_duration = Column(Integer, nullable=False)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False, index=True)
    payment_method = Column(Enum(PaymentMethod))
    payment_intent_id = Column(String(255), index=True)
    notes = Column(String(500))
    special_requests = Column(String(1000))
    staff_id = Column(Integer, ForeignKey("users.id"))
    actual_start_time = Column(DateTime(timezone=True))
    actual_end_time = Column(DateTime(timezone=True))

    rating_score = Column(Integer)
    rating_comment = Column(String(500))
    rated_at = Column(DateTime(timezone=True))

    cancellation_reason = Column(Text)
    cancelled_by = Column(Enum(CancelledBy))
    cancelled_at = Column(DateTime(timezone=True))
    refund_amount = Column(Float)
    refund_processed = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="bookings", foreign_keys=[user_id])
    staff = relationship("User", foreign_keys=[staff_id])
    items = relationship("BookingItem", back_populates="booking", cascade="all, delete-orphan",
                         order_by="BookingItem.position")
    notifications = relationship("BookingNotification", back_populates="booking",
                                 cascade="all, delete-orphan", order_by="BookingNotification.id")

    @property
    def time_slot(self):
        return {"start": self.slot_start, "end": self.slot_end}

    @property
    def is_rated(self):
        return self.rating_score is not None

    @property
    def rating(self):
        if not self.is_rated:
            return None
        return {"score": self.rating_score, "comment": self.rating_comment, "created_at": self.rated_at}

    @property
    def cancellation(self):
        if self.cancelled_at is None:
            return None
        return {
            "reason": self.cancellation_reason,
            "cancelled_by": self.cancelled_by,
            "cancelled_at": self.cancelled_at,
            "refund_amount": self.refund_amount,
            "refund_processed": bool(self.refund_processed),
        }

class BookingItem(Base):
    __tablename__ = "booking_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_booking_item_quantity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    position = Column(Integer, default=0, nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    # unit price frozen when the booking was priced
    price = Column(Float, nullable=False)
    duration = Column(Integer, nullable=False)
    loyalty_points = Column(Integer, default=0, nullable=False)
    addons = Column(JSON, default=list)

    booking = relationship("Booking", back_populates="items")
    service = relationship("Service")

class BookingNotification(Base):
    __tablename__ = "booking_notifications"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    type = Column(Enum(NotificationType), nullable=False)
    channel = Column(Enum(NotificationChannel), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False)

    booking = relationship("Booking", back_populates="notifications")

class ScheduleDay(Base):
    """Per-date lock row taken by booking creation so check-then-insert is serialized"""
    __tablename__ = "schedule_days"

    day = Column(Date, primary_key=True)
    version = Column(Integer, default=0, nullable=False)
