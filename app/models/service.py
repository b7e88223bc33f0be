from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Enum, JSON, CheckConstraint
from sqlalchemy.sql import func
import enum
from app.database import Base

class ServiceCategory(str, enum.Enum):
    BASIC = "basic"
    PREMIUM = "premium"
    DELUXE = "deluxe"
    ADDON = "addon"

class VehicleType(str, enum.Enum):
    CAR = "car"
    SUV = "suv"
    VAN = "van"
    MOTORCYCLE = "motorcycle"

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

def default_availability():
    return {day: day != "sunday" for day in WEEKDAYS}

class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_service_price"),
        CheckConstraint("duration >= 15 AND duration <= 480", name="ck_service_duration"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # {"nl": ..., "fr": ..., "en": ...}
    name = Column(JSON, nullable=False)
    description = Column(JSON, nullable=False)
    features = Column(JSON, default=lambda: {"nl": [], "fr": [], "en": []})
    category = Column(Enum(ServiceCategory), nullable=False, index=True)
    price = Column(Float, nullable=False)
    duration = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    sort_order = Column(Integer, default=0, nullable=False)
    loyalty_points_earned = Column(Integer, default=0, nullable=False)
    vehicle_types = Column(JSON, default=list)
    availability = Column(JSON, default=default_availability)
    # [{"season", "price_multiplier", "start_date", "end_date"}], evaluated in stored order
    seasonal_pricing = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def localized(self, field: str, language: str = "nl"):
        values = getattr(self, field) or {}
        return values.get(language) or values.get("nl")

    def is_available_on(self, day: str) -> bool:
        return bool((self.availability or default_availability()).get(day.lower(), False))

    def supports_vehicle(self, vehicle_type: str) -> bool:
        # an empty list means every vehicle type
        return not self.vehicle_types or vehicle_type in self.vehicle_types
