from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List
from datetime import date, datetime
from enum import Enum

from app.models.service import ServiceCategory, VehicleType
from app.utils.validators import reject_null

class Season(str, Enum):
    WINTER = "winter"
    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"

class LocalizedText(BaseModel):
    nl: str = Field(min_length=1)
    fr: str = Field(min_length=1)
    en: str = Field(min_length=1)

    @field_validator('nl', 'fr', 'en')
    @classmethod
    def strip(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Localized text cannot be empty')
        return v

class LocalizedList(BaseModel):
    nl: List[str] = []
    fr: List[str] = []
    en: List[str] = []

class Availability(BaseModel):
    monday: bool = True
    tuesday: bool = True
    wednesday: bool = True
    thursday: bool = True
    friday: bool = True
    saturday: bool = True
    sunday: bool = False

class SeasonalRule(BaseModel):
    season: Season
    price_multiplier: float = Field(1.0, ge=0.1, le=3.0)
    start_date: date
    end_date: date

    @model_validator(mode='after')
    def check_window(self):
        if self.end_date < self.start_date:
            raise ValueError('Seasonal end date must not precede its start date')
        return self

class ServiceBase(BaseModel):
    name: LocalizedText
    description: LocalizedText
    features: LocalizedList = LocalizedList()
    category: ServiceCategory
    price: float = Field(ge=0)
    duration: int = Field(ge=15, le=480)
    sort_order: int = 0
    loyalty_points_earned: int = Field(0, ge=0)
    vehicle_types: List[VehicleType] = []
    availability: Availability = Availability()
    seasonal_pricing: List[SeasonalRule] = []

class ServiceCreate(ServiceBase):
    pass

class ServiceUpdate(BaseModel):
    name: Optional[LocalizedText] = None
    description: Optional[LocalizedText] = None
    features: Optional[LocalizedList] = None
    category: Optional[ServiceCategory] = None
    price: Optional[float] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=15, le=480)
    sort_order: Optional[int] = None
    loyalty_points_earned: Optional[int] = Field(None, ge=0)
    vehicle_types: Optional[List[VehicleType]] = None
    availability: Optional[Availability] = None
    seasonal_pricing: Optional[List[SeasonalRule]] = None
    is_active: Optional[bool] = None

    @field_validator('*')
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

class ServiceResponse(ServiceBase):
    id: int
    is_active: bool
    current_price: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class LocalizedServiceResponse(BaseModel):
    id: int
    name: str
    description: str
    features: List[str] = []
    category: ServiceCategory
    price: float
    current_price: float
    duration: int
    loyalty_points_earned: int
    vehicle_types: List[VehicleType] = []
