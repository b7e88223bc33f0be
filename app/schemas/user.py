from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from datetime import date, datetime

from app.models.user import Language, UserRole
from app.utils.validators import reject_null, validate_phone_number, validate_postal_code

class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    phone: Optional[str] = None
    preferred_language: Language = Language.NL

    @field_validator('first_name', 'last_name')
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Name is required')
        return v

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return validate_phone_number(v)

class UserLogin(BaseModel):
    email: EmailStr
    password: str
    fcm_token: Optional[str] = None

class LogoutRequest(BaseModel):
    fcm_token: Optional[str] = None

class UserAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    @field_validator('street', 'city', 'postal_code', 'country')
    @classmethod
    def strip(cls, v):
        return v.strip() if v else v

    @field_validator('postal_code')
    @classmethod
    def validate_postal(cls, v):
        return validate_postal_code(v)

class UserProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    preferred_language: Optional[Language] = None
    # merged into the stored address; omitted keys are kept
    address: Optional[UserAddress] = None

    @field_validator('preferred_language', 'address')
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

    @field_validator('first_name', 'last_name')
    @classmethod
    def strip_name(cls, v):
        v = reject_null(v).strip()
        if not v:
            raise ValueError('Name is required')
        return v

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return validate_phone_number(v)

    @field_validator('date_of_birth')
    @classmethod
    def validate_birth_date(cls, v):
        if v and v >= date.today():
            raise ValueError('Date of birth must be in the past')
        return v

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)

class UserResponse(BaseModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[dict] = None
    preferred_language: Language
    role: UserRole
    loyalty_points: int
    total_bookings: int
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

class LoyaltyResponse(BaseModel):
    loyalty_points: int
    total_bookings: int

class MessageResponse(BaseModel):
    success: bool = True
    message: str
