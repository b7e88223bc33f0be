import re
from datetime import time
from typing import Optional

TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')
POSTAL_CODE_PATTERN = re.compile(r'^\d{4}$')
LICENSE_PLATE_PATTERN = re.compile(r'^[A-Z0-9]{1,8}$')
PHONE_PATTERN = re.compile(r'^(\+32|0)[1-9]\d{8}$')

def is_valid_time(value: str) -> bool:
    """Check a 24-hour HH:mm string"""
    return bool(value) and bool(TIME_PATTERN.match(value))

def validate_time(value: str) -> str:
    if not is_valid_time(value):
        raise ValueError('Time must be in HH:mm format')
    return value

def parse_time(value: str) -> time:
    validate_time(value)
    hours, minutes = value.split(':')
    return time(int(hours), int(minutes))

def validate_postal_code(value: Optional[str]) -> Optional[str]:
    if value and not POSTAL_CODE_PATTERN.match(value):
        raise ValueError('Please enter a valid Belgian postal code')
    return value

def normalize_license_plate(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    plate = value.strip().upper()
    if not LICENSE_PLATE_PATTERN.match(plate):
        raise ValueError('Please enter a valid license plate')
    return plate

def validate_phone_number(value: Optional[str]) -> Optional[str]:
    if value and not PHONE_PATTERN.match(value):
        raise ValueError('Please enter a valid Belgian phone number')
    return value

def reject_null(value):
    """Partial updates may omit a field but not null out a required column"""
    if value is None:
        raise ValueError('Field cannot be null')
    return value
