from fastapi import APIRouter, Depends, Query, status as http_status
from typing import Optional
from datetime import date
import math

from app.core.dependencies import get_current_user, get_booking_service, require_staff
from app.models.booking import BookingStatus
from app.models.user import User
from app.schemas.booking import (
    BookingCreate, BookingCancel, BookingRate, BookingStatusUpdate, BookingResponse,
    AdminBookingResponse, BookingListResponse, AdminBookingListResponse, Pagination,
    SlotAvailabilityResponse, TimeSlotSchema
)
from app.services.booking_service import BookingService

router = APIRouter()

def _pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if total else 0)

@router.post("/", response_model=BookingResponse, status_code=http_status.HTTP_201_CREATED)
def create_booking(
    booking_data: BookingCreate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service)
):
    """Price the requested services and reserve the time slot"""
    return service.create_booking(current_user, booking_data)

@router.get("/", response_model=BookingListResponse)
def get_bookings(
    status: Optional[BookingStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service)
):
    """Get bookings for current user"""
    bookings, total = service.list_user_bookings(current_user.id, status, page, limit)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        pagination=_pagination(page, limit, total),
    )

@router.get("/check-slot", response_model=SlotAvailabilityResponse)
def check_slot(
    scheduled_date: date = Query(..., alias="date"),
    start: str = Query(...),
    end: str = Query(...),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service)
):
    available = service.is_slot_available(scheduled_date, start, end)
    return SlotAvailabilityResponse(
        scheduled_date=scheduled_date,
        time_slot=TimeSlotSchema(start=start, end=end),
        available=available,
    )

@router.get("/admin/all", response_model=AdminBookingListResponse)
def get_all_bookings(
    status: Optional[BookingStatus] = Query(None),
    on: Optional[date] = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    current_user: User = Depends(require_staff),
    service: BookingService = Depends(get_booking_service)
):
    """All bookings for the staff schedule view"""
    bookings, total = service.list_all_bookings(status, on, page, limit)
    return AdminBookingListResponse(
        bookings=[
            AdminBookingResponse.model_validate(b).model_copy(update=service.schedule_flags(b))
            for b in bookings
        ],
        pagination=_pagination(page, limit, total),
    )

@router.put("/admin/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: int,
    update: BookingStatusUpdate,
    current_user: User = Depends(require_staff),
    service: BookingService = Depends(get_booking_service)
):
    return service.update_status(booking_id, update)

@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service)
):
    """Get one of the current user's bookings"""
    return service.get_booking(booking_id, user_id=current_user.id)

@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    cancel_data: BookingCancel,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service)
):
    return service.cancel_booking(booking_id, current_user.id, cancel_data.reason)

@router.post("/{booking_id}/rate", response_model=BookingResponse)
def rate_booking(
    booking_id: int,
    rating_data: BookingRate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service)
):
    return service.rate_booking(booking_id, current_user.id, rating_data.score, rating_data.comment)
