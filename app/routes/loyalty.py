from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.user import LoyaltyResponse

router = APIRouter()

@router.get("/", response_model=LoyaltyResponse)
def get_loyalty(current_user: User = Depends(get_current_user)):
    """Loyalty balance and completed bookings of the current user"""
    return LoyaltyResponse(
        loyalty_points=current_user.loyalty_points,
        total_bookings=current_user.total_bookings,
    )
