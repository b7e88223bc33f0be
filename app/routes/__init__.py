from .auth import router as auth_router
from .services import router as services_router
from .bookings import router as bookings_router
from .loyalty import router as loyalty_router
from .payments import router as payments_router

__all__ = [
    "auth_router",
    "services_router",
    "bookings_router",
    "loyalty_router",
    "payments_router"
]
