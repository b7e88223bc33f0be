from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os

from app.database import Base, engine
from app.core.config import settings
from app.core.dependencies import build_gateways
from app.core.exceptions import register_exception_handlers
from app.routes import auth, services, bookings, loyalty, payments
from app import models  # noqa: F401  registers every table on Base.metadata

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("booking_id", "user_id", "status", "token_count"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Car Wash Booking API starting (%s)", "production" if settings.IS_PRODUCTION else "development")
    Base.metadata.create_all(bind=engine)

    notifications, payments_gateway = build_gateways(settings)
    app.state.notification_gateway = notifications
    app.state.payment_gateway = payments_gateway
    yield
    logger.info("Car Wash Booking API stopped")

app = FastAPI(
    title="Car Wash Booking API",
    description="Booking, pricing and loyalty backend for a car wash",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000"
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(services.router, prefix="/api/services", tags=["Services"])
app.include_router(bookings.router, prefix="/api/bookings", tags=["Bookings"])
app.include_router(loyalty.router, prefix="/api/loyalty", tags=["Loyalty"])
app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])

@app.get("/")
async def root_endpoint():
    return {
        "message": "Welcome to Car Wash Booking API",
        "status": "healthy",
        "version": "1.0.0",
        "environment": "production" if settings.IS_PRODUCTION else "development"
    }

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "message": "Car Wash Booking API is running",
        "environment": "production" if settings.IS_PRODUCTION else "development"
    }

@app.get("/ping")
async def ping():
    return {"message": "pong"}

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("app.main:app", host="0.0.0.0", port=port, reload=not settings.IS_PRODUCTION)
