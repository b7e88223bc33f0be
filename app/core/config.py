import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    # App
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "fallback-secret-key-for-development")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Business rules
    BUSINESS_TIMEZONE: str = os.getenv("BUSINESS_TIMEZONE", "Europe/Brussels")
    CANCELLATION_CUTOFF_HOURS: int = int(os.getenv("CANCELLATION_CUTOFF_HOURS", "2"))
    MAX_BOOKING_PAST_HOURS: int = int(os.getenv("MAX_BOOKING_PAST_HOURS", "24"))

    # Stripe
    STRIPE_SECRET_KEY: str = os.getenv("STRIPE_SECRET_KEY", "")
    STRIPE_BASE_URL: str = os.getenv("STRIPE_BASE_URL", "https://api.stripe.com")
    STRIPE_WEBHOOK_SECRET: str = os.getenv("STRIPE_WEBHOOK_SECRET", "")

    # Firebase Cloud Messaging (service account)
    FIREBASE_PROJECT_ID: str = os.getenv("FIREBASE_PROJECT_ID", "")
    FIREBASE_CLIENT_EMAIL: str = os.getenv("FIREBASE_CLIENT_EMAIL", "")
    FIREBASE_PRIVATE_KEY: str = os.getenv("FIREBASE_PRIVATE_KEY", "")

    # Outbound gateway calls
    GATEWAY_TIMEOUT_SECONDS: float = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))

    @property
    def IS_PRODUCTION(self):
        return self.ENV.lower() == "production"

settings = Settings()
