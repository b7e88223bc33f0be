import logging
import os
import sys

# Add the current directory to sys.path so we can import from app
sys.path.append(os.getcwd())

from app.database import engine, Base
# Import all models to ensure they are registered with Base.metadata
from app.models import User, UserPushToken, Service, Booking, BookingItem, BookingNotification, ScheduleDay  # noqa: F401

logger = logging.getLogger("create_tables")

def create_tables():
    logger.info("Creating tables in database...")
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created: %s", ", ".join(sorted(Base.metadata.tables)))

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
    create_tables()
