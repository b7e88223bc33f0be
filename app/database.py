import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from app.core.config import settings

logger = logging.getLogger(__name__)

database_url = settings.DATABASE_URL

if database_url and database_url.startswith("postgres://"):
    database_url = database_url.replace("postgres://", "postgresql://", 1)


engine_args = {
    "echo": settings.DEBUG,
    "pool_pre_ping": True,
    "pool_size": 10,
    "max_overflow": 20,
    "pool_recycle": 1800
}

if not database_url:
    database_url = "sqlite:///./carwash.db"
    logger.info("Development: using SQLite")
    # timeout is the sqlite busy wait used while another request holds the day lock
    engine_args = {"connect_args": {"check_same_thread": False, "timeout": 30}}
else:
    logger.info("Production: using PostgreSQL")


engine = create_engine(database_url, **engine_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
