from typing import Generator, List
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from pydantic_settings import BaseSettings


# =====================================================================
# SETTINGS
# =====================================================================


class Settings(BaseSettings):
    # App
    APP_NAME: str = "NegaStack API"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Database backing the document store
    DATABASE_URL: str = "sqlite:///./negastack.db"

    # Single user partition until auth exists
    FIXED_USER_ID: str = "default_user"

    # Date keys are computed in this zone
    REFERENCE_TIMEZONE: str = "Asia/Tokyo"

    # Document store
    COLLECTION_GROUP_INDEXES: List[str] = []
    RECOVERABLE_QUERY_ERROR_CODES: List[str] = ["failed-precondition"]
    FANOUT_MAX_WORKERS: int = 8
    RECENT_DEFAULT_LIMIT: int = 50

    # Step counts
    STEP_COUNT_ENABLED: bool = True

    # Browser clients only; the mobile app is not subject to CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()


# =====================================================================
# DATABASE
# =====================================================================

# Fan-out reads use the engine from worker threads
if settings.DATABASE_URL.startswith("sqlite"):
    engine = create_engine(settings.DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for the step and notification tables."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
