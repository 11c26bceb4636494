# glam/config.py

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    SECRET_KEY: str = "change-me-later"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Database
    DATABASE_URL: str = "sqlite:///./glam.db"

    # Query cache
    CACHE_TTL_SECONDS: int = 30

    # Scheduling
    SLOT_MINUTES: int = 30
    DEFAULT_START_TIME: str = "09:00"
    DEFAULT_END_TIME: str = "17:00"

    # Sadad
    SADAD_MERCHANT_ID: Optional[str] = None
    SADAD_SECRET_KEY: Optional[str] = None
    SADAD_WEBSITE: str = "glam.qa"
    SADAD_ENVIRONMENT: str = "test"  # test or production
    SADAD_CALLBACK_URL: str = "http://localhost:8000/payments/sadad/callback"
    SADAD_LANGUAGE: str = "ARA"
    SADAD_VERSION: str = "1.1"

    # Payment polling: 20 attempts * 3 seconds = 1 minute max
    PAYMENT_POLL_ATTEMPTS: int = 20
    PAYMENT_POLL_INTERVAL_SECONDS: float = 3.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"


settings = Settings()
