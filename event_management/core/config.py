"""
Application configuration using pydantic-settings.
All config is loaded from environment variables with sensible defaults.
"""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Event Management API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "auto"  # auto | json | console
    PUBLIC_BASE_URL: Optional[str] = None

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./event_management.db"
    DATABASE_URL_SYNC: str = "sqlite:///./event_management.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_SQLITE_BUSY_TIMEOUT: float = 15.0  # seconds a writer waits for the database lock

    # Redis (token blocklist)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_ENABLED: bool = True

    # JWT Auth
    SECRET_KEY: str = "super-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    EMAIL_CONFIRMATION_EXPIRE_HOURS: int = 72
    BCRYPT_ROUNDS: int = 12
    REQUIRE_CONFIRMED_EMAIL: bool = True
    DEFAULT_USER_ROLE: str = "User"

    # Subscriptions
    REGISTRATION_CLOSES_AT_START: bool = True
    SUBSCRIPTION_ROW_LOCK: bool = True

    # Seed data
    SEED_ON_STARTUP: bool = False
    SEED_ADMIN_EMAIL: str = "admin@example.com"
    SEED_ADMIN_PASSWORD: str = "Admin123!"
    SEED_DEMO_EVENTS: bool = True

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
    }


@lru_cache()
def get_settings() -> Settings:
    return Settings()
