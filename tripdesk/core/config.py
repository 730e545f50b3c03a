"""
Application Configuration

Uses Pydantic Settings for environment variable management.
Supports SQLite (development), PostgreSQL (production) and a hosted
PostgREST-style store.
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ===========================================
    # APPLICATION
    # ===========================================
    APP_NAME: str = "TripDesk"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False, alias="DEBUG")
    LOG_LEVEL: str = Field(default="INFO", alias="LOG_LEVEL")

    # ===========================================
    # DATABASE
    # ===========================================
    # Use SQLite for development, PostgreSQL for production
    DATABASE_URL: str = Field(
        default="sqlite:///./data/tripdesk.db",
        alias="DATABASE_URL"
    )

    # PostgreSQL settings (when DATABASE_URL starts with postgresql://)
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # ===========================================
    # REMOTE STORE
    # ===========================================
    # sql: DATABASE_URL via SQLAlchemy, rest: hosted API, memory: process-local
    STORE_BACKEND: str = Field(default="sql", alias="STORE_BACKEND")
    STORE_API_URL: str = Field(default="", alias="STORE_API_URL")
    STORE_API_KEY: str = Field(default="", alias="STORE_API_KEY")
    STORE_REQUEST_TIMEOUT: int = Field(default=30, alias="STORE_REQUEST_TIMEOUT")
    STORE_MAX_RETRIES: int = Field(default=3, alias="STORE_MAX_RETRIES")

    # ===========================================
    # PIPELINE
    # ===========================================
    # False relaxes the adjacency table to "anything except leaving Converted"
    LEAD_TRANSITIONS_STRICT: bool = Field(default=True, alias="LEAD_TRANSITIONS_STRICT")
    DEFAULT_PERFORMED_BY: str = Field(default="System", alias="DEFAULT_PERFORMED_BY")
    DEFAULT_DAILY_CAPACITY: int = Field(default=20, alias="DEFAULT_DAILY_CAPACITY")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_sqlite(self) -> bool:
        """Check if using SQLite database"""
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def is_postgres(self) -> bool:
        """Check if using PostgreSQL database"""
        return self.DATABASE_URL.startswith("postgresql")

    @property
    def store_api_url(self) -> Optional[str]:
        """Hosted store base URL without trailing slash"""
        url = self.STORE_API_URL.strip()
        return url.rstrip('/') if url else None


# Global settings instance
settings = Settings()
