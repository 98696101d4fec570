from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Supabase auth: access tokens are HS256 JWTs signed with this secret.
    # The placeholder keeps local runs working; deployments override it.
    SUPABASE_JWT_SECRET: str = "test-jwt-secret"

    # Manual UPI checkout
    MANUAL_UPI_QR: Optional[str] = None  # Image URL of the UPI QR code
    MANUAL_UPI: Optional[str] = None  # UPI address, e.g. "courses@okbank"
    CHECKOUT_SESSION_TTL_HOURS: int = 6
    COUPON_INFERENCE_TOLERANCE: float = 0.02

    # Worker
    REDIS_URL: str = "redis://localhost:6379/0"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v

    @field_validator("MANUAL_UPI_QR", "MANUAL_UPI")
    @classmethod
    def blank_as_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def exposes_error_details(self) -> bool:
        return self.ENVIRONMENT in ("local", "development")


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
