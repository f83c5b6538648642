"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False

    # Database (one logical database per company, "{company}" is replaced by the tenant id)
    database_url: str = "sqlite:///./data/{company}.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_recycle: int = 300  # seconds
    auto_create_schema: bool = True

    # Unit of work
    transaction_max_attempts: int = 3
    transaction_retry_min_wait: float = 0.05
    transaction_retry_max_wait: float = 1.0

    # Payments
    default_coin: str = "ARS"

    # HTTP
    cors_allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    @field_validator("transaction_max_attempts")
    @classmethod
    def at_least_one_attempt(cls, v: int) -> int:
        """A transaction must be attempted at least once."""
        if v < 1:
            raise ValueError("transaction_max_attempts must be >= 1")
        return v

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
