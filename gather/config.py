"""
Application Configuration
=========================

Centralized configuration using Pydantic Settings.
Loads from environment variables with validation.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
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
    ENVIRONMENT: str = Field(default="development")

    # Server
    PORT: int = Field(default=8000, description="Port to bind to")

    # Development Settings
    DEV_AUTH_DISABLED: bool = Field(
        default=False,
        description="Disable authentication for local development/testing"
    )

    # Demo mode (unauthenticated preview with sample data)
    DEMO_MODE_ENABLED: bool = Field(default=True)

    # Database - Supabase
    SUPABASE_URL: str = Field(default="")
    SUPABASE_ANON_KEY: str = Field(default="")
    SUPABASE_JWT_SECRET: str = Field(default="")
    SUPABASE_DATABASE_URL: str = Field(default="")

    # Redis
    REDIS_URL: str = Field(default="redis://localhost:6379/0")

    # Anthropic
    ANTHROPIC_API_KEY: str = Field(default="")
    ANTHROPIC_FAST_MODEL: str = Field(default="claude-3-haiku-20240307")
    ANTHROPIC_MODEL: str = Field(default="claude-sonnet-4-20250514")
    ANTHROPIC_TIMEOUT_SECONDS: float = Field(default=60.0)

    # Tavily web search
    TAVILY_API_KEY: str = Field(default="")

    # JWT (Supabase access tokens)
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_AUDIENCE: str = Field(default="authenticated")

    # App Configuration
    FRONTEND_URL: str = Field(default="http://localhost:3000")
    ALLOWED_ORIGINS: str = Field(default="http://localhost:3000,http://localhost:8000")

    # Clarifying-question sessions expire after this much inactivity
    CAPTURE_SESSION_TTL_SECONDS: int = Field(default=300)

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def database_url_async(self) -> str:
        """Convert database URL to async format for asyncpg."""
        if self.SUPABASE_DATABASE_URL:
            return self.SUPABASE_DATABASE_URL.replace(
                "postgresql://", "postgresql+asyncpg://"
            )
        return ""

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def auth_disabled(self) -> bool:
        """Check if auth is disabled (only allowed in development)."""
        return self.is_development and self.DEV_AUTH_DISABLED

    @property
    def ai_configured(self) -> bool:
        return bool(self.ANTHROPIC_API_KEY)

    @property
    def search_configured(self) -> bool:
        return bool(self.TAVILY_API_KEY)

    @field_validator("SUPABASE_JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Ensure the JWT secret, when set, is sufficiently long."""
        if v and len(v) < 32:
            raise ValueError("SUPABASE_JWT_SECRET must be at least 32 characters long")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Export a default settings instance
settings = get_settings()
