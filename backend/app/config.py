"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Settings
    APP_NAME: str = "Flow Automation Engine"
    APP_VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, testing, staging, production

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8080"

    # Storage Settings
    STORAGE_BACKEND: str = "memory"  # memory or database
    DATABASE_URL: str = "sqlite+aiosqlite:///./flow.db"
    SQLALCHEMY_ECHO: bool = False

    # Engine Settings
    RETRY_BASE_DELAY: float = 1.0  # seconds; attempt N waits N * base
    DELAY_MAX_MS: int = 300_000  # 5 min ceiling for delay steps
    LOOP_MAX_ITERATIONS: int = 1000
    DEFAULT_APPROVERS: list[str] = ["admin"]

    # Outbound transport (webhook / notify / http_request actions)
    WEBHOOK_DISPATCH_ENABLED: bool = False
    WEBHOOK_TIMEOUT: float = 10.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def uses_database(self) -> bool:
        return self.STORAGE_BACKEND == "database"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse ALLOWED_ORIGINS string into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings.

    Uses caching to ensure settings are loaded only once.

    Returns:
        Settings object with all configuration values
    """
    return Settings()
