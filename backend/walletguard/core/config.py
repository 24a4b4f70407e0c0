"""
Application Configuration

Pydantic-based configuration management with environment variable support.
Provides type-safe access to all policy service settings.
"""

from enum import Enum
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment enumeration."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StoreBackend(str, Enum):
    """Persistence backend for users and resource documents."""
    MEMORY = "memory"
    SQL = "sql"


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables.
    Sensitive values should be loaded from secrets in production.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =================================================================
    # Application Settings
    # =================================================================
    APP_NAME: str = Field(default="WalletGuard Policy Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )

    # =================================================================
    # Server Settings
    # =================================================================
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")
    RELOAD: bool = Field(default=False, description="Enable auto-reload")

    # =================================================================
    # Storage Settings
    # =================================================================
    STORE_BACKEND: StoreBackend = Field(
        default=StoreBackend.MEMORY,
        description="Backend for user directory and resource store",
    )
    DATABASE_URL: str = Field(
        default="sqlite:///./walletguard.db",
        description="Database connection URL (used when STORE_BACKEND=sql)",
    )

    # =================================================================
    # Policy Settings
    # =================================================================
    RATE_LIMIT_WINDOW_SECONDS: int = Field(
        default=300,
        description="Length of the sliding transaction rate-limit window",
    )
    RATE_LIMIT_MAX_TRANSACTIONS: int = Field(
        default=10,
        description="Transactions allowed inside one window",
    )
    TRANSACTION_HASH_LENGTH: int = Field(
        default=64,
        description="Required length of a transaction integrity hash",
    )
    SUSPICIOUS_AMOUNT_THRESHOLD: int = Field(
        default=10000,
        description="Amounts above this need additional verification",
    )
    TRANSACTION_SECRET_KEY: str = Field(
        default="",
        description="HMAC key for transaction integrity hashes",
    )

    # =================================================================
    # Transaction Limits (per role and transaction type)
    # =================================================================
    USER_LIMIT_PER_TRANSACTION: int = Field(default=2000, description="Largest single amount for users")
    USER_LIMIT_DAILY: int = Field(default=5000, description="Rolling 24h total per type for users")
    USER_LIMIT_MONTHLY: int = Field(default=20000, description="Rolling 30 day total per type for users")
    ADMIN_LIMIT_PER_TRANSACTION: int = Field(default=10000, description="Largest single amount for admins")
    ADMIN_LIMIT_DAILY: int = Field(default=50000, description="Rolling 24h total per type for admins")
    ADMIN_LIMIT_MONTHLY: int = Field(default=200000, description="Rolling 30 day total per type for admins")

    # =================================================================
    # Logging Settings
    # =================================================================
    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Log format (json or text)")
    LOG_FILE: Optional[str] = Field(default=None, description="Log file path")

    # =================================================================
    # Validators
    # =================================================================
    @model_validator(mode="after")
    def validate_production_secrets(self) -> "Settings":
        """Require a real transaction secret outside development."""
        if self.ENVIRONMENT == Environment.PRODUCTION:
            if len(self.TRANSACTION_SECRET_KEY) < 32:
                raise ValueError(
                    "TRANSACTION_SECRET_KEY must be set to at least 32 characters in production"
                )
        if self.RATE_LIMIT_MAX_TRANSACTIONS < 1:
            raise ValueError("RATE_LIMIT_MAX_TRANSACTIONS must be positive")
        return self

    # =================================================================
    # Properties
    # =================================================================
    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.ENVIRONMENT == Environment.TESTING

    @property
    def API_V1_STR(self) -> str:
        """Get API v1 prefix."""
        return "/api/v1"


settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
