"""
TradeSim - Configuration Settings
"""
from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # =========================
    # Application Settings
    # =========================
    APP_NAME: str = "TradeSim"
    APP_ENV: str = "development"
    DEBUG: bool = False

    # =========================
    # Database
    # =========================
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "tradesim"
    POSTGRES_USER: str = "tradesim_user"
    POSTGRES_PASSWORD: str = "dev_password_123"
    # Direct DATABASE_URL from environment (overrides individual settings)
    DATABASE_URL: str = ""

    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Get the async database URL."""
        if self.DATABASE_URL:
            url = self.DATABASE_URL
            # Ensure async drivers
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            elif url.startswith("sqlite:///"):
                url = url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
            return url
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # =========================
    # Accounts
    # =========================
    DEFAULT_STARTING_BALANCE: Decimal = Decimal("100000.00")

    # =========================
    # Price Simulation Defaults
    # =========================
    DEFAULT_VOLATILITY: Decimal = Decimal("0.02")
    DEFAULT_JUMP_PROBABILITY: Decimal = Decimal("0.01")
    DEFAULT_MAX_JUMP_MULTIPLIER: Decimal = Decimal("1.10")
    DEFAULT_HISTORY_DAYS: int = 365

    @field_validator("DEFAULT_STARTING_BALANCE")
    @classmethod
    def validate_starting_balance(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("DEFAULT_STARTING_BALANCE must not be negative")
        return v

    # =========================
    # Scheduler Settings
    # =========================
    ENABLE_SCHEDULER: bool = True
    TIMEZONE: str = "UTC"
    PRICE_UPDATE_HOUR: int = 0
    PRICE_UPDATE_MINUTE: int = 5
    PORTFOLIO_REFRESH_INTERVAL_MINUTES: int = 15

    # =========================
    # Logging
    # =========================
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = False

    # =========================
    # Feature Flags
    # =========================
    ENABLE_ACHIEVEMENTS: bool = True


# Create global settings instance
settings = Settings()
