from pydantic_settings import BaseSettings
from pydantic import field_validator
from decimal import Decimal
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./shop.db"

    # Database Connection Pool Settings (ignored for SQLite)
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "Shop Referral Backend"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Order pricing
    SHIPPING_FEE: Decimal = Decimal("10.00")  # Flat fee for orders with physical items
    ORDER_NUMBER_PREFIX: str = "ORD"

    # Referral program
    REFERRAL_LEVEL_1_RATE: Decimal = Decimal("0.05")  # Direct referrer
    REFERRAL_LEVEL_2_RATE: Decimal = Decimal("0.03")  # Referrer's referrer
    DEFAULT_COMMISSION_RATE: Decimal = Decimal("0.10")  # New distributor accounts
    REFERRAL_CODE_PREFIX: str = "REF"

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('REFERRAL_LEVEL_1_RATE', 'REFERRAL_LEVEL_2_RATE', 'DEFAULT_COMMISSION_RATE')
    @classmethod
    def check_rate(cls, v: Decimal) -> Decimal:
        if v < 0 or v > 1:
            raise ValueError("Commission rates are fractions between 0 and 1")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
