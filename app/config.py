# app/config.py

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///db.sqlite"  # file in project root

    # Auth
    SECRET_KEY: str = "development-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Single staff account, patched on every startup
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "admin123"

    # Invoices
    INVOICE_PREFIX: str = "WR"

    # Bank details printed on invoices
    BAHRAIN_BANK_NAME: str = "Kuwait Finance House B.S.C. (c)"
    BAHRAIN_ACCOUNT_NUMBER: str = "0009451698001"
    BAHRAIN_IBAN: str = "BH36AUBB00009451698001"
    BAHRAIN_SWIFT: str = "AUBBBHBM"
    INDIA_BANK_NAME: str = "State Bank of India"
    INDIA_ACCOUNT_NUMBER: str = "XXXXXXXXXXXX"
    INDIA_BRANCH: str = "Mumbai Branch"
    INDIA_IFSC: str = "IFSC0000000"

    # CORS, comma separated
    CORS_ORIGINS: str = "http://localhost:5173"

    LOG_LEVEL: str = "INFO"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
