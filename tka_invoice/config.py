"""Application configuration"""

import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "TKA Invoice"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # API
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./tka_invoice.db")
    DATABASE_CONNECT_TIMEOUT: int = int(os.getenv("DATABASE_CONNECT_TIMEOUT", "30"))  # seconds to wait on a locked SQLite file

    # Invoicing
    VAT_DEFAULT_PERCENTAGE: float = float(os.getenv("VAT_DEFAULT_PERCENTAGE", "11"))
    INVOICE_NUMBER_PREFIX: str = os.getenv("INVOICE_NUMBER_PREFIX", "INV")
    INVOICE_NUMBER_SUFFIX: str = os.getenv("INVOICE_NUMBER_SUFFIX", "")
    COMPANY_NAME: str = os.getenv("COMPANY_NAME", "PT Spirit Konsultan Indonesia")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: Optional[str] = os.getenv("LOG_FILE")

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
