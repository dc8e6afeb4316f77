"""Application configuration management."""

from datetime import date
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str
    DATABASE_URL_APP: Optional[str] = None
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 20
    DB_COMMAND_TIMEOUT: int = 30

    # JWT Configuration
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440

    # DigitalOcean Spaces / MinIO (nomination documents)
    SPACES_ENDPOINT: str
    SPACES_REGION: str
    SPACES_BUCKET: str
    SPACES_KEY: str
    SPACES_SECRET: str
    DOCUMENT_UPLOAD_EXPIRE_SECONDS: int = 900
    DOCUMENT_VIEW_EXPIRE_SECONDS: int = 3600

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Email/SMTP Configuration
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_TLS: bool = True
    FROM_EMAIL: str = "noreply@election.local"
    FROM_NAME: str = "Election Commission"

    # SMS gateway (OTP delivery to phones)
    SMS_GATEWAY_URL: str = ""
    SMS_GATEWAY_TOKEN: str = ""
    SMS_DEFAULT_COUNTRY_CODE: str = "91"

    # OTP
    OTP_LENGTH: int = 6
    OTP_EXPIRE_MINUTES: int = 10
    OTP_MAX_ATTEMPTS: int = 5
    OTP_RATE_LIMIT: int = 3
    OTP_RATE_WINDOW_SECONDS: int = 300

    # Eligibility rules
    YUVA_PANKH_AGE_CUTOFF: date = date(2025, 8, 31)
    YUVA_PANKH_MIN_AGE: int = 18
    YUVA_PANKH_MAX_AGE: int = 39
    TRUSTEE_MIN_AGE: int = 18

    # Results
    RESULTS_CACHE_TTL_SECONDS: int = 30

    # Voter roll uploads
    VOTER_UPLOAD_MAX_ROWS: int = 5000

    # Environment
    ENVIRONMENT: str = "development"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]


settings = Settings()


def get_settings() -> Settings:
    return settings
