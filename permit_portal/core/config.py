"""
Water Permit Portal Configuration
Compatible with Pydantic v2 settings management
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
import json


class Settings(BaseSettings):
    """Application settings for the Water Permit Portal

    DATABASE_URL and SECRET_KEY have no defaults: a process started without
    the record store endpoint or the signing key fails at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore"
    )

    # API Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Rwanda Water Permit Portal"
    VERSION: str = "1.0.0"

    # Development/Debug Configuration
    DEBUG: bool = False

    # Security Configuration
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # CORS Configuration
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Convert ALLOWED_ORIGINS (JSON array or comma-separated) to a list"""
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, str):
                origins = [o.strip() for o in origins.split(",") if o.strip()]
        except ValueError:
            origins = [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]
        return origins

    # Record store (hosted Postgres)
    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    AUTO_CREATE_TABLES: bool = False

    # Permit lifecycle
    PERMIT_EXPIRY_LOOKAHEAD_DAYS: int = 30
    PERMIT_VALIDITY_YEARS: int = 5
    REVIEW_SLA_DAYS: int = 30
    ISSUING_AUTHORITY: str = "Rwanda Water Resources Board"

    # Signup verification
    VERIFICATION_CODE_LENGTH: int = 4
    VERIFICATION_CODE_TTL_MINUTES: int = 10
    VERIFICATION_MAX_ATTEMPTS: int = 5
    VERIFICATION_RESEND_COOLDOWN_SECONDS: int = 30

    # Certificate assets
    WATER_BOARD_LOGO_PATH: str = "static/assets/rwanda_water_board_logo.png"
    MINISTRY_LOGO_PATH: str = "static/assets/ministry_of_env_logo.png"


def get_settings() -> Settings:
    """Get application settings instance"""
    return Settings()
