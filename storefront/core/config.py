from pydantic_settings import BaseSettings
from typing import List, Literal, Union
from pydantic import field_validator
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Storefront Access API"

    # Logging
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = True

    # Verification codes
    VERIFICATION_CODE_DIGITS: int = 6
    VERIFICATION_CODE_EXPIRY_MINUTES: int = 10
    VERIFICATION_MAX_ATTEMPTS: int = 3
    VERIFICATION_STORE_BACKEND: Literal["memory", "redis", "database"] = "memory"
    VERIFICATION_NOTIFIER: Literal["log", "email", "queue"] = "log"

    # How long a stale record may linger in Redis past its expiry before the key is reclaimed
    VERIFICATION_RECORD_RETENTION_SECONDS: int = 86400

    # Subscriptions
    SUBSCRIPTION_EXPIRING_SOON_DAYS: int = 30

    # Database Settings (only used by the "database" verification store)
    DATABASE_URL: str = "sqlite:///./storefront.db"

    # Redis Settings (verification store and Celery broker)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # AWS SES Settings
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_SES_FROM_EMAIL: str = "no-reply@storefront.local"
    AWS_SES_FROM_NAME: str = "Storefront"

    # CORS Settings - can be set as JSON string in .env
    BACKEND_CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Union[List[str], str]) -> List[str]:
        """Parse CORS origins from JSON string or list"""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # If not valid JSON, split by comma
                return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator(
        "VERIFICATION_CODE_DIGITS",
        "VERIFICATION_CODE_EXPIRY_MINUTES",
        "VERIFICATION_MAX_ATTEMPTS",
        "SUBSCRIPTION_EXPIRING_SOON_DAYS",
    )
    @classmethod
    def require_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("VERIFICATION_CODE_DIGITS")
    @classmethod
    def limit_code_digits(cls, v: int) -> int:
        # Must match the longest code the verify endpoint accepts
        if v > 12:
            raise ValueError("must be at most 12")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
