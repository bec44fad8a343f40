from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import Any, ClassVar
import json
from pathlib import Path
import os


class Settings(BaseSettings):
    API_PREFIX: str = "/api"

    # JWT configuration (tokens are issued by the auth service; we only verify)
    SECRET_KEY: str = "fallback_secret_for_dev_only"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Database URL
    # Absolute path so running from the repo root or backend/ hits the same file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'yardconnect.db'}"

    # CORS origins
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_ALLOW_ALL: bool = False

    # Public base URL of this API, used to build review verification links
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # SMTP email settings
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "YardConnect <no-reply@localhost>"

    # Email Dev Mode: log verification messages (including links) instead of sending
    EMAIL_DEV_MODE: bool = True
    EMAIL_SEND_TIMEOUT_SECONDS: float = 10.0

    # Pending (email-verified) reviews
    PENDING_REVIEW_TTL_HOURS: int = 72  # 0 disables expiry
    PENDING_REVIEW_PURGE_INTERVAL_SECONDS: int = 3600

    # Subscription plan (single plan)
    SUBSCRIPTION_PLAN_NAME: str = "YardConnect Subscription"
    SUBSCRIPTION_PRICE_CENTS: int = 1000
    SUBSCRIPTION_PRICE_ID: str = ""
    SUBSCRIPTION_PERIOD_DAYS: int = 30

    # Shared secret for payment webhook signatures; empty disables the check
    PAYMENT_WEBHOOK_SECRET: str = ""

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=True,
    )

    @field_validator("CORS_ORIGINS", mode="before")
    def split_origins(cls, v: Any) -> list[str]:
        """Parse comma-separated or JSON list of origins from environment."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("PUBLIC_BASE_URL", mode="before")
    def strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    @field_validator("PENDING_REVIEW_TTL_HOURS")
    def non_negative_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("PENDING_REVIEW_TTL_HOURS must be >= 0")
        return v

    @model_validator(mode="after")
    def allow_all_if_requested(cls, values: "Settings") -> "Settings":
        if values.CORS_ALLOW_ALL:
            values.CORS_ORIGINS = ["*"]
        return values


def load_settings() -> "Settings":
    return Settings(_env_file=os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env")))


settings = load_settings()
