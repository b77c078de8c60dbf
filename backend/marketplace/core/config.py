# backend/marketplace/core/config.py
from decimal import Decimal
import logging
import os
from pathlib import Path
from typing import Annotated, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

_BACKEND_ROOT = Path(__file__).resolve().parents[2]

_DEV_SECRET_KEY = "dev-only-secret-key-change-me"


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = _BACKEND_ROOT / ".env"
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = "development"

    # Auth
    secret_key: SecretStr = Field(
        default=SecretStr(_DEV_SECRET_KEY),
        description="Secret key for JWT tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720  # 12 hours

    # Storage
    database_url: str = Field(
        default=f"sqlite+pysqlite:///{_BACKEND_ROOT / 'marketplace.db'}",
        description="SQLAlchemy database URL (PostgreSQL in production)",
    )
    database_pool_size: int = 10
    database_max_overflow: int = 5

    # Redis is optional; without it the resource lock is process-local only
    redis_url: Optional[str] = None
    celery_broker_url: Optional[str] = None
    resource_lock_ttl_seconds: int = Field(default=30, ge=1)
    resource_lock_wait_seconds: float = Field(default=10.0, gt=0)

    # Slot grid
    slot_minutes: int = Field(default=60, ge=5, le=24 * 60)
    slot_day_start_hour: int = Field(default=9, ge=0, le=23)
    slot_day_end_hour: int = Field(default=18, ge=1, le=24)

    # Pricing
    deposit_rate: Decimal = Field(default=Decimal("0.20"), ge=0, le=1)

    # Negotiation
    negotiation_ttl_hours: int = Field(default=48, ge=1)
    negotiation_max_counter_rounds: Optional[int] = Field(default=None, ge=1)

    # Hiring
    contract_expiry_days: int = Field(default=7, ge=1)
    contract_expiry_enforced: bool = False

    # Outbox
    outbox_max_attempts: int = Field(default=5, ge=1)
    outbox_dispatch_batch_size: int = Field(default=200, ge=1)

    # Document expiry sweep
    # Comma-separated in the environment: DOCUMENT_REMINDER_DAYS=30,14,7
    document_reminder_days: Annotated[list[int], NoDecode] = Field(
        default_factory=lambda: [30, 14, 7, 3, 1]
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("document_reminder_days", mode="before")
    @classmethod
    def _parse_reminder_days(cls, value: object) -> object:
        if isinstance(value, str):
            return [int(token) for token in value.split(",") if token.strip()]
        return value

    @model_validator(mode="after")
    def _check_slot_window(self) -> "Settings":
        if self.slot_day_end_hour <= self.slot_day_start_hour:
            raise ValueError("SLOT_DAY_END_HOUR must be after SLOT_DAY_START_HOUR")
        if (
            self.environment == "production"
            and self.secret_key.get_secret_value() == _DEV_SECRET_KEY
        ):
            raise ValueError("SECRET_KEY must be set in production")
        return self


settings = Settings()
