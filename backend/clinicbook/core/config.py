# backend/clinicbook/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import SLOT_STEP_MINUTES


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )
    log_level: str = Field(default="INFO", description="Root log level for the API process")

    # Persistence
    database_url: str = Field(
        default="sqlite:///./clinicbook.db",
        description="SQLAlchemy database URL (PostgreSQL in production)",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements to the log")

    # Redis (catalog cache + Celery broker)
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    celery_broker_url: Optional[str] = Field(
        default=None, description="Celery broker; falls back to redis_url"
    )
    celery_result_backend: Optional[str] = Field(
        default=None, description="Celery result backend; falls back to the broker"
    )

    # Catalog cache
    catalog_cache_backend: Literal["memory", "redis", "none"] = Field(
        default="memory",
        description="Where provider/service catalog reads are cached",
    )
    catalog_cache_ttl_seconds: int = Field(
        default=300,
        ge=0,
        description="TTL for cached provider/service catalog entries",
    )

    # Scheduling policy
    slot_step_minutes: int = Field(
        default=SLOT_STEP_MINUTES,
        gt=0,
        description="Grid step used when turning a schedule window into candidate slots",
    )
    default_max_reschedules: int = Field(
        default=2,
        ge=0,
        description="Reschedule allowance given to new appointments",
    )
    pending_hold_minutes: int = Field(
        default=15,
        ge=1,
        description="How long an unconfirmed, unpaid booking holds its slot",
    )
    waitlist_offer_hours: int = Field(
        default=24,
        ge=1,
        description="How long a notified waitlist patient has to book the freed slot",
    )

    # Payments
    reservation_fee: int = Field(default=500, ge=0, description="Default reservation deposit")
    currency: str = Field(default="INR", description="ISO currency for all amounts")

    # Collaborators
    audit_enabled: bool = Field(default=True, description="Record state transitions to the audit sink")
    notification_backend: Literal["logging", "celery"] = Field(
        default="logging",
        description="How notification requests leave the core",
    )

    is_testing: bool = False

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        env_prefix="CLINICBOOK_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> str:
        if value is None:
            return "INFO"
        return str(value).strip().upper() or "INFO"

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: object) -> str:
        return str(value or "INR").strip().upper()

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.lower().startswith("sqlite")


settings = Settings()
