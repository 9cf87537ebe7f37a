# backend/gymschedule/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: str = Field(
        default="development",
        description="Deployment environment (development|test|production)",
    )

    # Persistence
    database_url: str = Field(
        default="sqlite+pysqlite:///./gymschedule.db",
        description="SQLAlchemy URL for the scheduling store",
    )
    db_echo: bool = Field(default=False, description="Echo SQL statements")
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=10, ge=0)

    # Time handling
    gym_timezone: str = Field(
        default="America/New_York",
        description="IANA timezone that session dates and times are expressed in",
    )

    # Resource locking
    lock_backend: Literal["local", "redis"] = Field(
        default="local",
        description="Lock backend used to serialize check-then-book sequences",
    )
    redis_url: str = Field(default="redis://localhost:6379/0")
    lock_namespace: str = Field(default="gymschedule")
    lock_ttl_seconds: int = Field(default=30, ge=1)
    lock_wait_seconds: float = Field(default=10.0, gt=0)

    # Booking rules
    require_trainer_availability: bool = Field(
        default=True,
        description="Reject trainer bookings outside the trainer's declared weekly windows",
    )

    # Observability
    log_level: str = Field(default="INFO")
    slow_operation_seconds: float = Field(default=1.0, gt=0)

    # Use ConfigDict instead of Config class (Pydantic V2 style)
    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("gym_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = (value or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"Unknown log level: {value}")
        return normalized

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
logger.debug(
    "[CONFIG] environment=%s lock_backend=%s gym_timezone=%s",
    settings.environment,
    settings.lock_backend,
    settings.gym_timezone,
)
