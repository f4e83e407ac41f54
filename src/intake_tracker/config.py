"""Application configuration."""

import os
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    openai_api_key: str
    openai_model: str = "gpt-4.1-mini"
    intake_backend: Literal["supabase", "memory"] = "supabase"
    intake_timezone: str = "UTC"
    intake_day_start_hour: int = Field(default=0, ge=0, le=23)
    scheduler_enabled: bool = True
    scheduler_poll_seconds: float = Field(default=60.0, gt=0)
    archive_max_attempts: int = Field(default=3, ge=1)
    archive_retry_delay_seconds: float = Field(default=1.0, ge=0)
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @field_validator("intake_timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        """Require an IANA timezone name for the day boundary."""
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone {value!r}") from exc
        return value
