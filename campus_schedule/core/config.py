"""Runtime settings for the scheduling service."""

from __future__ import annotations

from datetime import date
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Two academic years; longer terms are rejected at the API boundary.
MAX_TERM_WEEKS = 104


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CAMPUS_SCHEDULE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_name: str = "Campus Schedule Service"
    log_level: str = "INFO"

    # Academic term
    term_weeks: int = Field(default=20, ge=1, le=MAX_TERM_WEEKS)
    term_start: date | None = None

    # Advisory narrative (optional generative model)
    advisory_enabled: bool = True
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"

    seed_sample_data: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
