"""
Runtime configuration.

Values come from the environment (prefix FUELPLANNER_) or a local .env file.
"""

import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_database_url() -> str:
    db_path = Path.cwd() / "fuel_planner.db"
    return f"sqlite:///{db_path.resolve()}"


class Settings(BaseSettings):
    database_url: str = Field(default_factory=_default_database_url)
    save_debounce_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Quiet period after the last edit before the plan is saved",
    )
    default_start_time: str = Field(default="06:00")
    default_drink_mix_fluid_ml: float = Field(default=500.0, gt=0)
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FUELPLANNER_",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Route loguru output to stderr at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=level or get_settings().log_level)
