"""Configuration — environment-driven settings via pydantic-settings.

Every setting can be overridden with a RECOILX_ prefixed environment variable
or a .env file. get_settings() is cached, one instance per process; tests
build Settings(...) directly instead.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the remote user-data call and logging."""

    model_config = SettingsConfigDict(env_prefix="RECOILX_", env_file=".env", extra="ignore")

    # Remote user data
    user_data_url: str = "https://jsonplaceholder.typicode.com/todos/1"
    request_timeout: float = Field(default=10.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    retry_base_delay: float = Field(default=0.25, ge=0)
    retry_max_delay: float = Field(default=4.0, ge=0)

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def setup_logging(level: str | None = None) -> None:
    """Send recoilx logs to stderr. For applications; the library never calls it."""
    level = level or get_settings().log_level
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger = logging.getLogger("recoilx")
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
