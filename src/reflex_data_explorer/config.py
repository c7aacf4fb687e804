"""Runtime settings, loaded from ``DATA_EXPLORER_*`` environment variables."""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from reflex_data_explorer.models import (
    DEFAULT_COLUMN_WIDTH,
    DEFAULT_PAGE_SIZE,
    MIN_COLUMN_WIDTH,
    PAGE_SIZE_OPTIONS,
)


class DataExplorerSettings(BaseSettings):
    """Settings for the record store, the HTTP binding and the grid."""

    model_config = SettingsConfigDict(
        env_prefix="DATA_EXPLORER_",
        env_file=".env",
        extra="ignore",
    )

    seed_size: int = Field(default=250, ge=0)
    seed_interval_ms: int = Field(default=8_640_000, gt=0)
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = Field(default=max(PAGE_SIZE_OPTIONS), ge=1)
    min_column_width: int = Field(default=MIN_COLUMN_WIDTH, ge=1)
    default_column_width: int = Field(default=DEFAULT_COLUMN_WIDTH, ge=1)
    api_prefix: str = "/api"
    log_level: str = "INFO"
    max_grid_sessions: int = Field(default=1000, ge=1)

    @field_validator("default_page_size")
    @classmethod
    def _check_page_size(cls, value: int) -> int:
        if value not in PAGE_SIZE_OPTIONS:
            raise ValueError(f"default_page_size must be one of {PAGE_SIZE_OPTIONS}")
        return value

    @field_validator("api_prefix")
    @classmethod
    def _normalise_prefix(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if value and not value.startswith("/"):
            value = "/" + value
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @property
    def seed_interval(self) -> timedelta:
        return timedelta(milliseconds=self.seed_interval_ms)


@lru_cache
def get_settings() -> DataExplorerSettings:
    """Return the process-wide settings, loaded once."""
    return DataExplorerSettings()
