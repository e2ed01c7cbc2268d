"""
Application configuration, backed by pydantic-settings.

Values come from ``PAGEWISE_*`` environment variables or a ``.env`` file.
"""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .enums import OutputMode, UpstreamShapePolicy, WindowMode

DEFAULT_PAGE_SIZE = 5000


class Settings(BaseSettings):
    """Proxy settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PAGEWISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Query service ────────────────────────────────────────────
    query_service_url: str = "https://api.applicationinsights.io/v1"
    http_timeout: float = Field(default=30.0, gt=0)

    # ── Pagination ───────────────────────────────────────────────
    default_page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0)
    window_mode: WindowMode = WindowMode.STRICT
    output_mode: OutputMode = OutputMode.BUFFERED
    shape_policy: UpstreamShapePolicy = UpstreamShapePolicy.FIRST_PAGE_STRICT
    default_lookback_minutes: int = Field(default=60, gt=0)

    # ── Server ───────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8080

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = "INFO"

    @property
    def default_lookback(self) -> timedelta:
        return timedelta(minutes=self.default_lookback_minutes)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
