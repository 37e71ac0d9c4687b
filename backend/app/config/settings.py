"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REPORTING_CURRENCY = "EUR"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./investment_tracker.db"


class AppSettings(BaseSettings):
    """Configuration options for the investment tracker service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="Investment Tracker")
    reporting_currency: str = Field(default=DEFAULT_REPORTING_CURRENCY)
    default_currency: str | None = Field(
        default=DEFAULT_REPORTING_CURRENCY,
        description="Currency used for CSV rows whose currency cannot be resolved.",
    )

    database_url: str = Field(default=DEFAULT_DATABASE_URL, description="SQLAlchemy database URL.")

    twelve_data_api_key: str = Field(default="demo")
    twelve_data_base_url: str = Field(default="https://api.twelvedata.com")
    frankfurter_base_url: str = Field(default="https://api.frankfurter.app")
    market_data_timeout_seconds: float = Field(default=10.0)

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="investment-tracker")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost",
            "http://127.0.0.1",
        ]
    )

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"twelve_data_api_key"}
        return {k: ("***" if k in hidden else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_DATABASE_URL",
    "DEFAULT_REPORTING_CURRENCY",
    "get_settings",
]
