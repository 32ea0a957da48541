"""Typed settings loader for the weather widget."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AnyUrl, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError

WidgetSize = Literal["sm", "md", "lg", "xl"]

DEFAULT_LATITUDE = 37.5665
DEFAULT_LONGITUDE = 126.9780
DEFAULT_INTERVAL_MS = 10 * 60 * 1000


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    weather_api_url: AnyUrl = Field(
        default="https://api.open-meteo.com/v1/forecast",
        alias="WEATHER_API_URL",
    )
    weather_api_key: str | None = Field(default=None, alias="WEATHER_API_KEY", repr=False)
    weather_latitude: float = Field(default=DEFAULT_LATITUDE, alias="WEATHER_LATITUDE")
    weather_longitude: float = Field(default=DEFAULT_LONGITUDE, alias="WEATHER_LONGITUDE")
    weather_size: WidgetSize = Field(default="md", alias="WEATHER_SIZE")
    weather_interval_ms: int = Field(default=DEFAULT_INTERVAL_MS, alias="WEATHER_INTERVAL_MS")
    weather_timeout_seconds: float = Field(default=15.0, alias="WEATHER_TIMEOUT_SECONDS")
    weather_temperature_unit: Literal["celsius", "fahrenheit"] = Field(
        default="celsius",
        alias="WEATHER_TEMPERATURE_UNIT",
    )
    weather_wind_speed_unit: Literal["kmh", "ms", "mph", "kn"] = Field(
        default="kmh",
        alias="WEATHER_WIND_SPEED_UNIT",
    )
    weather_user_agent: str = Field(
        default="weather-widget/0.1",
        alias="WEATHER_USER_AGENT",
    )
    weather_drop_overlapping_fetches: bool = Field(
        default=False,
        alias="WEATHER_DROP_OVERLAPPING_FETCHES",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
    )

    @field_validator("weather_api_key", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat an empty env-string API key as unset."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def validate_ranges(self) -> Settings:
        """Validate coordinate ranges and timer/timeout bounds."""
        if not (-90 <= self.weather_latitude <= 90):
            raise ValueError("WEATHER_LATITUDE must be between -90 and 90.")
        if not (-180 <= self.weather_longitude <= 180):
            raise ValueError("WEATHER_LONGITUDE must be between -180 and 180.")
        if self.weather_interval_ms <= 0:
            raise ValueError("WEATHER_INTERVAL_MS must be > 0.")
        if self.weather_timeout_seconds <= 0:
            raise ValueError("WEATHER_TIMEOUT_SECONDS must be > 0.")
        if not self.weather_user_agent.strip():
            raise ValueError("WEATHER_USER_AGENT must not be empty.")
        return self

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for logging (no credentials)."""
        return {
            "api_url": str(self.weather_api_url),
            "api_key_configured": self.weather_api_key is not None,
            "latitude": self.weather_latitude,
            "longitude": self.weather_longitude,
            "size": self.weather_size,
            "interval_ms": self.weather_interval_ms,
            "timeout_seconds": self.weather_timeout_seconds,
            "temperature_unit": self.weather_temperature_unit,
            "wind_speed_unit": self.weather_wind_speed_unit,
            "drop_overlapping_fetches": self.weather_drop_overlapping_fetches,
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc
