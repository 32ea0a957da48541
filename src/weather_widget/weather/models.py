"""Typed models for raw Open-Meteo payloads and normalized day snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CurrentValues(BaseModel):
    """Raw `current` block; every variable is optional."""

    model_config = ConfigDict(extra="ignore")

    time: int | None = None
    temperature_2m: float | None = None
    apparent_temperature: float | None = None
    relative_humidity_2m: float | None = None
    weather_code: float | None = None
    wind_speed_10m: float | None = None
    pressure_msl: float | None = None
    visibility: float | None = None
    uv_index: float | None = None
    cloud_cover: float | None = None


class DailySeries(BaseModel):
    """Raw `daily` block: parallel arrays indexed by forecast day."""

    model_config = ConfigDict(extra="ignore")

    time: list[int] = Field(min_length=1)
    weather_code: list[float | None]
    temperature_2m_max: list[float | None]
    temperature_2m_min: list[float | None]
    precipitation_sum: list[float | None]
    wind_speed_10m_max: list[float | None] | None = None
    uv_index_max: list[float | None] | None = None
    sunrise: list[int | None] | None = None
    sunset: list[int | None] | None = None


class ForecastResponse(BaseModel):
    """One Open-Meteo result set requested with `timeformat=unixtime`."""

    model_config = ConfigDict(extra="ignore")

    latitude: float | None = None
    longitude: float | None = None
    timezone: str | None = None
    utc_offset_seconds: int = 0
    current: CurrentValues | None = None
    daily: DailySeries


class CurrentConditions(BaseModel):
    """Instantaneous readings; only attached to the present day."""

    model_config = ConfigDict(frozen=True)

    temperature: float = 0.0
    humidity: float = 0.0
    wind_speed: float = 0.0
    apparent_temperature: float | None = None
    pressure: float | None = None
    visibility: float | None = None
    uv_index: float | None = None
    cloud_cover: float | None = None
    observed_at: datetime | None = None


class DailyForecast(BaseModel):
    """One day's normalized weather record.

    Daily fields are always present. `current` is set for today and left
    empty for tomorrow; the flat accessors below read through it so callers
    can treat both days alike.
    """

    model_config = ConfigDict(frozen=True)

    date: str
    weather_code: int
    temperature_max: float
    temperature_min: float
    precipitation: float
    wind_speed_max: float | None = None
    uv_index_max: float | None = None
    sunrise: datetime | None = None
    sunset: datetime | None = None
    current: CurrentConditions | None = None

    @property
    def is_today(self) -> bool:
        return self.current is not None

    @property
    def temperature(self) -> float:
        return self.current.temperature if self.current else 0.0

    @property
    def humidity(self) -> float:
        return self.current.humidity if self.current else 0.0

    @property
    def wind_speed(self) -> float:
        return self.current.wind_speed if self.current else 0.0

    @property
    def apparent_temperature(self) -> float | None:
        return self.current.apparent_temperature if self.current else None

    @property
    def pressure(self) -> float | None:
        return self.current.pressure if self.current else None

    @property
    def visibility(self) -> float | None:
        return self.current.visibility if self.current else None

    @property
    def uv_index(self) -> float | None:
        return self.current.uv_index if self.current else None

    @property
    def cloud_cover(self) -> float | None:
        return self.current.cloud_cover if self.current else None


WeatherSnapshot = DailyForecast


@dataclass(slots=True)
class WeatherState:
    """Result surface exposed to the presentation layer."""

    today: DailyForecast | None = None
    tomorrow: DailyForecast | None = None
    is_loading: bool = False
    error: str | None = None
