"""Map a raw Open-Meteo result set onto today/tomorrow snapshots."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta, timezone
from typing import TypeVar

from ..exceptions import MalformedDataError
from .models import CurrentConditions, DailyForecast, ForecastResponse

SECONDS_PER_DAY = 86400

T = TypeVar("T")


def normalize_forecast(raw: ForecastResponse) -> tuple[DailyForecast, DailyForecast]:
    """Build fresh (today, tomorrow) snapshots from one raw response.

    Pure: the same payload always yields equal snapshots.
    """
    daily = raw.daily
    offset = raw.utc_offset_seconds
    if not daily.time:
        raise MalformedDataError("Invalid weather data format: empty daily 'time'")
    base_time = daily.time[0]
    local_tz = timezone(timedelta(seconds=offset))

    today = DailyForecast(
        date=_local_date(base_time, 0, offset),
        weather_code=round_code(_current_value(raw, "weather_code")),
        temperature_max=_at(daily.temperature_2m_max, 0) or 0.0,
        temperature_min=_at(daily.temperature_2m_min, 0) or 0.0,
        precipitation=_at(daily.precipitation_sum, 0) or 0.0,
        wind_speed_max=_at(daily.wind_speed_10m_max, 0),
        uv_index_max=_at(daily.uv_index_max, 0),
        sunrise=_timestamp(_at(daily.sunrise, 0), local_tz),
        sunset=_timestamp(_at(daily.sunset, 0), local_tz),
        current=_current_conditions(raw, local_tz),
    )
    tomorrow = DailyForecast(
        date=_local_date(base_time, 1, offset),
        weather_code=round_code(_at(daily.weather_code, 1)),
        temperature_max=_at(daily.temperature_2m_max, 1) or 0.0,
        temperature_min=_at(daily.temperature_2m_min, 1) or 0.0,
        precipitation=_at(daily.precipitation_sum, 1) or 0.0,
        wind_speed_max=_at(daily.wind_speed_10m_max, 1),
        uv_index_max=_at(daily.uv_index_max, 1),
        sunrise=_timestamp(_at(daily.sunrise, 1), local_tz),
        sunset=_timestamp(_at(daily.sunset, 1), local_tz),
    )
    return today, tomorrow


def round_code(value: float | None) -> int:
    """Round a provider weather code to the nearest integer, halves up."""
    if value is None:
        return 0
    return int(math.floor(value + 0.5))


def _local_date(base_time: int, day_offset: int, utc_offset_seconds: int) -> str:
    seconds = base_time + day_offset * SECONDS_PER_DAY + utc_offset_seconds
    return datetime.fromtimestamp(seconds, tz=UTC).date().isoformat()


def _timestamp(epoch_seconds: int | None, tz: timezone) -> datetime | None:
    if epoch_seconds is None:
        return None
    return datetime.fromtimestamp(epoch_seconds, tz=tz)


def _at(values: Sequence[T] | None, index: int) -> T | None:
    # Short arrays mean "absent" for that day, never an error.
    if values is None or index >= len(values):
        return None
    return values[index]


def _current_value(raw: ForecastResponse, name: str) -> float | None:
    if raw.current is None:
        return None
    return getattr(raw.current, name)


def _current_conditions(raw: ForecastResponse, tz: timezone) -> CurrentConditions:
    current = raw.current
    if current is None:
        return CurrentConditions()
    return CurrentConditions(
        temperature=current.temperature_2m or 0.0,
        humidity=current.relative_humidity_2m or 0.0,
        wind_speed=current.wind_speed_10m or 0.0,
        apparent_temperature=current.apparent_temperature,
        pressure=current.pressure_msl,
        visibility=current.visibility,
        uv_index=current.uv_index,
        cloud_cover=current.cloud_cover,
        observed_at=_timestamp(current.time, tz),
    )
