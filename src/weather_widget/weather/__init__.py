"""Weather provider integration and normalization."""

from .base import WeatherProvider
from .models import (
    CurrentConditions,
    DailyForecast,
    ForecastResponse,
    WeatherSnapshot,
    WeatherState,
)
from .normalize import normalize_forecast
from .open_meteo import OpenMeteoWeatherProvider

__all__ = [
    "CurrentConditions",
    "DailyForecast",
    "ForecastResponse",
    "OpenMeteoWeatherProvider",
    "WeatherProvider",
    "WeatherSnapshot",
    "WeatherState",
    "normalize_forecast",
]
