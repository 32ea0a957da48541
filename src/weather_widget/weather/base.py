"""Provider-agnostic weather interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import ForecastResponse


class WeatherProvider(ABC):
    """Base contract for providers polled by the refresh controller."""

    @abstractmethod
    async def fetch_forecast(self, *, lat: float, lon: float) -> ForecastResponse:
        """Fetch the raw two-day forecast for one location."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release provider resources."""
