"""Open-Meteo (api.open-meteo.com) forecast provider implementation."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..exceptions import MalformedDataError, NetworkError, NoDataError, WeatherProviderError
from ..redaction import sanitize_for_logging, sanitize_text
from .base import WeatherProvider
from .models import ForecastResponse

CURRENT_FIELDS = (
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "weather_code",
    "wind_speed_10m",
    "pressure_msl",
    "visibility",
    "uv_index",
    "cloud_cover",
)
DAILY_FIELDS = (
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "wind_speed_10m_max",
    "uv_index_max",
    "sunrise",
    "sunset",
)
REQUIRED_DAILY_FIELDS = (
    "time",
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
)
FORECAST_DAYS = 2


class OpenMeteoWeatherProvider(WeatherProvider):
    """Fetches the raw today/tomorrow forecast from Open-Meteo."""

    provider_name = "open-meteo"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self._url = str(settings.weather_api_url)
        self._client = client or httpx.AsyncClient(
            timeout=settings.weather_timeout_seconds,
            headers={
                "Accept": "application/json",
                "User-Agent": settings.weather_user_agent,
            },
        )

    async def __aenter__(self) -> OpenMeteoWeatherProvider:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_forecast(self, *, lat: float, lon: float) -> ForecastResponse:
        """Fetch current + 2-day daily values for one coordinate pair."""
        self._validate_input(lat=lat, lon=lon)
        params = self.build_params(lat=lat, lon=lon)
        self.logger.debug(
            "Open-Meteo request params=%s",
            sanitize_for_logging(params),
            extra={"latitude": lat, "longitude": lon},
        )
        payload = await self._request_json(self._url, params=params)
        result_set = self._select_result_set(payload)
        return self._parse_response(result_set)

    def build_params(self, *, lat: float, lon: float) -> dict[str, Any]:
        params: dict[str, Any] = {
            "latitude": lat,
            "longitude": lon,
            "current": ",".join(CURRENT_FIELDS),
            "daily": ",".join(DAILY_FIELDS),
            "timezone": "auto",
            "forecast_days": FORECAST_DAYS,
            "timeformat": "unixtime",
            "temperature_unit": self.settings.weather_temperature_unit,
            "wind_speed_unit": self.settings.weather_wind_speed_unit,
        }
        if self.settings.weather_api_key:
            params["apikey"] = self.settings.weather_api_key
        return params

    def _validate_input(self, *, lat: float | None, lon: float | None) -> None:
        if lat is None or lon is None:
            raise WeatherProviderError("Missing coordinates: provide both latitude and longitude.")
        if not (-90 <= lat <= 90):
            raise WeatherProviderError(f"Invalid latitude {lat}; expected between -90 and 90.")
        if not (-180 <= lon <= 180):
            raise WeatherProviderError(f"Invalid longitude {lon}; expected between -180 and 180.")

    async def _request_json(self, url: str, params: dict[str, Any]) -> Any:
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise NetworkError(
                f"Open-Meteo request failed with status {status}: "
                f"{self._error_reason(exc.response)}",
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(
                f"Open-Meteo request failed: {sanitize_text(str(exc)) or type(exc).__name__}"
            ) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(
                "Open-Meteo returned non-JSON response.",
                status_code=response.status_code,
            ) from exc

    @staticmethod
    def _error_reason(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return sanitize_text(response.text[:300])
        if isinstance(body, dict) and isinstance(body.get("reason"), str):
            return sanitize_text(body["reason"])
        return sanitize_text(response.text[:300])

    @staticmethod
    def _select_result_set(payload: Any) -> dict[str, Any]:
        # Single-location requests return an object, multi-location ones a list.
        if isinstance(payload, list):
            payload = payload[0] if payload else None
        if not payload:
            raise NoDataError("No weather data received")
        if not isinstance(payload, dict):
            raise MalformedDataError(
                f"Invalid weather data format: unexpected payload type {type(payload).__name__}"
            )
        return payload

    @staticmethod
    def _parse_response(result_set: dict[str, Any]) -> ForecastResponse:
        daily = result_set.get("daily")
        if not isinstance(daily, dict):
            raise MalformedDataError("Invalid weather data format: missing 'daily' block")
        for field in REQUIRED_DAILY_FIELDS:
            if not isinstance(daily.get(field), list):
                raise MalformedDataError(
                    f"Invalid weather data format: missing daily '{field}'"
                )
        if not daily["time"]:
            raise MalformedDataError("Invalid weather data format: empty daily 'time'")

        current = result_set.get("current")
        if not isinstance(current, dict):
            result_set = {**result_set, "current": None}
        try:
            return ForecastResponse.model_validate(result_set)
        except ValidationError as exc:
            raise MalformedDataError(f"Invalid weather data format: {exc}") from exc
