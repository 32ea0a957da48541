"""Periodic fetch/normalize cycle behind an explicit, cancellable handle.

`start()` spawns one fetch immediately and arms a repeating timer task that
spawns another fetch every `interval_ms`. Fetches are independent asyncio
tasks: a slow fetch never delays the timer, and results are applied in
completion order (the last fetch to finish wins). `RefreshHandle.cancel()`
stops the timer; fetches still in flight run to completion but their results
are discarded. `set_interval()` recreates the loop the same way `start()` does:
one fetch right away, then a timer on the new period.

Log records carry the location and, for fetches, `fetch_seq`/`fetch_reason`
as `extra` fields for the JSON console formatter.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Literal

from pydantic import BaseModel, Field

from .config import DEFAULT_INTERVAL_MS, DEFAULT_LATITUDE, DEFAULT_LONGITUDE
from .exceptions import WeatherProviderError
from .weather.base import WeatherProvider
from .weather.models import DailyForecast, WeatherState
from .weather.normalize import normalize_forecast

FALLBACK_ERROR_MESSAGE = "Failed to fetch weather data"

FetchReason = Literal["initial", "timer", "manual", "interval"]


class RefreshParams(BaseModel):
    """Location and period for one refresh loop."""

    latitude: float = Field(default=DEFAULT_LATITUDE, ge=-90, le=90)
    longitude: float = Field(default=DEFAULT_LONGITUDE, ge=-180, le=180)
    interval_ms: int = Field(default=DEFAULT_INTERVAL_MS, gt=0)

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000


class RefreshHandle:
    """Owns the timer task and the today/tomorrow state for one location."""

    def __init__(
        self,
        provider: WeatherProvider,
        params: RefreshParams,
        *,
        logger: logging.Logger,
        drop_overlapping: bool = False,
    ) -> None:
        self.provider = provider
        self.params = params
        self.logger = logger
        self.drop_overlapping = drop_overlapping
        self._today: DailyForecast | None = None
        self._tomorrow: DailyForecast | None = None
        self._error: str | None = None
        self._pending = 0
        self._fetch_seq = 0
        self._tasks: set[asyncio.Task[None]] = set()
        self._timer: asyncio.Task[None] | None = None
        self._active = False

    async def __aenter__(self) -> RefreshHandle:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.cancel()

    @property
    def today(self) -> DailyForecast | None:
        return self._today

    @property
    def tomorrow(self) -> DailyForecast | None:
        return self._tomorrow

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    @property
    def active(self) -> bool:
        return self._active

    @property
    def state(self) -> WeatherState:
        """Point-in-time copy of the exposed result surface."""
        return WeatherState(
            today=self._today,
            tomorrow=self._tomorrow,
            is_loading=self.is_loading,
            error=self._error,
        )

    def refresh(self) -> None:
        """Start a fetch now; the timer period is left untouched."""
        if not self._active:
            self.logger.debug("Ignoring refresh on cancelled weather handle")
            return
        self._spawn_fetch("manual")

    trigger_now = refresh

    def set_interval(self, interval_ms: int) -> None:
        """Switch to a new period: fetch once now, then re-arm the timer."""
        self.params = RefreshParams.model_validate(
            {**self.params.model_dump(), "interval_ms": interval_ms}
        )
        if not self._active:
            return
        self._disarm_timer()
        self.logger.info(
            "Weather refresh interval changed to %d ms", interval_ms, extra=self._log_context()
        )
        self._spawn_fetch("interval")
        self._arm_timer()

    def cancel(self) -> None:
        """Stop the timer and stop applying results. Safe to call twice."""
        if not self._active:
            return
        self._active = False
        self._disarm_timer()
        self.logger.info(
            "Weather refresh cancelled (%d fetch(es) still in flight)",
            self._pending,
            extra=self._log_context(),
        )

    async def drain(self) -> None:
        """Wait for every fetch currently in flight to finish."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _log_context(
        self, seq: int | None = None, reason: FetchReason | None = None
    ) -> dict[str, Any]:
        context: dict[str, Any] = {
            "latitude": self.params.latitude,
            "longitude": self.params.longitude,
            "interval_ms": self.params.interval_ms,
        }
        if seq is not None:
            context["fetch_seq"] = seq
            context["fetch_reason"] = reason
        return context

    def _activate(self) -> None:
        self._active = True
        self._spawn_fetch("initial")
        self._arm_timer()

    def _arm_timer(self) -> None:
        self._timer = asyncio.create_task(self._tick(self.params.interval_seconds))

    def _disarm_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _tick(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self._spawn_fetch("timer")

    def _spawn_fetch(self, reason: FetchReason) -> None:
        if self.drop_overlapping and self._pending:
            self.logger.info(
                "Skipping %s weather fetch; %d already in flight",
                reason,
                self._pending,
                extra=self._log_context(),
            )
            return
        self._fetch_seq += 1
        self._pending += 1
        self._error = None
        task = asyncio.create_task(self._run_fetch(self._fetch_seq, reason))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_fetch(self, seq: int, reason: FetchReason) -> None:
        context = self._log_context(seq, reason)
        self.logger.debug("Weather fetch #%d (%s) started", seq, reason, extra=context)
        try:
            raw = await self.provider.fetch_forecast(
                lat=self.params.latitude,
                lon=self.params.longitude,
            )
            today, tomorrow = normalize_forecast(raw)
        except WeatherProviderError as exc:
            self._apply_failure(str(exc), context)
        except Exception:
            self.logger.exception("Unexpected weather fetch #%d failure", seq, extra=context)
            self._apply_failure(FALLBACK_ERROR_MESSAGE, context)
        else:
            self._apply_success(today, tomorrow, context)
        finally:
            self._pending -= 1

    def _apply_success(
        self, today: DailyForecast, tomorrow: DailyForecast, context: dict[str, Any]
    ) -> None:
        if not self._active:
            self.logger.debug("Discarding weather fetch result after cancel", extra=context)
            return
        self._today = today
        self._tomorrow = tomorrow
        self._error = None
        self.logger.info(
            "Weather fetch applied today=%s tomorrow=%s", today.date, tomorrow.date, extra=context
        )

    def _apply_failure(self, message: str, context: dict[str, Any]) -> None:
        if not self._active:
            self.logger.debug("Discarding weather fetch failure after cancel", extra=context)
            return
        self._error = message
        self.logger.warning("Weather fetch failed: %s", message, extra=context)


def start(
    provider: WeatherProvider,
    params: RefreshParams | None = None,
    *,
    logger: logging.Logger | None = None,
    drop_overlapping: bool = False,
) -> RefreshHandle:
    """Begin refreshing inside the running event loop and return the handle."""
    handle = RefreshHandle(
        provider,
        params or RefreshParams(),
        logger=logger or logging.getLogger("weather_widget.refresh"),
        drop_overlapping=drop_overlapping,
    )
    handle._activate()
    return handle
