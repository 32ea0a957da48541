"""Tests for the periodic refresh handle: timer, manual refresh, cancellation."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from weather_widget.exceptions import MalformedDataError, NetworkError, NoDataError
from weather_widget.refresh import FALLBACK_ERROR_MESSAGE, RefreshParams, start
from weather_widget.weather.base import WeatherProvider
from weather_widget.weather.models import ForecastResponse

FIXTURE = Path(__file__).parent / "fixtures" / "open_meteo_seoul.json"
LOGGER = logging.getLogger("test_refresh_controller")
# Long enough that the timer never fires during a test unless asked to.
IDLE_INTERVAL_MS = 60 * 60 * 1000


def _raw(temperature_max: float = 11.2) -> ForecastResponse:
    payload = json.loads(FIXTURE.read_text(encoding="utf-8"))
    payload["daily"]["temperature_2m_max"][0] = temperature_max
    return ForecastResponse.model_validate(payload)


class ScriptedProvider(WeatherProvider):
    """Returns (or raises) scripted results; optionally holds each call on a gate."""

    def __init__(self, results: list[Any], *, gated: bool = False) -> None:
        self.results = results
        self.gated = gated
        self.calls = 0
        self.gates: list[asyncio.Event] = []

    async def fetch_forecast(self, *, lat: float, lon: float) -> ForecastResponse:
        index = self.calls
        self.calls += 1
        if self.gated:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        result = self.results[min(index, len(self.results) - 1)]
        if isinstance(result, BaseException):
            raise result
        return result

    async def aclose(self) -> None:
        return None


async def _settle() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


def _params(interval_ms: int = IDLE_INTERVAL_MS) -> RefreshParams:
    return RefreshParams(latitude=37.5665, longitude=126.978, interval_ms=interval_ms)


def test_params_defaults_point_at_seoul_every_ten_minutes() -> None:
    params = RefreshParams()
    assert params.latitude == 37.5665
    assert params.longitude == 126.978
    assert params.interval_ms == 600_000
    assert params.interval_seconds == 600


@pytest.mark.parametrize(
    "overrides",
    [{"latitude": 91}, {"longitude": -181}, {"interval_ms": 0}],
)
def test_params_reject_out_of_range_values(overrides: dict[str, Any]) -> None:
    with pytest.raises(ValidationError):
        RefreshParams(**overrides)


def test_start_fetches_immediately_and_exposes_snapshots() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw()], gated=True)
        handle = start(provider, _params(), logger=LOGGER)
        assert handle.is_loading
        assert handle.today is None

        await _settle()
        assert provider.calls == 1
        provider.gates[0].set()
        await handle.drain()

        assert not handle.is_loading
        assert handle.error is None
        assert handle.today is not None and handle.today.date == "2023-11-15"
        assert handle.tomorrow is not None and handle.tomorrow.date == "2023-11-16"
        state = handle.state
        assert state.today == handle.today
        assert state.is_loading is False
        handle.cancel()

    asyncio.run(scenario())


@pytest.mark.parametrize(
    ("exc", "message"),
    [
        (NoDataError("No weather data received"), "No weather data received"),
        (
            MalformedDataError("Invalid weather data format: missing daily 'time'"),
            "Invalid weather data format: missing daily 'time'",
        ),
        (NetworkError("Open-Meteo request failed: boom"), "Open-Meteo request failed: boom"),
        (RuntimeError("unexpected"), FALLBACK_ERROR_MESSAGE),
    ],
)
def test_failure_sets_message_and_keeps_stale_snapshots(
    exc: BaseException, message: str
) -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw(), exc])
        handle = start(provider, _params(), logger=LOGGER)
        await handle.drain()
        first_today = handle.today
        assert first_today is not None

        handle.refresh()
        await handle.drain()

        assert handle.error == message
        assert handle.is_loading is False
        assert handle.today is first_today
        assert handle.tomorrow is not None
        handle.cancel()

    asyncio.run(scenario())


def test_success_after_failure_clears_error_and_replaces_snapshots() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([NetworkError("down"), _raw(temperature_max=20.0)])
        handle = start(provider, _params(), logger=LOGGER)
        await handle.drain()
        assert handle.error == "down"
        assert handle.today is None

        handle.refresh()
        assert handle.error is None
        await handle.drain()

        assert handle.error is None
        assert handle.today is not None
        assert handle.today.temperature_max == 20.0
        handle.cancel()

    asyncio.run(scenario())


def test_timer_refetches_until_cancelled() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw()])
        handle = start(provider, _params(interval_ms=10), logger=LOGGER)
        await asyncio.sleep(0.08)
        assert provider.calls >= 3

        handle.cancel()
        await handle.drain()
        calls_at_cancel = provider.calls
        await asyncio.sleep(0.05)
        assert provider.calls == calls_at_cancel
        assert not handle.active

    asyncio.run(scenario())


def test_timer_does_not_wait_for_slow_fetches() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw()], gated=True)
        handle = start(provider, _params(interval_ms=10), logger=LOGGER)
        await asyncio.sleep(0.06)

        assert provider.calls >= 3
        assert handle.is_loading
        handle.cancel()
        await _settle()
        for gate in provider.gates:
            gate.set()
        await handle.drain()
        assert not handle.is_loading

    asyncio.run(scenario())


def test_cancel_while_in_flight_discards_result() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw()], gated=True)
        handle = start(provider, _params(), logger=LOGGER)
        await _settle()

        handle.cancel()
        provider.gates[0].set()
        await handle.drain()

        assert handle.today is None
        assert handle.tomorrow is None
        assert handle.error is None

    asyncio.run(scenario())


def test_cancel_while_in_flight_discards_failure() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw(), NetworkError("late failure")], gated=True)
        handle = start(provider, _params(), logger=LOGGER)
        await _settle()
        provider.gates[0].set()
        await handle.drain()
        today = handle.today

        handle.refresh()
        await _settle()
        handle.cancel()
        handle.cancel()
        provider.gates[1].set()
        await handle.drain()

        assert handle.today is today
        assert handle.error is None

    asyncio.run(scenario())


def test_refresh_after_cancel_is_ignored() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw()])
        handle = start(provider, _params(), logger=LOGGER)
        await handle.drain()
        handle.cancel()

        handle.refresh()
        await _settle()
        assert provider.calls == 1

    asyncio.run(scenario())


def test_double_refresh_last_completion_wins() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider(
            [_raw(temperature_max=10.0), _raw(temperature_max=20.0), _raw(temperature_max=30.0)],
            gated=True,
        )
        handle = start(provider, _params(), logger=LOGGER)
        await _settle()
        provider.gates[0].set()
        await handle.drain()

        handle.refresh()
        handle.trigger_now()
        await _settle()
        assert provider.calls == 3
        assert handle.is_loading

        # The later-issued fetch finishes first; the earlier one lands last.
        provider.gates[2].set()
        await _settle()
        assert handle.today is not None and handle.today.temperature_max == 30.0
        assert handle.is_loading

        provider.gates[1].set()
        await handle.drain()
        assert handle.today.temperature_max == 20.0
        assert not handle.is_loading
        handle.cancel()

    asyncio.run(scenario())


def test_drop_overlapping_skips_triggers_while_in_flight() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw()], gated=True)
        handle = start(provider, _params(), logger=LOGGER, drop_overlapping=True)
        await _settle()

        handle.refresh()
        await _settle()
        assert provider.calls == 1

        provider.gates[0].set()
        await handle.drain()
        handle.refresh()
        await _settle()
        assert provider.calls == 2
        provider.gates[1].set()
        await handle.drain()
        handle.cancel()

    asyncio.run(scenario())


def test_set_interval_fetches_once_then_waits_for_new_period() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw()])
        handle = start(provider, _params(), logger=LOGGER)
        await handle.drain()
        assert provider.calls == 1

        handle.set_interval(1_800_000)
        assert handle.is_loading
        await handle.drain()
        assert provider.calls == 2
        assert handle.params.interval_ms == 1_800_000

        await _settle()
        assert provider.calls == 2
        handle.cancel()

    asyncio.run(scenario())


def test_set_interval_rearms_timer_on_short_period() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw()])
        handle = start(provider, _params(), logger=LOGGER)
        await handle.drain()

        handle.set_interval(10)
        await asyncio.sleep(0.05)
        handle.cancel()
        await handle.drain()
        assert provider.calls >= 3

    asyncio.run(scenario())


def test_set_interval_after_cancel_only_updates_params() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw()])
        handle = start(provider, _params(), logger=LOGGER)
        await handle.drain()
        handle.cancel()

        handle.set_interval(5000)
        await handle.drain()
        assert provider.calls == 1
        assert handle.params.interval_ms == 5000

    asyncio.run(scenario())


def test_fetch_logs_carry_location_and_fetch_context() -> None:
    records: list[logging.LogRecord] = []

    class _Collect(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    logger = logging.getLogger("test_refresh_controller.context")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(_Collect())

    async def scenario() -> None:
        provider = ScriptedProvider([_raw()])
        handle = start(provider, _params(), logger=logger)
        await handle.drain()
        handle.cancel()

    asyncio.run(scenario())

    applied = [r for r in records if r.getMessage().startswith("Weather fetch applied")]
    assert len(applied) == 1
    assert applied[0].fetch_seq == 1  # type: ignore[attr-defined]
    assert applied[0].fetch_reason == "initial"  # type: ignore[attr-defined]
    assert applied[0].latitude == 37.5665  # type: ignore[attr-defined]
    assert applied[0].longitude == 126.978  # type: ignore[attr-defined]


def test_context_manager_cancels_on_exit() -> None:
    async def scenario() -> None:
        provider = ScriptedProvider([_raw()])
        async with start(provider, _params(interval_ms=10), logger=LOGGER) as handle:
            await handle.drain()
            assert handle.active
        assert not handle.active

    asyncio.run(scenario())
