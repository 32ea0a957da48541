"""CLI: show the today/tomorrow weather widget in the terminal."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from rich.console import Console
from rich.live import Live

from .config import Settings, WidgetSize, load_settings
from .exceptions import ConfigError, WeatherProviderError
from .log_setup import setup_logger
from .refresh import RefreshParams, start
from .ui.widget import render_widget
from .weather.models import WeatherState
from .weather.open_meteo import OpenMeteoWeatherProvider

REDRAW_SECONDS = 1.0


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse weather widget CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Display today's and tomorrow's weather from Open-Meteo."
    )
    parser.add_argument("--lat", type=float, default=None, help="Latitude override.")
    parser.add_argument("--lon", type=float, default=None, help="Longitude override.")
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help="Refresh period in milliseconds.",
    )
    parser.add_argument(
        "--size",
        choices=["sm", "md", "lg", "xl"],
        default=None,
        help="Widget width preset.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Fetch a single time, print the widget and exit.",
    )
    return parser.parse_args(argv)


def _resolve_params(args: argparse.Namespace, settings: Settings) -> RefreshParams:
    lat = args.lat if args.lat is not None else settings.weather_latitude
    lon = args.lon if args.lon is not None else settings.weather_longitude
    interval_ms = (
        args.interval_ms if args.interval_ms is not None else settings.weather_interval_ms
    )
    if not (-90 <= lat <= 90):
        raise WeatherProviderError(f"Invalid latitude {lat}; expected between -90 and 90.")
    if not (-180 <= lon <= 180):
        raise WeatherProviderError(f"Invalid longitude {lon}; expected between -180 and 180.")
    if interval_ms <= 0:
        raise WeatherProviderError("--interval-ms must be > 0 when provided.")
    return RefreshParams(latitude=lat, longitude=lon, interval_ms=interval_ms)


async def _run_once(
    settings: Settings, params: RefreshParams, logger: logging.Logger
) -> WeatherState:
    async with OpenMeteoWeatherProvider(settings=settings, logger=logger) as provider:
        async with start(provider, params, logger=logger) as handle:
            await handle.drain()
            return handle.state


async def _watch(
    settings: Settings,
    params: RefreshParams,
    logger: logging.Logger,
    console: Console,
    size: WidgetSize,
) -> None:
    async with OpenMeteoWeatherProvider(settings=settings, logger=logger) as provider:
        handle = start(
            provider,
            params,
            logger=logger,
            drop_overlapping=settings.weather_drop_overlapping_fetches,
        )
        async with handle:
            with Live(render_widget(handle.state, size), console=console) as live:
                while True:
                    await asyncio.sleep(REDRAW_SECONDS)
                    live.update(render_widget(handle.state, size))


def main(argv: Sequence[str] | None = None) -> int:
    """Run the weather widget."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2
    setup_logger(level=settings.log_level)

    try:
        params = _resolve_params(args, settings)
    except WeatherProviderError as exc:
        logger.error("Invalid input: %s", exc)
        return 2

    size: WidgetSize = args.size or settings.weather_size
    logger.info(
        "Weather widget starting: %s",
        settings.safe_summary(),
        extra={
            "latitude": params.latitude,
            "longitude": params.longitude,
            "interval_ms": params.interval_ms,
        },
    )

    if args.once:
        state = asyncio.run(_run_once(settings, params, logger))
        console.print(render_widget(state, size))
        return 0 if state.today is not None else 4

    try:
        asyncio.run(_watch(settings, params, logger, console, size))
    except KeyboardInterrupt:
        logger.info("Weather widget stopped by user.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
