"""Rich rendering of the today/tomorrow widget."""

from __future__ import annotations

from rich.columns import Columns
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..config import WidgetSize
from ..weather.models import DailyForecast, WeatherState

WEATHER_CODE_LABELS: dict[int, str] = {
    0: "Clear",
    1: "Mostly Clear",
    2: "Partly Cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Rime Fog",
    51: "Light Drizzle",
    53: "Drizzle",
    55: "Heavy Drizzle",
    56: "Frz Drizzle",
    57: "Frz Drizzle",
    61: "Light Rain",
    63: "Rain",
    65: "Heavy Rain",
    66: "Frz Rain",
    67: "Frz Rain",
    71: "Light Snow",
    73: "Snow",
    75: "Heavy Snow",
    77: "Snow Grains",
    80: "Shower",
    81: "Showers",
    82: "Heavy Showers",
    85: "Snow Shwr",
    86: "Snow Shwr",
    95: "Storm",
    96: "Storm (hail)",
    99: "Storm (hail)",
}

PANEL_WIDTHS: dict[str, int] = {"sm": 44, "md": 56, "lg": 68, "xl": 80}


def describe_weather_code(code: int) -> str:
    return WEATHER_CODE_LABELS.get(code, "Unknown")


def _fmt(value: float | None, suffix: str = "", precision: int = 0) -> str:
    if value is None:
        return "-"
    return f"{value:.{precision}f}{suffix}"


def _today_table(today: DailyForecast) -> Table:
    table = Table.grid(padding=(0, 1))
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Today", today.date)
    table.add_row("Now", _fmt(today.temperature, "°"))
    if today.apparent_temperature is not None:
        table.add_row("Feels", _fmt(today.apparent_temperature, "°"))
    table.add_row("Hi/Lo", f"{_fmt(today.temperature_max, '°')} / {_fmt(today.temperature_min, '°')}")
    table.add_row("Sky", describe_weather_code(today.weather_code))
    table.add_row("Humidity", _fmt(today.humidity, "%"))
    table.add_row("Wind", _fmt(today.wind_speed, precision=1))
    table.add_row("Precip", _fmt(today.precipitation, " mm", precision=1))
    return table


def _tomorrow_table(tomorrow: DailyForecast) -> Table:
    table = Table.grid(padding=(0, 1))
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Tomorrow", tomorrow.date)
    table.add_row(
        "Hi/Lo", f"{_fmt(tomorrow.temperature_max, '°')} / {_fmt(tomorrow.temperature_min, '°')}"
    )
    table.add_row("Sky", describe_weather_code(tomorrow.weather_code))
    table.add_row("Precip", _fmt(tomorrow.precipitation, " mm", precision=1))
    if tomorrow.wind_speed_max is not None:
        table.add_row("Wind max", _fmt(tomorrow.wind_speed_max, precision=1))
    return table


def render_widget(state: WeatherState, size: WidgetSize = "md") -> Panel:
    """Render the current result surface as a single panel."""
    width = PANEL_WIDTHS.get(size, PANEL_WIDTHS["md"])
    parts: list[RenderableType] = []

    if state.today is None and state.tomorrow is None:
        if state.is_loading:
            parts.append(Text("Loading weather...", style="dim"))
        elif state.error is None:
            parts.append(Text("No weather data yet.", style="dim"))
    else:
        days: list[RenderableType] = []
        if state.today is not None:
            days.append(_today_table(state.today))
        if state.tomorrow is not None:
            days.append(_tomorrow_table(state.tomorrow))
        parts.append(Columns(days, expand=True))

    if state.error:
        parts.append(Text(f"Error: {state.error}", style="bold red"))

    subtitle = "refreshing" if state.is_loading else None
    return Panel(Group(*parts), title="Weather", subtitle=subtitle, width=width)
