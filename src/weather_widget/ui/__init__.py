"""Terminal presentation of the weather widget."""

from .widget import describe_weather_code, render_widget

__all__ = ["describe_weather_code", "render_widget"]
