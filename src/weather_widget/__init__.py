"""Two-day weather widget backed by the Open-Meteo forecast API."""

__version__ = "0.1.0"
