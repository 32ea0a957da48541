"""Application exception classes."""


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class WeatherProviderError(Exception):
    """Raised when weather provider requests or normalization fail."""


class NoDataError(WeatherProviderError):
    """Raised when the provider returns zero result sets."""


class MalformedDataError(WeatherProviderError):
    """Raised when required daily fields are missing from a non-empty response."""


class NetworkError(WeatherProviderError):
    """Raised for transport failures, error statuses and undecodable bodies."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
