"""Weather provider abstraction - allows swapping different weather APIs."""
import enum
from abc import ABC, abstractmethod
from typing import Optional
from weather_data import WeatherQuery, WeatherSnapshot


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""

    @abstractmethod
    def get_current(self, query: WeatherQuery) -> WeatherSnapshot:
        """
        Fetch current weather and forecast for a coordinate or city.

        This is a single blocking attempt; retrying is the caller's job.

        Args:
            query: Coordinate or city to fetch weather for

        Returns:
            WeatherSnapshot: Normalized weather information

        Raises:
            FetchError: If the provider fails to fetch or decode data
        """
        pass


class FetchErrorKind(enum.Enum):
    INVALID_CITY_NAME = "invalid_city_name"
    NO_LOCATION_OR_CITY = "no_location_or_city"
    INVALID_URL = "invalid_url"
    INVALID_RESPONSE = "invalid_response"
    NO_DATA = "no_data"
    DECODING_ERROR = "decoding_error"
    INVALID_WEATHER_DATA = "invalid_weather_data"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"


_MESSAGES = {
    FetchErrorKind.INVALID_CITY_NAME: "Invalid city name",
    FetchErrorKind.NO_LOCATION_OR_CITY: "No location or city provided",
    FetchErrorKind.INVALID_URL: "Invalid URL",
    FetchErrorKind.NO_DATA: "No data received",
    FetchErrorKind.INVALID_WEATHER_DATA: "Invalid weather data format",
    FetchErrorKind.TIMEOUT: "Request timed out",
}


class FetchError(Exception):
    """Exception raised when a weather provider fails."""

    def __init__(
        self,
        kind: FetchErrorKind,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.detail = detail
        self.status_code = status_code
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.kind is FetchErrorKind.INVALID_RESPONSE:
            return f"Server error (code: {self.status_code or 0})"
        if self.kind is FetchErrorKind.DECODING_ERROR:
            return f"Data parsing error: {self.detail}"
        if self.kind is FetchErrorKind.NETWORK_ERROR:
            return f"Network error: {self.detail}"
        message = _MESSAGES[self.kind]
        if self.detail:
            message = f"{message}: {self.detail}"
        return message

    @property
    def retryable(self) -> bool:
        """Timeouts and 5xx responses are transient, everything else is final."""
        if self.kind is FetchErrorKind.TIMEOUT:
            return True
        return (
            self.kind is FetchErrorKind.INVALID_RESPONSE
            and self.status_code is not None
            and 500 <= self.status_code <= 599
        )
