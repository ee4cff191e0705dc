"""wttr.in JSON (format=j1) weather provider implementation."""
import logging
import requests
from datetime import date
from typing import Any, Callable, List, Optional
from urllib.parse import quote
from weather_provider import WeatherProviderBase, FetchError, FetchErrorKind
from weather_data import ForecastDay, WeatherQuery, WeatherSnapshot

DEFAULT_BASE_URL = "https://wttr.in"
USER_AGENT = "curl/7.64.1"
MAX_FORECAST_DAYS = 3
AFTERNOON_SLOT = 4  # 0-indexed hourly entry used as the day's description
UNKNOWN_DESCRIPTION = "Unknown"


def encode_city(city_name: str) -> str:
    """
    Percent-encode a city name for use as a URL path segment.

    Raises:
        FetchError: INVALID_CITY_NAME if the name cannot be encoded
    """
    try:
        return quote(city_name, safe=",", errors="strict")
    except UnicodeEncodeError as e:
        raise FetchError(FetchErrorKind.INVALID_CITY_NAME, str(e)) from e


def build_url(base_url: str, query: WeatherQuery, precision: int = 2) -> str:
    """
    Build the request URL for a coordinate or city query.

    The coordinate wins when both are present.
    """
    base_url = base_url.rstrip("/")
    if query.coordinate is not None:
        return f"{base_url}/{query.coordinate.format(precision)}?format=j1"
    if query.city_name and query.city_name.strip():
        return f"{base_url}/{encode_city(query.city_name.strip())}?format=j1"
    raise FetchError(FetchErrorKind.NO_LOCATION_OR_CITY)


def web_url(snapshot: WeatherSnapshot, base_url: str = DEFAULT_BASE_URL) -> Optional[str]:
    """Human-facing page for the place a snapshot was fetched for."""
    base_url = base_url.rstrip("/")
    if snapshot.is_using_location and snapshot.coordinate is not None:
        return f"{base_url}/{snapshot.coordinate.latitude},{snapshot.coordinate.longitude}"
    if snapshot.city_name:
        try:
            return f"{base_url}/{encode_city(snapshot.city_name)}"
        except FetchError:
            return None
    return None


def _parse_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _first_value(items: Any) -> Optional[str]:
    """Return items[0]["value"] from wttr.in's [{"value": ...}] wrappers."""
    if not isinstance(items, list) or not items:
        return None
    first = items[0]
    if not isinstance(first, dict):
        return None
    value = first.get("value")
    return value if isinstance(value, str) else None


def extract_forecasts(days: List[Any], today: str) -> List[ForecastDay]:
    """
    Build up to three forecast days from the "weather" array.

    The first three records are considered; any dated before `today` is
    dropped. ISO yyyy-MM-dd strings compare lexically in date order.
    """
    forecasts = []
    for day in days[:MAX_FORECAST_DAYS]:
        if not isinstance(day, dict):
            continue
        day_date = day.get("date")
        max_temp = _parse_float(day.get("maxtempC"))
        min_temp = _parse_float(day.get("mintempC"))
        if not isinstance(day_date, str) or max_temp is None or min_temp is None:
            logging.debug(f"Skipping unparseable forecast day: {day_date}")
            continue
        if day_date < today:
            logging.debug(f"Skipping past forecast day {day_date} (today is {today})")
            continue

        hourly = day.get("hourly")
        description = UNKNOWN_DESCRIPTION
        if isinstance(hourly, list) and len(hourly) > AFTERNOON_SLOT:
            slot = hourly[AFTERNOON_SLOT]
            if isinstance(slot, dict):
                description = _first_value(slot.get("weatherDesc")) or UNKNOWN_DESCRIPTION

        forecasts.append(ForecastDay(
            date=day_date,
            max_temp=max_temp,
            min_temp=min_temp,
            description=description,
        ))
    return forecasts


def parse_response(data: Any, query: WeatherQuery, today: str) -> WeatherSnapshot:
    """
    Validate a decoded j1 body and map it to a WeatherSnapshot.

    Raises:
        FetchError: DECODING_ERROR if the body is structurally wrong,
            INVALID_WEATHER_DATA if required current values are missing
    """
    if not isinstance(data, dict):
        raise FetchError(FetchErrorKind.DECODING_ERROR, "response is not a JSON object")
    for key in ("current_condition", "nearest_area", "weather"):
        if not isinstance(data.get(key), list):
            raise FetchError(FetchErrorKind.DECODING_ERROR, f"missing '{key}' array")

    conditions = data["current_condition"]
    current = conditions[0] if conditions and isinstance(conditions[0], dict) else None
    if current is None:
        logging.error("Response has no current condition record")
        raise FetchError(FetchErrorKind.INVALID_WEATHER_DATA, "no current condition")

    areas = data["nearest_area"]
    area = areas[0] if areas and isinstance(areas[0], dict) else {}

    description = _first_value(current.get("weatherDesc"))
    temperature = _parse_float(current.get("temp_C"))
    feels_like = _parse_float(current.get("FeelsLikeC"))
    humidity = _parse_int(current.get("humidity"))
    area_name = _first_value(area.get("areaName"))
    wind_speed = current.get("windspeedKmph")
    wind_direction = current.get("winddir16Point")
    pressure = current.get("pressure")
    visibility = current.get("visibility")

    required = {
        "weatherDesc": description,
        "temp_C": temperature,
        "FeelsLikeC": feels_like,
        "humidity": humidity,
        "areaName": area_name,
        "windspeedKmph": wind_speed,
        "winddir16Point": wind_direction,
        "pressure": pressure,
        "visibility": visibility,
    }
    missing = [name for name, value in required.items() if value is None]
    if missing:
        logging.error(f"Invalid weather data structure, missing/unparseable: {', '.join(missing)}")
        raise FetchError(FetchErrorKind.INVALID_WEATHER_DATA, ", ".join(missing))

    chance_of_rain = _parse_int(current.get("chanceofrain", "0"))
    forecasts = extract_forecasts(data["weather"], today)

    using_location = query.coordinate is not None
    return WeatherSnapshot(
        temperature=temperature,
        feels_like=feels_like,
        humidity=humidity,
        chance_of_rain=chance_of_rain if chance_of_rain is not None else 0,
        description=description,
        area_name=area_name,
        wind_speed=str(wind_speed),
        wind_direction=str(wind_direction),
        pressure=str(pressure),
        visibility=str(visibility),
        forecasts=tuple(forecasts),
        provenance=query.provenance,
        coordinate=query.coordinate if using_location else None,
        city_name=None if using_location else query.city_name,
    )


class WttrProvider(WeatherProviderBase):
    """
    Weather provider using the free wttr.in text service.

    Requests `GET <base>/<lat,lon | city>?format=j1`, which needs no API key.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        coordinate_precision: int = 2,
        today: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize wttr.in provider.

        Args:
            base_url: Service root, without trailing path
            timeout: Per-request HTTP timeout in seconds
            coordinate_precision: Decimal places used for lat/lon in the URL
            today: Returns today's date as yyyy-MM-dd (for forecast filtering)
        """
        self.base_url = base_url
        self.timeout = timeout
        self.coordinate_precision = coordinate_precision
        self.today = today or (lambda: date.today().isoformat())

    def get_current(self, query: WeatherQuery) -> WeatherSnapshot:
        """
        Fetch current weather and forecast from wttr.in.

        Returns:
            WeatherSnapshot: Current weather information

        Raises:
            FetchError: If the request fails or the body is unusable
        """
        url = build_url(self.base_url, query, self.coordinate_precision)
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }

        try:
            logging.info(f"Making wttr.in request: {url}")
            response = requests.get(url, headers=headers, timeout=self.timeout)
        except (requests.exceptions.MissingSchema,
                requests.exceptions.InvalidSchema,
                requests.exceptions.InvalidURL) as e:
            logging.error(f"Invalid request URL {url}: {e}")
            raise FetchError(FetchErrorKind.INVALID_URL, url) from e
        except requests.exceptions.Timeout as e:
            logging.warning(f"Request to {url} timed out")
            raise FetchError(FetchErrorKind.TIMEOUT) from e
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise FetchError(FetchErrorKind.NETWORK_ERROR, str(e)) from e

        logging.info(f"API response status: {response.status_code}")
        if response.status_code != 200:
            logging.error(f"Invalid response code: {response.status_code}, body: {response.text[:200]}")
            raise FetchError(FetchErrorKind.INVALID_RESPONSE, status_code=response.status_code)

        if not response.content:
            raise FetchError(FetchErrorKind.NO_DATA)

        try:
            data = response.json()
        except ValueError as e:
            logging.error(f"Failed to decode API response: {e}")
            raise FetchError(FetchErrorKind.DECODING_ERROR, str(e)) from e

        snapshot = parse_response(data, query, self.today())
        logging.info(f"Weather data fetched successfully for {snapshot.area_name}")
        return snapshot
