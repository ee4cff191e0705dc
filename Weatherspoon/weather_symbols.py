"""Static symbol lookups and text formatting for a snapshot - pure functions for testability."""
from datetime import date, timedelta
from typing import List, Optional, Tuple
from weather_data import WeatherSnapshot

DEFAULT_TEMP_EMOJI = "🌡️"
DEFAULT_WEATHER_EMOJI = "🌡️"

# (lower bound in Celsius, emoji), hottest first; lower bounds are inclusive.
TEMP_THRESHOLDS: List[Tuple[float, str]] = [
    (35, "🔥"),   # very hot
    (25, "🌞"),   # hot
    (15, "🌤️"),  # warm
    (5, "☁️"),    # cool
    (0, "❄️"),    # cold
    (-10, "⛄"),  # very cold
]

WEATHER_EMOJIS = {
    "Clear": "☀️",
    "Sunny": "🌞",
    "Partly cloudy": "⛅",
    "Cloudy": "☁️",
    "Overcast": "🌥️",
    "Mist": "🌫",
    "Patchy rain possible": "🌦️",
    "Patchy snow possible": "🌨️",
    "Patchy sleet possible": "🌧️",
    "Patchy freezing drizzle possible": "🌧",
    "Thundery outbreaks possible": "⛈️",
    "Blowing snow": "🌬️❄️",
    "Blizzard": "❄️🌪",
    "Fog": "🌁",
    "Freezing fog": "❄️🌫️",
    "Patchy light drizzle": "🌦️",
    "Light drizzle": "🌧",
    "Freezing drizzle": "❄️🌧",
    "Heavy freezing drizzle": "🌧❄️",
    "Patchy light rain": "🌦️",
    "Light rain": "🌧",
    "Moderate rain at times": "🌦️🌧",
    "Moderate rain": "🌧",
    "Heavy rain at times": "🌧🌩",
    "Heavy rain": "🌧💧",
    "Light freezing rain": "❄️🌧",
    "Moderate or heavy freezing rain": "❄️🌧💧",
    "Light sleet": "🌧❄️",
    "Moderate or heavy sleet": "🌧❄️🌨",
    "Patchy light snow": "🌨",
    "Light snow": "❄️",
    "Patchy moderate snow": "🌨❄️",
    "Moderate snow": "❄️🌨",
    "Patchy heavy snow": "🌨❄️💨",
    "Heavy snow": "❄️❄️",
    "Ice pellets": "🧊",
    "Light rain shower": "🌦️",
    "Moderate or heavy rain shower": "🌧⛈️",
    "Torrential rain shower": "🌧🌊",
    "Light sleet showers": "🌨️❄️",
    "Moderate or heavy sleet showers": "🌧❄️🌨",
    "Light snow showers": "🌨❄️",
    "Moderate or heavy snow showers": "❄️🌨💨",
    "Patchy light rain with thunder": "🌦️⛈",
    "Moderate or heavy rain with thunder": "🌧⛈️",
    "Patchy light snow with thunder": "❄️⚡",
    "Moderate or heavy snow with thunder": "❄️🌨⚡",
}

LOADING_TITLE = "⌛ Loading..."
UPDATING_TITLE = "⌛ Updating..."
ERROR_TITLE = "⚠️ Error"


def temp_emoji(temp_c: float) -> str:
    """
    Get the tier emoji for a temperature.

    Each tier includes its lower bound: 35 and up is very hot, [-10, 0)
    is very cold, and anything below -10 gets the default thermometer.
    """
    for threshold, emoji in TEMP_THRESHOLDS:
        if temp_c >= threshold:
            return emoji
    return DEFAULT_TEMP_EMOJI


def weather_emoji(condition: Optional[str]) -> str:
    """
    Get the emoji for a wttr.in condition description.

    Tries an exact match, then a case-insensitive one, then the longest
    known condition contained in the text (or containing it). Unknown text
    gets the default marker.
    """
    if not condition:
        return DEFAULT_WEATHER_EMOJI
    if condition in WEATHER_EMOJIS:
        return WEATHER_EMOJIS[condition]

    text = condition.strip().lower()
    lowered = {name.lower(): emoji for name, emoji in WEATHER_EMOJIS.items()}
    if text in lowered:
        return lowered[text]

    matches = [name for name in lowered if name in text or (text and text in name)]
    if matches:
        return lowered[max(matches, key=len)]
    return DEFAULT_WEATHER_EMOJI


def status_title(snapshot: WeatherSnapshot) -> str:
    """Short status-bar text, e.g. "⛅ 21.5°C"."""
    return f"{weather_emoji(snapshot.description)} {snapshot.temperature:.1f}°C"


def status_tooltip(snapshot: WeatherSnapshot) -> str:
    return f"{snapshot.description} {temp_emoji(snapshot.temperature)} {snapshot.temperature:.1f}°C"


def format_forecast_date(date_str: str, today: Optional[date] = None) -> str:
    """Label a yyyy-MM-dd date as "Today", "Tomorrow" or its weekday name."""
    if today is None:
        today = date.today()
    try:
        day = date.fromisoformat(date_str)
    except ValueError:
        return date_str
    if day == today:
        return "Today"
    if day == today + timedelta(days=1):
        return "Tomorrow"
    return day.strftime("%A")


def location_info(snapshot: WeatherSnapshot) -> str:
    if snapshot.is_using_location and snapshot.coordinate is not None:
        return f"📍 Using location: {snapshot.coordinate.latitude:.2f}, {snapshot.coordinate.longitude:.2f}"
    if snapshot.city_name:
        return f"🏙️ Using city: {snapshot.city_name}"
    return "❓ Location unknown"


def detail_lines(snapshot: WeatherSnapshot, today: Optional[date] = None) -> List[str]:
    """
    Lines for the dropdown detail list, in display order.

    Header, current conditions, forecast days, then where the data is for.
    """
    lines = [
        f"{snapshot.area_name} {temp_emoji(snapshot.temperature)} {snapshot.temperature:.1f}°C "
        f"(Feels like {snapshot.feels_like:.1f}°C) 💦 {snapshot.humidity}% ☔ {snapshot.chance_of_rain}%",
        f"Current Weather: {snapshot.description}",
        f"Wind: {snapshot.wind_speed} km/h {snapshot.wind_direction}",
        f"Pressure: {snapshot.pressure} hPa",
        f"Visibility: {snapshot.visibility} km",
        "Forecast:",
    ]
    for forecast in snapshot.forecasts:
        lines.append(
            f"{format_forecast_date(forecast.date, today)}: {forecast.description} "
            f"({temp_emoji(forecast.min_temp)} {forecast.min_temp:.1f}°C - "
            f"{temp_emoji(forecast.max_temp)} {forecast.max_temp:.1f}°C)"
        )
    lines.append(location_info(snapshot))
    return lines
