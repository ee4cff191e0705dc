"""Weather domain model - pure data structures independent of any API."""
import enum
import time
from dataclasses import dataclass, field
from math import atan2, cos, radians, sin, sqrt
from typing import Optional, Tuple

EARTH_RADIUS_METERS = 6371000.0


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""
    latitude: float
    longitude: float

    def distance_to(self, other: "Coordinate") -> float:
        """Great-circle distance to another coordinate in meters (Haversine)."""
        lat1_rad, lon1_rad = radians(self.latitude), radians(self.longitude)
        lat2_rad, lon2_rad = radians(other.latitude), radians(other.longitude)

        dlat = lat2_rad - lat1_rad
        dlon = lon2_rad - lon1_rad

        a = sin(dlat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(dlon / 2) ** 2
        c = 2 * atan2(sqrt(a), sqrt(1 - a))

        return EARTH_RADIUS_METERS * c

    def format(self, precision: int = 2) -> str:
        """Format as the "lat,lon" path segment the weather service expects."""
        return f"{self.latitude:.{precision}f},{self.longitude:.{precision}f}"


@dataclass(frozen=True)
class LocationFix:
    """A coordinate reported by a location service, with the time it was measured."""
    coordinate: Coordinate
    timestamp: float = field(default_factory=time.time)  # UNIX timestamp

    def age(self, now: Optional[float] = None) -> float:
        if now is None:
            now = time.time()
        return now - self.timestamp


class Provenance(enum.Enum):
    """Where the request that produced a snapshot was keyed from."""
    LOCATION = "location"
    CITY = "city"


@dataclass(frozen=True)
class WeatherQuery:
    """What a single provider call asks for: exactly one of coordinate or city."""
    coordinate: Optional[Coordinate] = None
    city_name: Optional[str] = None

    @property
    def provenance(self) -> Provenance:
        return Provenance.LOCATION if self.coordinate is not None else Provenance.CITY

    def describe(self) -> str:
        if self.coordinate is not None:
            return self.coordinate.format()
        return self.city_name or "<none>"


@dataclass(frozen=True)
class ForecastDay:
    date: str  # yyyy-MM-dd
    max_temp: float
    min_temp: float
    description: str


@dataclass(frozen=True)
class WeatherSnapshot:
    """One normalized weather reading plus a short forecast."""
    temperature: float
    feels_like: float
    humidity: int  # percentage
    chance_of_rain: int  # percentage
    description: str  # e.g. "Partly cloudy"
    area_name: str
    wind_speed: str  # km/h
    wind_direction: str  # 16-point compass, e.g. "NNE"
    pressure: str  # hPa
    visibility: str  # km
    forecasts: Tuple[ForecastDay, ...] = ()

    # Provenance
    provenance: Provenance = Provenance.CITY
    coordinate: Optional[Coordinate] = None
    city_name: Optional[str] = None

    @property
    def is_using_location(self) -> bool:
        return self.provenance is Provenance.LOCATION
