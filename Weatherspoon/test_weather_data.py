"""Tests for weather_data module."""
import dataclasses
import pytest
from weather_data import Coordinate, LocationFix, Provenance, WeatherQuery, WeatherSnapshot, ForecastDay


def test_snapshot_creation():
    """Test creating WeatherSnapshot with required fields."""
    weather = WeatherSnapshot(
        temperature=20.5,
        feels_like=19.8,
        humidity=65,
        chance_of_rain=30,
        description="Partly cloudy",
        area_name="Brooklyn",
        wind_speed="12",
        wind_direction="NW",
        pressure="1015",
        visibility="10",
        forecasts=(ForecastDay("2024-05-24", 22.0, 14.0, "Sunny"),),
        provenance=Provenance.LOCATION,
        coordinate=Coordinate(40.68, -73.94),
    )

    assert weather.temperature == 20.5
    assert weather.feels_like == 19.8
    assert weather.humidity == 65
    assert weather.description == "Partly cloudy"
    assert weather.is_using_location is True
    assert weather.forecasts[0].description == "Sunny"


def test_snapshot_is_immutable():
    weather = WeatherSnapshot(
        temperature=1.0, feels_like=1.0, humidity=1, chance_of_rain=0,
        description="Clear", area_name="X", wind_speed="0", wind_direction="N",
        pressure="1000", visibility="10",
    )
    with pytest.raises(dataclasses.FrozenInstanceError):
        weather.temperature = 2.0
    assert weather.provenance is Provenance.CITY


def test_coordinate_distance():
    """One degree of latitude is roughly 111 km."""
    distance = Coordinate(40.0, -110.0).distance_to(Coordinate(41.0, -110.0))
    assert 110000 < distance < 112000
    assert Coordinate(40.0, -110.0).distance_to(Coordinate(40.0, -110.0)) == 0


def test_coordinate_format():
    assert Coordinate(40.6782, -73.9442).format() == "40.68,-73.94"
    assert Coordinate(40.6782, -73.9442).format(3) == "40.678,-73.944"


def test_location_fix_age():
    fix = LocationFix(Coordinate(0, 0), timestamp=1000.0)
    assert fix.age(now=1300.0) == 300.0


def test_query_provenance():
    assert WeatherQuery(coordinate=Coordinate(1, 2)).provenance is Provenance.LOCATION
    assert WeatherQuery(city_name="Paris").provenance is Provenance.CITY
    assert WeatherQuery(city_name="Paris").describe() == "Paris"
