"""Integration tests - can optionally hit real API (disabled by default)."""
import os
import pytest
from wttr_provider import WttrProvider
from weather_fetcher import WeatherFetcher
from weather_data import Coordinate, Provenance, WeatherQuery

live = pytest.mark.skipif(
    not os.environ.get("WEATHER_LIVE_TESTS"),
    reason="WEATHER_LIVE_TESTS not set - skipping integration test"
)


@live
def test_wttr_integration_by_city():
    """
    Integration test that hits the real wttr.in service.

    Set WEATHER_LIVE_TESTS=1 to run this test.
    """
    provider = WttrProvider()

    weather = provider.get_current(WeatherQuery(city_name="Brooklyn, NYC"))

    assert weather.area_name
    assert 0 <= weather.humidity <= 100
    assert len(weather.forecasts) <= 3
    assert weather.provenance is Provenance.CITY


@live
@pytest.mark.asyncio
async def test_fetcher_integration_by_coordinate():
    """Integration test for WeatherFetcher with the real service."""
    fetcher = WeatherFetcher(WttrProvider())

    weather = await fetcher.fetch(coordinate=Coordinate(51.51, -0.13), city_name="London")

    assert weather.temperature is not None
    assert weather.description
