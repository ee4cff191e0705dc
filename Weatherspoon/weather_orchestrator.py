"""Coordinates location, cache and fetcher, and publishes snapshots to the UI."""
import asyncio
import enum
import logging
from typing import Callable, List, Optional
import weather_symbols
from configuration import Configuration
from freshness_cache import FreshnessCache
from location_resolver import LocationError, LocationResolver
from weather_data import Coordinate, WeatherSnapshot
from weather_fetcher import WeatherFetcher
from weather_provider import FetchError


class OrchestratorState(enum.Enum):
    IDLE = "idle"
    RESOLVING_LOCATION = "resolving_location"
    FETCHING = "fetching"
    READY = "ready"
    ERROR = "error"


class WeatherOrchestrator:
    """
    Decides whether to use location or city, whether to serve from cache or
    fetch, and when to refresh.

    All methods must be called on the event loop thread. UI collaborators
    subscribe through `on_snapshot_ready` and `on_snapshot_error`, and can
    poll `status_title()` / `detail_lines()` at any time.
    """

    def __init__(
        self,
        config: Configuration,
        resolver: LocationResolver,
        fetcher: WeatherFetcher,
        cache: Optional[FreshnessCache] = None,
        on_snapshot_ready: Optional[Callable[[WeatherSnapshot], None]] = None,
        on_snapshot_error: Optional[Callable[[FetchError], None]] = None,
    ):
        self.config = config
        self.resolver = resolver
        self.fetcher = fetcher
        self.cache: FreshnessCache = cache if cache is not None else FreshnessCache()
        self.on_snapshot_ready = on_snapshot_ready
        self.on_snapshot_error = on_snapshot_error

        self.state = OrchestratorState.IDLE
        self.coordinate: Optional[Coordinate] = None
        # Last good snapshot, kept for display after a failed refresh.
        self.snapshot: Optional[WeatherSnapshot] = None
        self.last_error: Optional[FetchError] = None

        self._timer: Optional[asyncio.TimerHandle] = None
        self._timer_interval: Optional[float] = None
        self._started = False

    def start(self) -> Optional[asyncio.Task]:
        """Hook up the resolver, kick off the first fetch and the periodic timer."""
        self.resolver.on_location_update = self._handle_location_update
        self.resolver.on_location_error = self._handle_location_error
        self._started = True

        if self.config.use_location:
            if self.resolver.current_location is not None:
                self.coordinate = self.resolver.current_location
            self.resolver.start_location_tracking()
        else:
            self.resolver.stop_location_tracking()

        task = self.fetch_weather()
        self._start_timer()
        logging.info(
            f"Weather orchestrator started (city={self.config.city_name!r}, "
            f"interval={self.config.update_interval}s, use_location={self.config.use_location})"
        )
        return task

    def stop(self) -> None:
        """Cancel the timer, the fetch in flight and the resolver. Safe to call twice."""
        self._started = False
        self.resolver.on_location_update = None
        self.resolver.on_location_error = None
        self._cancel_timer()
        self.fetcher.cancel()
        self.resolver.cleanup()
        self.state = OrchestratorState.IDLE

    def fetch_weather(self) -> Optional[asyncio.Task]:
        """
        Serve the cached snapshot if still fresh, otherwise start a fetch.

        Returns:
            The fetch task, or None when the cache answered.
        """
        cached = self.cache.get()
        if cached is not None:
            logging.debug("Using cached weather data")
            self._publish(cached)
            return None

        coordinate = self.coordinate if self.config.use_location else None
        city_name = self.config.city_name
        logging.info(
            "Fetching weather for "
            + (f"location {coordinate.format()}" if coordinate is not None else f"city {city_name!r}")
        )
        self.state = OrchestratorState.FETCHING
        return self.fetcher.fetch_weather(coordinate, city_name, self._handle_success, self._handle_error)

    def refresh(self) -> Optional[asyncio.Task]:
        """
        Manual refresh, also the retry action after an error.

        In location mode without a coordinate, the fetch waits for the
        resolver: a fix fetches by coordinate, a failure falls back to city.
        """
        self.cache.invalidate()
        if self.config.use_location and self.coordinate is None:
            self.fetcher.cancel()
            self.state = OrchestratorState.RESOLVING_LOCATION
            self.resolver.request_location()
            return None
        return self.fetch_weather()

    def set_city_name(self, city_name: str) -> Optional[asyncio.Task]:
        self.config.city_name = city_name
        self.cache.invalidate()
        return self.fetch_weather()

    def set_update_interval(self, seconds: int) -> Optional[asyncio.Task]:
        """
        Raises:
            ValueError: If seconds is not one of the offered intervals
        """
        changed = int(seconds) != self.config.update_interval
        self.config.update_interval = seconds
        self.cache.invalidate()
        if changed and self._started:
            self._start_timer()
        return self.fetch_weather()

    def set_use_location(self, enabled: bool) -> Optional[asyncio.Task]:
        self.config.use_location = enabled
        self.cache.invalidate()
        if enabled:
            self.resolver.start_location_tracking()
        else:
            self.resolver.stop_location_tracking()
            self.resolver.forget_location()
            self.coordinate = None
        return self.fetch_weather()

    def toggle_use_location(self) -> Optional[asyncio.Task]:
        return self.set_use_location(not self.config.use_location)

    # Consumer-facing views

    def status_title(self) -> str:
        if self.state is OrchestratorState.ERROR:
            return weather_symbols.ERROR_TITLE
        if self.state in (OrchestratorState.RESOLVING_LOCATION, OrchestratorState.FETCHING):
            return weather_symbols.UPDATING_TITLE
        if self.snapshot is None:
            return weather_symbols.LOADING_TITLE
        return weather_symbols.status_title(self.snapshot)

    def status_tooltip(self) -> Optional[str]:
        if self.snapshot is None:
            return None
        return weather_symbols.status_tooltip(self.snapshot)

    def detail_lines(self) -> List[str]:
        if self.state is OrchestratorState.ERROR and self.last_error is not None:
            return [f"Error: {self.last_error}", "Retry"]
        if self.snapshot is None:
            return ["Updating weather..."]
        return weather_symbols.detail_lines(self.snapshot)

    # Completions and resolver callbacks

    def _publish(self, snapshot: WeatherSnapshot) -> None:
        self.snapshot = snapshot
        self.last_error = None
        self.state = OrchestratorState.READY
        if self.on_snapshot_ready is not None:
            try:
                self.on_snapshot_ready(snapshot)
            except Exception:
                logging.exception("Snapshot consumer failed")

    def _handle_success(self, snapshot: WeatherSnapshot) -> None:
        self.cache.set(snapshot)
        logging.info(f"Weather updated: {snapshot.area_name} {snapshot.temperature}°C, {snapshot.description}")
        self._publish(snapshot)

    def _handle_error(self, error: FetchError) -> None:
        logging.error(f"Weather fetch failed: {error}")
        self.last_error = error
        self.state = OrchestratorState.ERROR
        if self.on_snapshot_error is not None:
            try:
                self.on_snapshot_error(error)
            except Exception:
                logging.exception("Error consumer failed")

    def _handle_location_update(self, coordinate: Coordinate) -> None:
        if not self._started:
            return
        self.coordinate = coordinate
        self.cache.invalidate()
        if self.config.use_location:
            self.fetch_weather()

    def _handle_location_error(self, error: LocationError) -> None:
        if not self._started:
            return
        logging.warning(f"Location unavailable ({error}), falling back to city {self.config.city_name!r}")
        self.fetch_weather()

    # Periodic timer

    def _start_timer(self) -> None:
        self._cancel_timer()
        self._timer_interval = float(self.config.update_interval)
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._timer_interval, self._on_timer)
        logging.debug(f"Periodic update every {self._timer_interval:.0f}s")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._timer_interval, self._on_timer)
        try:
            self.fetch_weather()
        except Exception:
            logging.exception("Periodic weather update failed")
