"""Location service abstraction - allows swapping the platform's source of position fixes."""
import asyncio
import enum
import logging
import requests
from abc import ABC, abstractmethod
from typing import List, Optional, TYPE_CHECKING
from weather_data import Coordinate, LocationFix

if TYPE_CHECKING:
    from location_resolver import LocationResolver


class AuthorizationStatus(enum.Enum):
    NOT_DETERMINED = "not_determined"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    RESTRICTED = "restricted"


class LocationServiceBase(ABC):
    """
    Source of position fixes.

    Results are reported to `delegate` (a LocationResolver) on the event
    loop thread through `handle_locations`, `handle_failure` and
    `handle_authorization_change`.
    """

    def __init__(self):
        self.delegate: Optional["LocationResolver"] = None
        self.authorization_status = AuthorizationStatus.NOT_DETERMINED

    @abstractmethod
    def request_authorization(self) -> None:
        """Ask for permission to read the location. Repeated calls are harmless."""
        pass

    @abstractmethod
    def request_location(self) -> None:
        """Deliver a single fix (or a failure) some time later."""
        pass

    @abstractmethod
    def start_updates(self) -> None:
        """Begin delivering fixes as the position changes."""
        pass

    @abstractmethod
    def stop_updates(self) -> None:
        pass

    def _set_authorization(self, status: AuthorizationStatus) -> None:
        changed = status is not self.authorization_status
        self.authorization_status = status
        if changed and self.delegate is not None:
            self.delegate.handle_authorization_change(status)

    def _deliver(self, fixes: List[LocationFix]) -> None:
        if self.delegate is not None:
            self.delegate.handle_locations(fixes)

    def _fail(self, error: Exception) -> None:
        if self.delegate is not None:
            self.delegate.handle_failure(error)


class FakeLocationService(LocationServiceBase):
    """
    In-memory service driven by hand, for tests and for running without any
    real position source. Records every call it receives.
    """

    def __init__(self, authorization_status: AuthorizationStatus = AuthorizationStatus.AUTHORIZED):
        super().__init__()
        self.authorization_status = authorization_status
        self.authorization_requests = 0
        self.location_requests = 0
        self.updating = False
        self.start_calls = 0
        self.stop_calls = 0

    def request_authorization(self) -> None:
        self.authorization_requests += 1

    def request_location(self) -> None:
        self.location_requests += 1

    def start_updates(self) -> None:
        self.start_calls += 1
        self.updating = True

    def stop_updates(self) -> None:
        self.stop_calls += 1
        self.updating = False

    def deliver(self, coordinate: Coordinate, timestamp: Optional[float] = None) -> None:
        """Simulate the platform reporting a fix."""
        if timestamp is None:
            fix = LocationFix(coordinate)
        else:
            fix = LocationFix(coordinate, timestamp)
        self._deliver([fix])

    def fail(self, error: Exception) -> None:
        self._fail(error)

    def change_authorization(self, status: AuthorizationStatus) -> None:
        self._set_authorization(status)


class StaticLocationService(LocationServiceBase):
    """Reports a fixed coordinate, e.g. from WEATHER_LAT/WEATHER_LON."""

    def __init__(self, coordinate: Coordinate):
        super().__init__()
        self.coordinate = coordinate
        self.authorization_status = AuthorizationStatus.AUTHORIZED
        self._updating = False

    def request_authorization(self) -> None:
        pass

    def _schedule_fix(self) -> None:
        asyncio.get_running_loop().call_soon(self._deliver, [LocationFix(self.coordinate)])

    def request_location(self) -> None:
        self._schedule_fix()

    def start_updates(self) -> None:
        if not self._updating:
            self._updating = True
            self._schedule_fix()

    def stop_updates(self) -> None:
        self._updating = False


class IPGeolocationService(LocationServiceBase):
    """
    Approximate position from the public IP address via ipapi.co.

    Lookups are blocking HTTP calls and run in a worker thread; results are
    handed back on the event loop. While updating, the lookup is repeated
    every `poll_interval_seconds`.
    """

    LOOKUP_URL = "https://ipapi.co/json/"

    def __init__(self, timeout: float = 10.0, poll_interval_seconds: float = 900.0):
        super().__init__()
        self.timeout = timeout
        self.poll_interval_seconds = poll_interval_seconds
        self.authorization_status = AuthorizationStatus.AUTHORIZED
        self._poll_handle: Optional[asyncio.TimerHandle] = None

    def request_authorization(self) -> None:
        pass

    def lookup(self) -> Coordinate:
        """
        Resolve the current public IP to a coordinate (blocking).

        Raises:
            requests.RequestException: On network failure
            ValueError: If the response has no usable latitude/longitude
        """
        logging.info(f"Making IP geolocation request: {self.LOOKUP_URL}")
        response = requests.get(
            self.LOOKUP_URL,
            headers={"Accept": "application/json", "User-Agent": "weatherspoon"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict) or data.get("error"):
            raise ValueError(f"IP geolocation failed: {data}")
        try:
            return Coordinate(float(data["latitude"]), float(data["longitude"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"IP geolocation response missing coordinates: {e}") from e

    def _on_lookup_done(self, future: "asyncio.Future") -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logging.warning(f"IP geolocation lookup failed: {error}")
            self._fail(error)
            return
        self._deliver([LocationFix(future.result())])

    def request_location(self) -> None:
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self.lookup)
        future.add_done_callback(self._on_lookup_done)

    def _poll(self) -> None:
        self.request_location()
        loop = asyncio.get_running_loop()
        self._poll_handle = loop.call_later(self.poll_interval_seconds, self._poll)

    def start_updates(self) -> None:
        if self._poll_handle is None:
            self._poll()

    def stop_updates(self) -> None:
        if self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None
