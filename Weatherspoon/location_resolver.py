"""Turns a location service's raw fixes into at most one authoritative coordinate per request."""
import asyncio
import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional
from location_service import AuthorizationStatus, LocationServiceBase
from weather_data import Coordinate, LocationFix

TICK_INTERVAL_SECONDS = 10.0
MAX_LOCATION_RETRIES = 3
SIGNIFICANT_DISTANCE_METERS = 5000.0
MAX_FIX_AGE_SECONDS = 300.0


class LocationErrorKind(enum.Enum):
    TIMEOUT = "timeout"
    ACCESS_DENIED = "access_denied"
    SERVICE_ERROR = "service_error"


class LocationError(Exception):
    """Raised (or reported) when no usable location can be obtained."""

    def __init__(self, kind: LocationErrorKind, message: Optional[str] = None):
        self.kind = kind
        if message is None:
            message = {
                LocationErrorKind.TIMEOUT: "Location timeout",
                LocationErrorKind.ACCESS_DENIED: "Location access denied",
                LocationErrorKind.SERVICE_ERROR: "Location service error",
            }[kind]
        super().__init__(message)


@dataclass
class LocationRequest:
    """State of one outstanding one-shot request."""
    max_retries: int
    retry_count: int = 0
    timer: Optional[asyncio.TimerHandle] = None

    def cancel(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class LocationResolver:
    """
    Location state machine on top of a LocationServiceBase.

    `request_location` asks for one fix and re-asks every tick until one
    arrives; after `max_retries` ticks it gives up with a timeout error.
    While tracking, fixes are only passed on when recent and far enough
    from the last accepted one. Must be driven from the event loop thread.
    """

    def __init__(
        self,
        service: LocationServiceBase,
        tick_interval_seconds: float = TICK_INTERVAL_SECONDS,
        max_retries: int = MAX_LOCATION_RETRIES,
        significant_distance_meters: float = SIGNIFICANT_DISTANCE_METERS,
        max_fix_age_seconds: float = MAX_FIX_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.service = service
        self.service.delegate = self
        self.tick_interval_seconds = tick_interval_seconds
        self.max_retries = max_retries
        self.significant_distance_meters = significant_distance_meters
        self.max_fix_age_seconds = max_fix_age_seconds
        self._clock = clock

        self.on_location_update: Optional[Callable[[Coordinate], None]] = None
        self.on_location_error: Optional[Callable[[LocationError], None]] = None

        self._lock = threading.Lock()
        self._fix: Optional[LocationFix] = None
        self._tracking = False
        self._request: Optional[LocationRequest] = None

    @property
    def current_location(self) -> Optional[Coordinate]:
        with self._lock:
            return self._fix.coordinate if self._fix is not None else None

    @property
    def is_authorized(self) -> bool:
        return self.service.authorization_status is AuthorizationStatus.AUTHORIZED

    @property
    def is_tracking(self) -> bool:
        return self._tracking

    @property
    def pending_request(self) -> Optional[LocationRequest]:
        return self._request

    def request_location(self) -> None:
        """Ask for a single fix, superseding any request already pending."""
        self.service.request_authorization()
        self._cancel_request()

        request = LocationRequest(max_retries=self.max_retries)
        self._request = request
        loop = asyncio.get_running_loop()
        request.timer = loop.call_later(self.tick_interval_seconds, self._tick, request)
        logging.info("Requesting location")
        self.service.request_location()

    def _tick(self, request: LocationRequest) -> None:
        if request is not self._request:
            return
        request.retry_count += 1
        if request.retry_count >= request.max_retries:
            logging.warning(f"No location after {request.retry_count} attempts, giving up")
            self._cancel_request()
            self._emit_error(LocationError(LocationErrorKind.TIMEOUT))
            return

        logging.info(f"Retrying location request ({request.retry_count}/{request.max_retries})")
        loop = asyncio.get_running_loop()
        request.timer = loop.call_later(self.tick_interval_seconds, self._tick, request)
        self.service.request_location()

    def _cancel_request(self) -> None:
        if self._request is not None:
            self._request.cancel()
            self._request = None

    def start_location_tracking(self) -> None:
        self.service.request_authorization()
        if self._tracking:
            return
        self._tracking = True
        logging.info("Starting location tracking")
        self.service.start_updates()

    def stop_location_tracking(self) -> None:
        if not self._tracking:
            return
        self._tracking = False
        logging.info("Stopping location tracking")
        self.service.stop_updates()
        self._cancel_request()

    def cleanup(self) -> None:
        self.stop_location_tracking()
        self._cancel_request()

    def forget_location(self) -> None:
        with self._lock:
            self._fix = None

    def _emit_error(self, error: LocationError) -> None:
        if self.on_location_error is not None:
            self.on_location_error(error)

    # Delegate callbacks from the location service

    def handle_locations(self, fixes: List[LocationFix]) -> None:
        if not fixes:
            return
        fix = fixes[-1]  # most recent last

        age = fix.age(self._clock())
        if age >= self.max_fix_age_seconds:
            logging.debug(f"Ignoring stale location fix ({age:.0f}s old)")
            if not self._tracking:
                self.service.request_location()
            return

        with self._lock:
            previous = self._fix
        # A pending one-shot request takes whatever fresh fix arrives.
        if self._request is None and previous is not None:
            distance = fix.coordinate.distance_to(previous.coordinate)
            if distance < self.significant_distance_meters:
                logging.debug(f"Ignoring location update, moved only {distance:.0f}m")
                return

        with self._lock:
            self._fix = fix
        self._cancel_request()
        logging.info(f"Location updated: {fix.coordinate.format(4)}")
        if self.on_location_update is not None:
            self.on_location_update(fix.coordinate)

    def handle_failure(self, error: Exception) -> None:
        logging.warning(f"Location service error: {error}")
        if not isinstance(error, LocationError):
            error = LocationError(LocationErrorKind.SERVICE_ERROR, str(error))
        self._emit_error(error)

    def handle_authorization_change(self, status: AuthorizationStatus) -> None:
        logging.info(f"Location authorization changed: {status.value}")
        if status is AuthorizationStatus.AUTHORIZED:
            if self._tracking:
                self.service.start_updates()
            else:
                self.service.request_location()
        elif status is AuthorizationStatus.NOT_DETERMINED:
            return
        else:
            self.stop_location_tracking()
            self._cancel_request()
            self._emit_error(LocationError(LocationErrorKind.ACCESS_DENIED))
