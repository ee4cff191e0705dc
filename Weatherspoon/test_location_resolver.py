"""Tests for the location resolver state machine."""
import asyncio
import time
import pytest
from location_resolver import LocationError, LocationErrorKind, LocationResolver
from location_service import AuthorizationStatus, FakeLocationService, StaticLocationService
from weather_data import Coordinate

BROOKLYN = Coordinate(40.6782, -73.9442)
NEARBY = Coordinate(40.6872, -73.9442)  # ~1 km north
MANHATTAN_NORTH = Coordinate(40.8000, -73.9442)  # ~13 km north

TICK = 0.02


class Recorder:
    def __init__(self, resolver):
        self.updates = []
        self.errors = []
        resolver.on_location_update = self.updates.append
        resolver.on_location_error = self.errors.append


@pytest.fixture
def service():
    return FakeLocationService()


@pytest.fixture
def resolver(service):
    return LocationResolver(service, tick_interval_seconds=TICK, max_retries=3)


@pytest.mark.asyncio
async def test_request_location_asks_service(service, resolver):
    resolver.request_location()

    assert service.authorization_requests == 1
    assert service.location_requests == 1
    assert resolver.pending_request is not None
    resolver.cleanup()


@pytest.mark.asyncio
async def test_fix_completes_request(service, resolver):
    recorder = Recorder(resolver)
    resolver.request_location()

    service.deliver(BROOKLYN)
    await asyncio.sleep(TICK * 5)

    assert recorder.updates == [BROOKLYN]
    assert recorder.errors == []
    assert resolver.pending_request is None
    assert resolver.current_location == BROOKLYN
    assert service.location_requests == 1


@pytest.mark.asyncio
async def test_request_times_out_after_max_retries(service, resolver):
    recorder = Recorder(resolver)
    resolver.request_location()

    await asyncio.sleep(TICK * 3 + TICK * 2)

    assert len(recorder.errors) == 1
    assert isinstance(recorder.errors[0], LocationError)
    assert recorder.errors[0].kind is LocationErrorKind.TIMEOUT
    # initial request plus one re-request per tick before giving up
    assert service.location_requests == 3
    assert resolver.pending_request is None

    await asyncio.sleep(TICK * 4)
    assert len(recorder.errors) == 1


@pytest.mark.asyncio
async def test_new_request_supersedes_pending_one(service, resolver):
    recorder = Recorder(resolver)
    resolver.request_location()
    first = resolver.pending_request
    resolver.request_location()

    assert resolver.pending_request is not first
    await asyncio.sleep(TICK * 6)

    assert len(recorder.errors) == 1


@pytest.mark.asyncio
async def test_tracking_is_idempotent(service, resolver):
    resolver.start_location_tracking()
    resolver.start_location_tracking()
    assert service.start_calls == 1
    assert resolver.is_tracking is True

    resolver.stop_location_tracking()
    resolver.stop_location_tracking()
    assert service.stop_calls == 1
    assert resolver.is_tracking is False


@pytest.mark.asyncio
async def test_stale_fix_is_dropped_and_rerequested(service, resolver):
    recorder = Recorder(resolver)

    service.deliver(BROOKLYN, timestamp=time.time() - 400)

    assert recorder.updates == []
    assert resolver.current_location is None
    assert service.location_requests == 1


@pytest.mark.asyncio
async def test_stale_fix_while_tracking_is_dropped_silently(service, resolver):
    recorder = Recorder(resolver)
    resolver.start_location_tracking()

    service.deliver(BROOKLYN, timestamp=time.time() - 400)

    assert recorder.updates == []
    assert service.location_requests == 0


@pytest.mark.asyncio
async def test_tracking_filters_insignificant_moves(service, resolver):
    recorder = Recorder(resolver)
    resolver.start_location_tracking()

    service.deliver(BROOKLYN)
    service.deliver(NEARBY)
    service.deliver(MANHATTAN_NORTH)

    assert recorder.updates == [BROOKLYN, MANHATTAN_NORTH]
    assert resolver.current_location == MANHATTAN_NORTH


@pytest.mark.asyncio
async def test_pending_request_accepts_nearby_fix(service, resolver):
    recorder = Recorder(resolver)
    service.deliver(BROOKLYN)

    resolver.request_location()
    service.deliver(NEARBY)

    assert recorder.updates == [BROOKLYN, NEARBY]
    assert resolver.pending_request is None


@pytest.mark.asyncio
async def test_access_denied_stops_tracking(service, resolver):
    recorder = Recorder(resolver)
    resolver.start_location_tracking()

    service.change_authorization(AuthorizationStatus.DENIED)

    assert resolver.is_tracking is False
    assert service.updating is False
    assert len(recorder.errors) == 1
    assert recorder.errors[0].kind is LocationErrorKind.ACCESS_DENIED
    assert resolver.is_authorized is False


@pytest.mark.asyncio
async def test_authorization_granted_while_tracking_restarts_updates():
    service = FakeLocationService(authorization_status=AuthorizationStatus.NOT_DETERMINED)
    resolver = LocationResolver(service, tick_interval_seconds=TICK)
    resolver.start_location_tracking()

    service.change_authorization(AuthorizationStatus.AUTHORIZED)

    assert service.start_calls == 2
    assert service.location_requests == 0
    assert resolver.is_authorized is True


@pytest.mark.asyncio
async def test_authorization_granted_without_tracking_requests_once():
    service = FakeLocationService(authorization_status=AuthorizationStatus.NOT_DETERMINED)
    LocationResolver(service, tick_interval_seconds=TICK)

    service.change_authorization(AuthorizationStatus.AUTHORIZED)

    assert service.location_requests == 1


@pytest.mark.asyncio
async def test_service_failure_is_reported(service, resolver):
    recorder = Recorder(resolver)

    service.fail(RuntimeError("kCLErrorLocationUnknown"))

    assert len(recorder.errors) == 1
    assert recorder.errors[0].kind is LocationErrorKind.SERVICE_ERROR
    assert "kCLErrorLocationUnknown" in str(recorder.errors[0])


@pytest.mark.asyncio
async def test_cleanup_is_safe_twice_and_cancels_timeout(service, resolver):
    recorder = Recorder(resolver)
    resolver.start_location_tracking()
    resolver.request_location()

    resolver.cleanup()
    resolver.cleanup()
    await asyncio.sleep(TICK * 5)

    assert recorder.errors == []
    assert resolver.pending_request is None
    assert service.stop_calls == 1


@pytest.mark.asyncio
async def test_static_service_delivers_on_next_loop_iteration():
    resolver = LocationResolver(StaticLocationService(BROOKLYN), tick_interval_seconds=TICK)
    recorder = Recorder(resolver)

    resolver.request_location()
    assert recorder.updates == []
    await asyncio.sleep(0.01)

    assert recorder.updates == [BROOKLYN]
    assert resolver.pending_request is None
