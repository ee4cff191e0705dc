"""Weather fetcher with retry, supersession and city fallback."""
import asyncio
import logging
from typing import Callable, Optional
from weather_provider import WeatherProviderBase, FetchError, FetchErrorKind
from weather_data import Coordinate, WeatherQuery, WeatherSnapshot

SuccessCallback = Callable[[WeatherSnapshot], None]
ErrorCallback = Callable[[FetchError], None]


class WeatherFetcher:
    """
    Wraps a blocking weather provider for use from an asyncio event loop.

    Each provider call runs in a worker thread. Timeouts and 5xx responses
    are retried after a fixed delay; anything else fails at once. Starting
    a new fetch through `fetch_weather` cancels the one in flight, and a
    cancelled fetch never reports back.
    """

    def __init__(
        self,
        provider: WeatherProviderBase,
        max_retries: int = 3,
        retry_delay_seconds: float = 2.0,
        total_timeout_seconds: float = 60.0,
        fallback_to_city: bool = True,
    ):
        """
        Initialize weather fetcher.

        Args:
            provider: Weather provider to use
            max_retries: Retries after the first attempt on transient errors
            retry_delay_seconds: Fixed delay between attempts
            total_timeout_seconds: Upper bound on a single attempt, including
                connection setup and body download
            fallback_to_city: Retry a failed coordinate fetch by city name
        """
        self.provider = provider
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.total_timeout_seconds = total_timeout_seconds
        self.fallback_to_city = fallback_to_city

        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @staticmethod
    def _build_query(coordinate: Optional[Coordinate], city_name: Optional[str]) -> WeatherQuery:
        if coordinate is not None:
            return WeatherQuery(coordinate=coordinate)
        if city_name is not None and city_name.strip():
            return WeatherQuery(city_name=city_name)
        raise FetchError(FetchErrorKind.NO_LOCATION_OR_CITY)

    async def _attempt(self, query: WeatherQuery) -> WeatherSnapshot:
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self.provider.get_current, query)
        try:
            return await asyncio.wait_for(future, self.total_timeout_seconds)
        except asyncio.TimeoutError as e:
            logging.warning(f"Weather request exceeded {self.total_timeout_seconds}s total timeout")
            raise FetchError(FetchErrorKind.TIMEOUT) from e

    async def _fetch_with_retry(self, query: WeatherQuery) -> WeatherSnapshot:
        attempt = 0
        while True:
            try:
                logging.debug(f"Weather fetch attempt {attempt + 1}/{self.max_retries + 1} for {query.describe()}")
                return await self._attempt(query)
            except FetchError as e:
                if not e.retryable:
                    logging.error(f"Non-retryable error ({e.kind.value}), stopping retries")
                    raise
                if attempt >= self.max_retries:
                    logging.error(f"Failed to fetch weather after {attempt + 1} attempts: {e}")
                    raise
                attempt += 1
                logging.warning(f"{e}, retry #{attempt} in {self.retry_delay_seconds}s")
                await asyncio.sleep(self.retry_delay_seconds)

    async def fetch(
        self,
        coordinate: Optional[Coordinate] = None,
        city_name: Optional[str] = None,
    ) -> WeatherSnapshot:
        """
        Fetch weather for a coordinate, or a city name when no coordinate is given.

        Returns:
            WeatherSnapshot: Provenance marks which of the two was used

        Raises:
            FetchError: Once retries (and the city fallback) are exhausted
        """
        query = self._build_query(coordinate, city_name)
        try:
            return await self._fetch_with_retry(query)
        except FetchError as e:
            can_fall_back = (
                self.fallback_to_city
                and query.coordinate is not None
                and city_name is not None
                and city_name.strip()
            )
            if not can_fall_back:
                raise
            logging.warning(f"Location-based fetch failed ({e}), falling back to city '{city_name}'")
            return await self._fetch_with_retry(WeatherQuery(city_name=city_name))

    def fetch_weather(
        self,
        coordinate: Optional[Coordinate],
        city_name: Optional[str],
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> asyncio.Task:
        """
        Start a fetch on the running loop, superseding any fetch in flight.

        Exactly one of the callbacks runs, on the loop thread, unless the
        fetch is superseded or cancelled first, in which case neither does.
        """
        self.cancel()
        self._generation += 1
        generation = self._generation

        async def run() -> None:
            try:
                snapshot = await self.fetch(coordinate, city_name)
            except FetchError as e:
                if generation == self._generation:
                    on_error(e)
                return
            except Exception as e:
                logging.exception(f"Unexpected error while fetching weather: {e}")
                if generation == self._generation:
                    on_error(FetchError(FetchErrorKind.NETWORK_ERROR, str(e)))
                return
            if generation == self._generation:
                on_success(snapshot)
            else:
                logging.debug("Discarding result of superseded weather request")

        self._task = asyncio.get_running_loop().create_task(run())
        return self._task

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        """Cancel the fetch in flight, if any; its callbacks will not run."""
        if self.in_flight:
            logging.info("Cancelling in-flight weather request")
            self._task.cancel()
        self._task = None
        self._generation += 1
