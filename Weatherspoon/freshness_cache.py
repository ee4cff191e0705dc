"""Time-boxed single-value cache for the most recent weather snapshot."""
import logging
import threading
import time
from typing import Callable, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 300.0


class FreshnessCache(Generic[T]):
    """
    Holds one value and the instant it was stored.

    The value is served while younger than the TTL. Nothing is evicted on
    a timer: an expired entry just stops being returned until it is
    overwritten or invalidated. Value and timestamp are swapped together
    under a lock so readers never see a mismatched pair.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entry: Optional[Tuple[T, float]] = None

    def get(self) -> Optional[T]:
        with self._lock:
            entry = self._entry
        if entry is None:
            return None
        value, stored_at = entry
        age = self._clock() - stored_at
        if age < self.ttl_seconds:
            logging.debug(f"Cache hit (age: {age:.1f}s, TTL: {self.ttl_seconds}s)")
            return value
        logging.debug(f"Cache expired (age: {age:.1f}s >= TTL: {self.ttl_seconds}s)")
        return None

    def set(self, value: T) -> None:
        entry = (value, self._clock())
        with self._lock:
            self._entry = entry

    def invalidate(self) -> None:
        with self._lock:
            self._entry = None

    def age(self) -> Optional[float]:
        """Seconds since the stored value was set, or None if empty."""
        with self._lock:
            entry = self._entry
        if entry is None:
            return None
        return self._clock() - entry[1]
