"""User settings - a small key-value store plus typed accessors with defaults."""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

CITY_NAME_KEY = "WeatherCityName"
UPDATE_INTERVAL_KEY = "WeatherUpdateInterval"
USE_LOCATION_KEY = "WeatherUseLocation"

DEFAULT_CITY_NAME = "Brooklyn, NYC"
DEFAULT_UPDATE_INTERVAL = 3600
DEFAULT_USE_LOCATION = True

AVAILABLE_INTERVALS: List[Tuple[str, int]] = [
    ("30 minutes", 1800),
    ("1 hour", 3600),
    ("2 hours", 7200),
    ("4 hours", 14400),
]


class SettingsStore(ABC):
    """Persistent key-value storage for settings."""

    @abstractmethod
    def contains(self, key: str) -> bool:
        pass

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass


class InMemorySettingsStore(SettingsStore):
    def __init__(self, values: Dict[str, Any] = None):
        self._values = dict(values or {})

    def contains(self, key: str) -> bool:
        return key in self._values

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class JsonFileSettingsStore(SettingsStore):
    """
    Settings kept in a single JSON object file.

    The file is loaded once and rewritten in full on every `set`, going
    through a temp file so a crash never leaves it half written.
    """

    def __init__(self, path: str):
        self.path = os.path.expanduser(path)
        self._values = self._load()

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logging.warning(f"Could not read settings from {self.path}: {e}, using defaults")
            return {}
        if not isinstance(data, dict):
            logging.warning(f"Settings file {self.path} is not a JSON object, using defaults")
            return {}
        return data

    def contains(self, key: str) -> bool:
        return key in self._values

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".settings-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._values, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError:
            os.unlink(tmp_path)
            raise
        logging.debug(f"Saved setting {key}={value!r} to {self.path}")


class Configuration:
    """Typed view over a SettingsStore with the application's defaults."""

    AVAILABLE_INTERVALS = AVAILABLE_INTERVALS

    def __init__(self, store: SettingsStore = None):
        self.store = store if store is not None else InMemorySettingsStore()

    @property
    def city_name(self) -> str:
        value = self.store.get(CITY_NAME_KEY, DEFAULT_CITY_NAME)
        return value if isinstance(value, str) else DEFAULT_CITY_NAME

    @city_name.setter
    def city_name(self, value: str) -> None:
        self.store.set(CITY_NAME_KEY, value)

    @property
    def update_interval(self) -> int:
        """Seconds between periodic refreshes."""
        if not self.store.contains(UPDATE_INTERVAL_KEY):
            return DEFAULT_UPDATE_INTERVAL
        value = self.store.get(UPDATE_INTERVAL_KEY)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) not in self.interval_choices():
            logging.warning(f"Ignoring invalid stored update interval {value!r}")
            return DEFAULT_UPDATE_INTERVAL
        return int(value)

    @update_interval.setter
    def update_interval(self, value: int) -> None:
        if int(value) not in self.interval_choices():
            raise ValueError(
                f"Update interval must be one of {self.interval_choices()}, got {value}"
            )
        self.store.set(UPDATE_INTERVAL_KEY, int(value))

    @property
    def use_location(self) -> bool:
        if not self.store.contains(USE_LOCATION_KEY):
            return DEFAULT_USE_LOCATION
        return bool(self.store.get(USE_LOCATION_KEY))

    @use_location.setter
    def use_location(self, value: bool) -> None:
        self.store.set(USE_LOCATION_KEY, bool(value))

    @classmethod
    def interval_choices(cls) -> List[int]:
        return [seconds for _, seconds in cls.AVAILABLE_INTERVALS]
