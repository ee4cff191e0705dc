"""Headless weather status runner - prints what the menu bar would show."""
import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from dotenv import load_dotenv

from configuration import Configuration, JsonFileSettingsStore
from freshness_cache import FreshnessCache
from location_resolver import LocationResolver
from location_service import (
    FakeLocationService,
    IPGeolocationService,
    LocationServiceBase,
    StaticLocationService,
)
from weather_data import Coordinate, WeatherSnapshot
from weather_fetcher import WeatherFetcher
from weather_orchestrator import WeatherOrchestrator
from weather_provider import FetchError
from wttr_provider import DEFAULT_BASE_URL, WttrProvider, web_url

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "weatherspoon.log")
DEFAULT_SETTINGS_FILE = "~/.config/weatherspoon/settings.json"


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Weatherspoon weather status")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    parser.add_argument("--city", help="Set and save the city used when location is unavailable")
    parser.add_argument("--interval", type=int, choices=Configuration.interval_choices(),
                        help="Set and save the update interval in seconds")
    parser.add_argument("--no-location", action="store_true", help="Set and save use-location off")
    parser.add_argument("--location-source", choices=["auto", "static", "ip", "none"], default="auto")
    parser.add_argument("--cache-ttl", type=float, default=300.0)
    parser.add_argument("--max-retries", type=int, default=3)
    parser.add_argument("--retry-delay", type=float, default=2.0)
    parser.add_argument("--timeout", type=float, default=30.0, help="HTTP timeout in seconds")
    parser.add_argument("--total-timeout", type=float, default=60.0)
    parser.add_argument("--once", action="store_true", help="Print one result and exit")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: str, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file)
        ]
    )


def load_static_coordinate() -> Optional[Coordinate]:
    lat = os.getenv("WEATHER_LAT")
    lon = os.getenv("WEATHER_LON")
    if not lat or not lon:
        return None
    try:
        return Coordinate(float(lat), float(lon))
    except ValueError as exc:
        raise SystemExit(f"Invalid coordinates: {exc}") from exc


def build_location_service(source: str) -> LocationServiceBase:
    coordinate = load_static_coordinate()
    if source == "static" and coordinate is None:
        raise SystemExit("Missing WEATHER_LAT/WEATHER_LON in environment")
    if source == "static" or (source == "auto" and coordinate is not None):
        logging.info("Location source: static %s", coordinate.format(4))
        return StaticLocationService(coordinate)
    if source in ("ip", "auto"):
        logging.info("Location source: IP geolocation")
        return IPGeolocationService()
    logging.info("Location source: none")
    return FakeLocationService()


def load_config(args: argparse.Namespace) -> Configuration:
    settings_file = os.getenv("WEATHER_SETTINGS_FILE", DEFAULT_SETTINGS_FILE)
    config = Configuration(JsonFileSettingsStore(settings_file))
    if args.city:
        config.city_name = args.city
    if args.interval:
        config.update_interval = args.interval
    if args.no_location or args.location_source == "none":
        config.use_location = False
    logging.info(
        "Configuration loaded: city=%r interval=%ss use_location=%s",
        config.city_name, config.update_interval, config.use_location,
    )
    return config


def build_orchestrator(config: Configuration, args: argparse.Namespace) -> WeatherOrchestrator:
    provider = WttrProvider(
        base_url=os.getenv("WEATHER_BASE_URL", DEFAULT_BASE_URL),
        timeout=args.timeout,
    )
    fetcher = WeatherFetcher(
        provider=provider,
        max_retries=args.max_retries,
        retry_delay_seconds=args.retry_delay,
        total_timeout_seconds=args.total_timeout,
    )
    resolver = LocationResolver(build_location_service(args.location_source))
    orchestrator = WeatherOrchestrator(
        config=config,
        resolver=resolver,
        fetcher=fetcher,
        cache=FreshnessCache(ttl_seconds=args.cache_ttl),
    )
    logging.info("Weather orchestrator ready (cache ttl=%ss)", args.cache_ttl)
    return orchestrator


def print_snapshot(orchestrator: WeatherOrchestrator, snapshot: WeatherSnapshot) -> None:
    print(orchestrator.status_title())
    for line in orchestrator.detail_lines():
        print(f"  {line}")
    link = web_url(snapshot)
    if link:
        print(f"  {link}")
    sys.stdout.flush()


def print_error(orchestrator: WeatherOrchestrator, error: FetchError) -> None:
    print(orchestrator.status_title())
    print(f"  Error: {error}")
    sys.stdout.flush()


async def run(config: Configuration, args: argparse.Namespace) -> int:
    orchestrator = build_orchestrator(config, args)
    done = asyncio.Event()
    failed = False

    def on_ready(snapshot: WeatherSnapshot) -> None:
        print_snapshot(orchestrator, snapshot)
        if args.once:
            done.set()

    def on_error(error: FetchError) -> None:
        nonlocal failed
        print_error(orchestrator, error)
        if args.once:
            failed = True
            done.set()

    orchestrator.on_snapshot_ready = on_ready
    orchestrator.on_snapshot_error = on_error

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, done.set)
        except NotImplementedError:  # pragma: no cover - Windows
            pass

    orchestrator.start()
    try:
        await done.wait()
    finally:
        logging.info("Stopping weather updates")
        orchestrator.stop()
    return 1 if failed else 0


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    config = load_config(args)
    try:
        return asyncio.run(run(config, args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
