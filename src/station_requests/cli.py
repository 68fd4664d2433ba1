"""
station-requests CLI - operator entry point

Manages stations and catalog tracks, submits requests on behalf of listeners,
and drives the scheduler / playback commit by hand.
"""

import argparse
import os
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from station_requests.core import config as config_module
from station_requests.core.database import init_database, set_database_path
from station_requests.core.db_adapter import init_postgres_schema, is_postgres
from station_requests.core.logging import setup_logging
from station_requests.domain import requests as queue
from station_requests.domain.requests.models import StationRequestConfig

console = Console()


@dataclass
class RequestServices:
    """Wired-up stores and controllers for one process."""

    catalog: queue.CachedCatalog
    history: queue.SqlPlayHistory
    requests: queue.SqlRequestStore
    stations: queue.SqlStationConfig
    admission: queue.RequestAdmission
    scheduler: queue.RequestScheduler


def build_services(config: config_module.Config) -> RequestServices:
    """Create the SQL-backed services described by the configuration."""
    catalog = queue.CachedCatalog(queue.SqlCatalog())
    history = queue.SqlPlayHistory()
    requests = queue.SqlRequestStore()
    checker = queue.DuplicateChecker(history, requests)
    jitter = config.requests.jitter_request_delay

    return RequestServices(
        catalog=catalog,
        history=history,
        requests=requests,
        stations=queue.SqlStationConfig(),
        admission=queue.RequestAdmission(
            catalog,
            requests,
            checker,
            crawler_patterns=config.requests.extra_crawler_patterns,
        ),
        scheduler=queue.RequestScheduler(
            requests,
            catalog,
            checker,
            policy_factory=lambda station: queue.delay_policy(station, jitter=jitter),
        ),
    )


def apply_config(config: config_module.Config) -> None:
    """Point logging and the database backend at the configured locations."""
    setup_logging(
        level=config.logging.level,
        log_file_path=Path(config.logging.log_file) if config.logging.log_file else None,
        max_bytes=config.logging.max_file_size_mb * 1024 * 1024,
        backup_count=config.logging.backup_count,
        console_output=config.logging.console_output,
    )

    if config.database.url and not os.environ.get("DATABASE_URL"):
        os.environ["DATABASE_URL"] = config.database.url
    if config.database.path:
        set_database_path(Path(config.database.path))


def _require_station(services: RequestServices, station_id: int) -> StationRequestConfig:
    station = services.stations.get(station_id)
    if station is None:
        raise SystemExit(_fail(f"Station {station_id} not found"))
    return station


def _fail(message: str) -> int:
    console.print(message, style="bold red")
    return 1


def _print_request(services: RequestServices, request: queue.PendingRequest) -> None:
    track = services.catalog.get_track(request.track_id)
    label = f"{track.artist} - {track.title}" if track else f"track #{request.track_id}"
    console.print(
        f"#{request.id} {label} (skip_delay={request.skip_delay}, ip={request.ip})",
        style="green",
    )


def run_init_db() -> int:
    if is_postgres():
        init_postgres_schema()
    else:
        init_database()
    console.print("Database initialized", style="green")
    return 0


def run_add_station(args: argparse.Namespace, config: config_module.Config) -> int:
    try:
        station = queue.create_station(
            args.name,
            enable_requests=not args.disable_requests,
            request_threshold_minutes=args.threshold,
            request_delay_minutes=args.delay,
            timezone=args.timezone or config.requests.default_timezone,
        )
    except ValueError as e:
        return _fail(str(e))
    console.print(f"Created station #{station.station_id} '{station.name}'", style="green")
    return 0


def run_update_station(args: argparse.Namespace, services: RequestServices) -> int:
    _require_station(services, args.station_id)
    enable_requests = None
    if args.enable_requests:
        enable_requests = True
    elif args.disable_requests:
        enable_requests = False

    try:
        queue.update_station(
            args.station_id,
            enable_requests=enable_requests,
            request_threshold_minutes=args.threshold,
            request_delay_minutes=args.delay,
            timezone=args.timezone,
        )
    except ValueError as e:
        return _fail(str(e))
    console.print(f"Updated station #{args.station_id}", style="green")
    return 0


def run_stations(args: argparse.Namespace, services: RequestServices) -> int:
    table = Table(title="Stations")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Requests")
    table.add_column("Threshold", justify="right")
    table.add_column("Delay", justify="right")
    table.add_column("Timezone")

    for station in queue.get_all_stations():
        table.add_row(
            str(station.station_id),
            station.name,
            "on" if station.enable_requests else "off",
            _minutes(station.request_threshold_minutes),
            _minutes(station.request_delay_minutes),
            station.timezone,
        )

    console.print(table)
    return 0


def _minutes(value: Optional[int]) -> str:
    return "default" if value is None else f"{value}m"


def run_add_track(args: argparse.Namespace, services: RequestServices) -> int:
    _require_station(services, args.station_id)
    try:
        track = queue.add_track(
            args.station_id,
            args.unique_id,
            args.title,
            args.artist,
            is_requestable=not args.not_requestable,
        )
    except ValueError as e:
        return _fail(str(e))
    services.catalog.invalidate(args.station_id)
    console.print(f"Added track #{track.id} {track.artist} - {track.title}", style="green")
    return 0


def run_submit(args: argparse.Namespace, services: RequestServices) -> int:
    station = _require_station(services, args.station_id)
    try:
        request_id = services.admission.submit(
            station,
            args.track_id,
            is_authenticated=args.authenticated,
            ip=args.ip,
            user_agent=args.user_agent,
        )
    except queue.RequestError as e:
        return _fail(str(e))
    console.print(f"Request #{request_id} queued", style="green")
    return 0


def run_next(args: argparse.Namespace, services: RequestServices) -> int:
    station = _require_station(services, args.station_id)

    if args.immediate:
        services.scheduler.policy_factory = lambda _station: queue.immediate_policy
    if args.window:
        start, _, end = args.window.partition("-")
        base_factory = services.scheduler.policy_factory
        try:
            window = queue.time_window_policy(start, end)
        except (ValueError, IndexError):
            return _fail(f"Invalid window '{args.window}', expected HH:MM-HH:MM")
        services.scheduler.policy_factory = lambda s: queue.all_of(base_factory(s), window)

    request = services.scheduler.get_next_playable_request(station)
    if request is None:
        console.print("No request is eligible to play", style="yellow")
        return 0

    _print_request(services, request)
    return 0


def commit_played(
    services: RequestServices, request_id: int, played_at: Optional[int] = None
) -> bool:
    """Mark a request played and log it to the station history.

    Both writes share one transaction; a failed history insert leaves the
    request pending.

    Returns:
        False if another committer already played it
    """
    request = services.requests.get(request_id)
    if request is None or not request.is_pending:
        return False

    played_at = played_at or int(time.time())
    track = services.catalog.get_track(request.track_id)

    with services.requests.transaction():
        if not services.requests.mark_played(request_id, played_at):
            return False
        if track is not None:
            services.history.record(request.station_id, track.title, track.artist, played_at)
    return True


def run_played(args: argparse.Namespace, services: RequestServices) -> int:
    if not commit_played(services, args.request_id):
        return _fail(f"Request {args.request_id} is not pending")
    console.print(f"Request #{args.request_id} marked played", style="green")
    return 0


def run_boost(args: argparse.Namespace, services: RequestServices) -> int:
    if not services.requests.set_skip_delay(args.request_id, args.skip_delay):
        return _fail(f"Request {args.request_id} is not pending")
    console.print(f"Request #{args.request_id} skip_delay={args.skip_delay}", style="green")
    return 0


def run_pending(args: argparse.Namespace, services: RequestServices) -> int:
    station = _require_station(services, args.station_id)
    pending = services.requests.pending_for_station(station.station_id)

    table = Table(title=f"Pending requests: {station.name}")
    table.add_column("#", justify="right")
    table.add_column("Track")
    table.add_column("Skip delay", justify="right")
    table.add_column("IP")
    table.add_column("Submitted")

    for request in pending:
        track = services.catalog.get_track(request.track_id)
        table.add_row(
            str(request.id),
            f"{track.artist} - {track.title}" if track else f"#{request.track_id}",
            str(request.skip_delay),
            request.ip,
            time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(request.submitted_at)),
        )

    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="station-requests",
        description="Station request queue - admission and scheduling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Path to config.toml")

    subparsers = parser.add_subparsers(dest="subcommand", required=True)

    subparsers.add_parser("init-db", help="Create database tables")

    station_parser = subparsers.add_parser("add-station", help="Create a station")
    station_parser.add_argument("name")
    station_parser.add_argument("--disable-requests", action="store_true")
    station_parser.add_argument("--threshold", type=int, help="Request threshold in minutes")
    station_parser.add_argument("--delay", type=int, help="Request delay in minutes")
    station_parser.add_argument("--timezone", help="IANA timezone (default from config)")

    update_parser = subparsers.add_parser("update-station", help="Change a station's request policy")
    update_parser.add_argument("station_id", type=int)
    toggle = update_parser.add_mutually_exclusive_group()
    toggle.add_argument("--enable-requests", action="store_true")
    toggle.add_argument("--disable-requests", action="store_true")
    update_parser.add_argument("--threshold", type=int, help="Minutes, -1 restores the default")
    update_parser.add_argument("--delay", type=int, help="Minutes, -1 restores the default")
    update_parser.add_argument("--timezone")

    subparsers.add_parser("stations", help="List stations")

    track_parser = subparsers.add_parser("add-track", help="Add a track to a station catalog")
    track_parser.add_argument("station_id", type=int)
    track_parser.add_argument("unique_id")
    track_parser.add_argument("title")
    track_parser.add_argument("artist")
    track_parser.add_argument("--not-requestable", action="store_true")

    submit_parser = subparsers.add_parser("submit", help="Submit a listener request")
    submit_parser.add_argument("station_id", type=int)
    submit_parser.add_argument("track_id", help="Track unique id")
    submit_parser.add_argument("--ip", required=True)
    submit_parser.add_argument("--authenticated", action="store_true")
    submit_parser.add_argument("--user-agent")

    next_parser = subparsers.add_parser("next", help="Show the next playable request")
    next_parser.add_argument("station_id", type=int)
    next_parser.add_argument("--immediate", action="store_true", help="Ignore request delay")
    next_parser.add_argument("--window", help="Only play within HH:MM-HH:MM station time")

    played_parser = subparsers.add_parser("played", help="Mark a request played")
    played_parser.add_argument("request_id", type=int)

    boost_parser = subparsers.add_parser("boost", help="Set a pending request's skip delay")
    boost_parser.add_argument("request_id", type=int)
    boost_parser.add_argument("skip_delay", type=int)

    pending_parser = subparsers.add_parser("pending", help="List pending requests")
    pending_parser.add_argument("station_id", type=int)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the station-requests command."""
    args = build_parser().parse_args(argv)

    config = config_module.load_config(args.config)
    apply_config(config)

    if args.subcommand == "init-db":
        sys.exit(run_init_db())
    if args.subcommand == "add-station":
        sys.exit(run_add_station(args, config))

    services = build_services(config)
    handlers = {
        "update-station": run_update_station,
        "stations": run_stations,
        "add-track": run_add_track,
        "submit": run_submit,
        "next": run_next,
        "played": run_played,
        "boost": run_boost,
        "pending": run_pending,
    }

    try:
        sys.exit(handlers[args.subcommand](args, services))
    except Exception:
        logger.exception(f"Command '{args.subcommand}' failed")
        raise


if __name__ == "__main__":
    main()
