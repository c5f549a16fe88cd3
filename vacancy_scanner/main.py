"""Main entry point for the vacancy scanner service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import signal
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from vacancy_scanner.adapters import BaseListingSource, get_source
from vacancy_scanner.clients import AuthServiceClient
from vacancy_scanner.config.environment import EnvironmentConfig
from vacancy_scanner.config.exceptions import ConfigurationError
from vacancy_scanner.config.loader import load_config
from vacancy_scanner.config.models import AppConfig
from vacancy_scanner.domain.models import SearchRequest
from vacancy_scanner.logging import get_logger
from vacancy_scanner.logging.config import configure_logging
from vacancy_scanner.notifications import BotNotifyClient, LiveStreamRegistry, NotificationFanout
from vacancy_scanner.persistence import ListingStore, close_database, init_database
from vacancy_scanner.preferences import PreferenceService
from vacancy_scanner.scheduler import DispatcherService, InFlightSet
from vacancy_scanner.search import SearchInProgressError, SearchOrchestrator

logger = get_logger(__name__, component="cli")


@dataclass
class Components:
    """Wired service graph shared by every run mode."""

    source: BaseListingSource
    auth_client: AuthServiceClient
    stream: LiveStreamRegistry
    store: ListingStore
    preferences: PreferenceService
    orchestrator: SearchOrchestrator
    dispatcher: DispatcherService


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI flag, then LOG_LEVEL, then the config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_components(
    app_config: AppConfig,
    env_config: EnvironmentConfig,
    shutdown_event: Optional[threading.Event] = None,
) -> Components:
    """Instantiate and wire the adapter, clients, store, fan-out and dispatcher."""
    timeout = app_config.advanced.http_request_timeout
    in_flight = InFlightSet()

    source = get_source(app_config.source, app_config.advanced)
    auth_client = AuthServiceClient(
        env_config.auth_service_url,
        api_key=env_config.auth_service_api_key,
        timeout=timeout,
    )
    stream = LiveStreamRegistry(queue_size=app_config.notifications.stream_queue_size)
    fanout = NotificationFanout(
        bot_channel=BotNotifyClient(env_config.auth_service_url, timeout=timeout),
        live_stream=stream,
        config=app_config.notifications,
    )
    preferences = PreferenceService(defaults=app_config.defaults)
    store = ListingStore()
    orchestrator = SearchOrchestrator(
        source=source,
        store=store,
        fanout=fanout,
        subscriptions=auth_client,
        preference_service=preferences,
        in_flight=in_flight,
    )
    dispatcher = DispatcherService(
        orchestrator=orchestrator,
        credentials=auth_client,
        subscriptions=auth_client,
        config=app_config.scheduler,
        in_flight=in_flight,
        shutdown_event=shutdown_event,
    )
    return Components(
        source=source,
        auth_client=auth_client,
        stream=stream,
        store=store,
        preferences=preferences,
        orchestrator=orchestrator,
        dispatcher=dispatcher,
    )


def print_listings(records) -> None:
    for record in records:
        print(f"{record.external_id}\t{record.title}\t{record.employer}\t{record.url or ''}")


def list_listings(components: Components, user_id: int) -> int:
    """Print the listings stored for one user, newest first."""
    records = components.store.listings_for(user_id)
    print_listings(records)
    logger.info(
        f"Listed {len(records)} stored listings for user {user_id}",
        extra={"event": "service.list.completed", "user_id": user_id, "count": len(records)},
    )
    return 0


def run_due_once(components: Components) -> int:
    """Run a single tick and process the queued users in this thread."""
    result = components.dispatcher.dispatch_due()
    processed = components.dispatcher.drain_queue()
    logger.info(
        f"Due run completed: {result.due} due, {processed} processed",
        extra={
            "event": "service.run_due.completed",
            "due": result.due,
            "processed": processed,
            "skipped_in_flight": result.skipped_in_flight,
        },
    )
    return 1 if result.error else 0


def search_now(components: Components, user_id: int, query: Optional[str]) -> int:
    """Manual search for one user, as an HTTP-facing caller would run it."""
    token = components.auth_client.get_access_token(user_id)
    if not token:
        print(f"No access token available for user {user_id}", file=sys.stderr)
        return 1

    try:
        records = components.orchestrator.search_now(SearchRequest(query=query), token, user_id)
    except SearchInProgressError as e:
        print(str(e), file=sys.stderr)
        return 1

    print_listings(records)
    logger.info(
        f"Manual search stored {len(records)} new listings for user {user_id}",
        extra={"event": "service.search_now.completed", "user_id": user_id, "new": len(records)},
    )
    return 0


def run_daemon(components: Components, shutdown_event: threading.Event) -> int:
    """Run the dispatcher until SIGINT/SIGTERM."""
    dispatcher = components.dispatcher

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        # Workers may be mid-request; join them off the signal handler.
        threading.Thread(target=dispatcher.shutdown, kwargs={"wait": True}, daemon=True).start()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    dispatcher.start()
    logger.info(
        "Dispatcher running. Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started"},
    )

    try:
        shutdown_event.wait()
    except KeyboardInterrupt:
        logger.info(
            "Keyboard interrupt received, shutting down",
            extra={"event": "service.keyboard_interrupt"},
        )
        dispatcher.shutdown(wait=True)
    return 0


def run_mode(args: argparse.Namespace) -> str:
    if args.run_due:
        return "run_due"
    if args.search_now is not None:
        return "search_now"
    if args.list is not None:
        return "list"
    return "daemon"


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the vacancy scanner.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    parser = argparse.ArgumentParser(
        description="Vacancy scanner - per-user hh.ru auto-update and notification service"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml or config/config.yaml)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--run-due",
        action="store_true",
        help="Process users that are due right now and exit",
    )
    mode.add_argument(
        "--search-now",
        type=int,
        metavar="USER_ID",
        default=None,
        help="Run a manual search for one user and exit",
    )
    mode.add_argument(
        "--list",
        type=int,
        metavar="USER_ID",
        default=None,
        help="Print the listings stored for one user and exit",
    )
    parser.add_argument(
        "--query",
        default=None,
        help="Query override for --search-now (comma-separated)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    args = parser.parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Vacancy scanner starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "mode": run_mode(args),
            },
        )

        init_database(env_config.database_url)

        shutdown_event = threading.Event()
        components = build_components(app_config, env_config, shutdown_event)

        try:
            if args.run_due:
                return run_due_once(components)
            if args.search_now is not None:
                return search_now(components, args.search_now, args.query)
            if args.list is not None:
                return list_listings(components, args.list)
            return run_daemon(components, shutdown_event)
        finally:
            components.source.close()
            close_database()
            logger.info(
                "Vacancy scanner stopped",
                extra={
                    "event": "service.stopping",
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={"event": "service.startup.failed", "error_type": type(e).__name__},
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
