#!/usr/bin/env python3
"""
Frigate Events - Bootstrap and entry point.

Provides bootstrap() for the WSGI worker (frigate_events.wsgi). The server is
started via run_server.py (Gunicorn); do not run Flask's built-in server.

Run the app with: python run_server.py
"""

import logging
import sys
from pathlib import Path

from frigate_events.config import load_config
from frigate_events.constants import DEFAULT_EVENT_LIMIT, DEFAULT_REQUEST_TIMEOUT, DEFAULT_TIMEZONE, DISPLAY_DATETIME_FORMAT
from frigate_events.errors import InvalidURLError
from frigate_events.logging_utils import setup_logging
from frigate_events.managers.facets import FacetTracker
from frigate_events.managers.settings import SettingsStore
from frigate_events.services.feed import FeedCoordinator
from frigate_events.services.frigate_api import FrigateEventRepository

# Early logging for config loading (reconfigured after config is loaded)
# Use 12-hour time format for consistency with rest of app.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt=DISPLAY_DATETIME_FORMAT,
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("frigate-events")


def _load_version() -> str:
    """Load version from version.txt.

    Looks next to this module (installed package data) and in the project
    root (running from source, e.g. pip install -e . or pytest).
    """
    try:
        pkg_dir = Path(__file__).resolve().parent
        for candidate in (
            pkg_dir / "version.txt",
            pkg_dir.parent.parent / "version.txt",
        ):
            if candidate.exists():
                return candidate.read_text().strip()
    except OSError:
        pass
    return "unknown"


def build_coordinator(config: dict) -> FeedCoordinator:
    """Wire settings store, repository, facet tracker and coordinator from config."""
    store = SettingsStore(config["STORAGE_PATH"], default_base_url=config["FRIGATE_URL"])
    repo_kwargs = {
        "timeout": config.get("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        "timezone": config.get("TIMEZONE", DEFAULT_TIMEZONE),
        "default_limit": config.get("EVENT_LIMIT", DEFAULT_EVENT_LIMIT),
    }
    try:
        repository = FrigateEventRepository(store.get_base_url(), **repo_kwargs)
    except InvalidURLError as e:
        # A bad saved URL should not block startup; fall back to the configured one.
        logger.error("%s Falling back to %s", e.message, config["FRIGATE_URL"])
        repository = FrigateEventRepository(config["FRIGATE_URL"], **repo_kwargs)
    return FeedCoordinator(config, repository, store, FacetTracker(store))


def bootstrap() -> tuple[dict, FeedCoordinator]:
    """Load config, set up logging, create and return (config, coordinator).

    Used by the WSGI entry point (wsgi.py). Does not start polling or the web
    server. On first launch, logs a prompt to configure the Frigate URL.
    """
    config = load_config()
    setup_logging(config.get("LOG_LEVEL", "INFO"))

    version = _load_version()
    logger.info("VERSION = %s", version)

    coordinator = build_coordinator(config)
    store = coordinator.store
    config["FIRST_LAUNCH"] = store.is_first_launch()
    if config["FIRST_LAUNCH"]:
        logger.info(
            "First launch: using Frigate URL %s. Set network.frigate_url in config.yaml "
            "or PUT /api/settings/frigate-url to change it.",
            store.get_base_url(),
        )
        store.mark_launched()
    return config, coordinator


def main():
    """Entry point: direct user to run_server.py (Gunicorn is the only server)."""
    logger.error(
        "Frigate Events must be started with run_server.py (Gunicorn). "
        "Do not use python -m frigate_events.main to run the server."
    )
    sys.exit(1)


if __name__ == "__main__":
    main()
