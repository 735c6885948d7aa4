"""
WSGI entry point for Gunicorn.

Bootstraps config and the FeedCoordinator, runs an initial refresh in the
background, starts both polling streams, and exposes the Flask app. Must be
run with exactly one Gunicorn worker (enforced via FRIGATE_EVENTS_SINGLE_WORKER
set by run_server.py): each worker would otherwise poll Frigate on its own.
Registers graceful shutdown on SIGTERM/SIGINT so polling stops when the
container stops.
"""

import logging
import os
import signal
import threading

from frigate_events.main import bootstrap
from frigate_events.web.server import create_app

logger = logging.getLogger("frigate-events")

# Module-level coordinator reference for signal handler (set in create_application).
_coordinator = None


def _shutdown_handler(signum: int, frame) -> None:
    """Stop polling on SIGTERM/SIGINT."""
    global _coordinator
    logger.info("Received signal %s, stopping feed polling...", signum)
    if _coordinator:
        _coordinator.stop()
    raise SystemExit(0)


def _initial_refresh(coordinator) -> None:
    error = coordinator.refresh()
    if error:
        logger.error("Initial refresh failed: %s", error)


def create_application():
    """Create the WSGI application: bootstrap, start polling, return Flask app."""
    global _coordinator

    if os.environ.get("FRIGATE_EVENTS_SINGLE_WORKER") != "1":
        raise RuntimeError(
            "Gunicorn must be started via run_server.py with exactly one worker (-w 1). "
            "Multiple workers would each run their own polling loops. "
            "Set FRIGATE_EVENTS_SINGLE_WORKER=1 if invoking gunicorn manually with -w 1."
        )

    config, coordinator = bootstrap()
    _coordinator = coordinator

    threading.Thread(target=_initial_refresh, args=(coordinator,), daemon=True).start()
    coordinator.start()

    signal.signal(signal.SIGTERM, _shutdown_handler)
    signal.signal(signal.SIGINT, _shutdown_handler)

    return create_app(coordinator)


application = create_application()
