#!/usr/bin/env python3
"""
Frigate Events - Gunicorn launcher.

Polling threads live inside the worker process, so Gunicorn must run exactly
one worker; request concurrency comes from threads instead. The process is
replaced with os.execvp so SIGTERM from Docker reaches Gunicorn directly and
wsgi.py can stop polling.

Usage: python run_server.py
"""

import os
import sys

# Ensure package is importable when run from repo root (e.g. during development).
if __name__ == "__main__":
    _src = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src")
    if os.path.isdir(_src) and _src not in sys.path:
        sys.path.insert(0, _src)

from frigate_events.config import load_config

WSGI_TARGET = "frigate_events.wsgi:application"
GUNICORN_THREADS = 4


def gunicorn_argv(host: str, port: int, threads: int = GUNICORN_THREADS) -> list[str]:
    """Command line for a single-worker Gunicorn serving the feed API."""
    return [
        sys.executable,
        "-m",
        "gunicorn",
        "--bind",
        f"{host}:{port}",
        "-w",
        "1",
        "--threads",
        str(threads),
        "--capture-output",
        "--enable-stdio-inheritance",
        WSGI_TARGET,
    ]


def main() -> None:
    config = load_config()
    argv = gunicorn_argv(config.get("FLASK_HOST", "0.0.0.0"), config.get("FLASK_PORT", 5060))

    # wsgi.py refuses to start without this.
    os.environ["FRIGATE_EVENTS_SINGLE_WORKER"] = "1"
    os.execvp(sys.executable, argv)


if __name__ == "__main__":
    main()
