"""Configuration loading and validation."""

import os
import logging
import sys

import yaml
from voluptuous import Schema, Optional, Any, ALLOW_EXTRA, Invalid, Range, All

from frigate_events.constants import (
    DEFAULT_EVENT_LIMIT,
    DEFAULT_EVENTS_POLL_SECONDS,
    DEFAULT_FINISHED_REFRESH_DELAY_SECONDS,
    DEFAULT_FRIGATE_URL,
    DEFAULT_IN_PROGRESS_POLL_SECONDS,
    DEFAULT_REFRESH_DELAY_SECONDS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TIMEZONE,
)

logger = logging.getLogger('frigate-events')

_Seconds = All(Any(int, float), Range(min=0))
_PositiveSeconds = All(Any(int, float), Range(min=0, min_included=False))

# Configuration Schema
CONFIG_SCHEMA = Schema({
    # Frigate server and local web/storage settings.
    Optional('network'): {
        Optional('frigate_url'): str,      # Base URL of Frigate (e.g. http://host:5000); seeds settings on first launch.
        Optional('flask_host'): str,       # Bind address for the JSON API.
        Optional('flask_port'): int,       # Port for the JSON API.
        Optional('storage_path'): str,     # Directory for settings.json (selections, observed facets, server URL).
    },
    # Polling and request behavior.
    Optional('settings'): {
        Optional('in_progress_poll_seconds'): _PositiveSeconds,       # Period of the in-progress events poll.
        Optional('events_poll_seconds'): _PositiveSeconds,            # Period of the completed events poll.
        Optional('event_limit'): All(int, Range(min=1)),              # Max events requested per fetch.
        Optional('finished_refresh_delay_seconds'): _Seconds,         # Delay before the extra completed fetch after an event finishes.
        Optional('refresh_delay_seconds'): _Seconds,                  # Pacing delay at the start of a manual refresh.
        Optional('request_timeout_seconds'): _PositiveSeconds,        # Timeout for each Frigate request.
        Optional('timezone'): str,                                    # Timezone sent to /api/events with time_range.
        Optional('order_by'): Any(str, None),                         # Optional order_by for /api/events.
        Optional('log_level'): Any('DEBUG', 'INFO', 'WARNING', 'ERROR'),  # Logging verbosity.
    },
}, extra=ALLOW_EXTRA)


def load_config() -> dict:
    """Load configuration from config.yaml merged with environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. config.yaml
    3. Default values

    FRIGATE_URL here is only the initial server address; once the user saves a
    URL in the settings store, that one is used.
    """
    config = {
        # Network settings
        'FRIGATE_URL': DEFAULT_FRIGATE_URL,
        'FLASK_HOST': '0.0.0.0',
        'FLASK_PORT': 5060,
        'STORAGE_PATH': '/app/storage',

        # Polling / request defaults
        'IN_PROGRESS_POLL_SECONDS': DEFAULT_IN_PROGRESS_POLL_SECONDS,
        'EVENTS_POLL_SECONDS': DEFAULT_EVENTS_POLL_SECONDS,
        'EVENT_LIMIT': DEFAULT_EVENT_LIMIT,
        'FINISHED_REFRESH_DELAY_SECONDS': DEFAULT_FINISHED_REFRESH_DELAY_SECONDS,
        'REFRESH_DELAY_SECONDS': DEFAULT_REFRESH_DELAY_SECONDS,
        'REQUEST_TIMEOUT': DEFAULT_REQUEST_TIMEOUT,
        'TIMEZONE': DEFAULT_TIMEZONE,
        'ORDER_BY': None,
        'LOG_LEVEL': 'INFO',
    }

    # Load from config.yaml if exists
    config_paths = ['/app/config.yaml', '/app/storage/config.yaml', './config.yaml', 'config.yaml']
    config_loaded = False

    for path in config_paths:
        if os.path.exists(path):
            try:
                logger.info(f"Loading config from {path}")
                with open(path, 'r') as f:
                    yaml_config = yaml.safe_load(f) or {}

                # Validate schema
                try:
                    yaml_config = CONFIG_SCHEMA(yaml_config)
                except Invalid as e:
                    logger.error(f"Invalid configuration in {path}: {e}")
                    sys.exit(1)

                if 'network' in yaml_config:
                    network = yaml_config['network']
                    config['FRIGATE_URL'] = network.get('frigate_url', config['FRIGATE_URL'])
                    config['FLASK_HOST'] = network.get('flask_host', config['FLASK_HOST'])
                    config['FLASK_PORT'] = network.get('flask_port', config['FLASK_PORT'])
                    config['STORAGE_PATH'] = network.get('storage_path', config['STORAGE_PATH'])

                if 'settings' in yaml_config:
                    settings = yaml_config['settings']
                    config['IN_PROGRESS_POLL_SECONDS'] = settings.get('in_progress_poll_seconds', config['IN_PROGRESS_POLL_SECONDS'])
                    config['EVENTS_POLL_SECONDS'] = settings.get('events_poll_seconds', config['EVENTS_POLL_SECONDS'])
                    config['EVENT_LIMIT'] = settings.get('event_limit', config['EVENT_LIMIT'])
                    config['FINISHED_REFRESH_DELAY_SECONDS'] = settings.get('finished_refresh_delay_seconds', config['FINISHED_REFRESH_DELAY_SECONDS'])
                    config['REFRESH_DELAY_SECONDS'] = settings.get('refresh_delay_seconds', config['REFRESH_DELAY_SECONDS'])
                    config['REQUEST_TIMEOUT'] = settings.get('request_timeout_seconds', config['REQUEST_TIMEOUT'])
                    config['TIMEZONE'] = settings.get('timezone') or config['TIMEZONE']
                    config['ORDER_BY'] = settings.get('order_by', config['ORDER_BY'])
                    config['LOG_LEVEL'] = settings.get('log_level', config['LOG_LEVEL'])

                config_loaded = True
                break

            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Error loading config from {path}: {e}")

    if not config_loaded:
        logger.info("No config.yaml found, using defaults")

    # Environment variables override everything (for deployment)
    frigate_url = os.getenv('FRIGATE_URL') or config['FRIGATE_URL']
    config['FRIGATE_URL'] = frigate_url.rstrip('/') if frigate_url else DEFAULT_FRIGATE_URL
    config['FLASK_HOST'] = os.getenv('FLASK_HOST') or config['FLASK_HOST']
    config['FLASK_PORT'] = int(os.getenv('FLASK_PORT', str(config['FLASK_PORT'])))
    config['STORAGE_PATH'] = os.getenv('STORAGE_PATH', config['STORAGE_PATH'])
    config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', config['LOG_LEVEL'])
    config['IN_PROGRESS_POLL_SECONDS'] = float(os.getenv('IN_PROGRESS_POLL_SECONDS', str(config['IN_PROGRESS_POLL_SECONDS'])))
    config['EVENTS_POLL_SECONDS'] = float(os.getenv('EVENTS_POLL_SECONDS', str(config['EVENTS_POLL_SECONDS'])))

    invalid = []
    if config['IN_PROGRESS_POLL_SECONDS'] <= 0:
        invalid.append('IN_PROGRESS_POLL_SECONDS (settings.in_progress_poll_seconds)')
    if config['EVENTS_POLL_SECONDS'] <= 0:
        invalid.append('EVENTS_POLL_SECONDS (settings.events_poll_seconds)')
    if invalid:
        raise ValueError(
            f"Invalid configuration: {', '.join(invalid)} must be greater than 0."
        )

    return config
