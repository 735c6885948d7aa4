"""
Shared constants for Frigate API access, polling, and display.

Centralizes the fixed query parameters sent to /api/events, the fallback
protocol version, and default polling periods so callers do not duplicate
magic numbers.
"""

# Frigate version assumed when /api/version cannot be probed. Parsing decisions
# fall back to the 0.13.x tier (plain JSON array).
DEFAULT_FRIGATE_VERSION: str = "0.13.0"

# Server address used on first launch when neither config nor settings have one.
DEFAULT_FRIGATE_URL: str = "http://192.168.1.168:5000"

# /api/events: default page size and the sentinel meaning "no filter".
DEFAULT_EVENT_LIMIT: int = 50
FILTER_ALL: str = "all"

# Fixed /api/events query parameters sent on every request.
EVENTS_TIME_RANGE: str = "00:00,24:00"
DEFAULT_TIMEZONE: str = "America/New_York"
EVENTS_FIXED_PARAMS: dict[str, str] = {
    "sub_labels": FILTER_ALL,
    "time_range": EVENTS_TIME_RANGE,
    "favorites": "0",
    "is_submitted": "-1",
    "include_thumbnails": "0",
}

# Keys probed (in order) when the events response is a wrapped JSON object.
EVENT_WRAPPER_KEYS: tuple[str, ...] = ("events", "data", "results")

# Media kinds served by Frigate under /api/events/<id>/<kind>.
MEDIA_THUMBNAIL: str = "thumbnail.jpg"
MEDIA_SNAPSHOT: str = "snapshot.jpg"
MEDIA_CLIP: str = "clip.mp4"
MEDIA_KINDS: frozenset[str] = frozenset({MEDIA_THUMBNAIL, MEDIA_SNAPSHOT, MEDIA_CLIP})

# Polling periods (seconds).
DEFAULT_IN_PROGRESS_POLL_SECONDS: float = 2
DEFAULT_EVENTS_POLL_SECONDS: float = 30

# Delay before the extra completed fetch after an in-progress event finishes.
DEFAULT_FINISHED_REFRESH_DELAY_SECONDS: float = 0.1
# Pacing delay at the start of a manual refresh (keeps the spinner visible).
DEFAULT_REFRESH_DELAY_SECONDS: float = 0.5

# Frigate request timeout (seconds). requests has no default timeout.
DEFAULT_REQUEST_TIMEOUT: int = 30

# How often the scheduler thread checks for due jobs (seconds).
SCHEDULER_TICK_SECONDS: float = 0.25

# Max chars of a response body to include in DEBUG logs.
LOG_MAX_RESPONSE_BODY: int = 500

# Error buffer for the status endpoint: max number of recent WARNING/ERROR records.
ERROR_BUFFER_MAX_SIZE: int = 10

# User-visible timestamps use 12-hour format (log datefmt and the status error buffer).
DISPLAY_DATETIME_FORMAT: str = "%Y-%m-%d %I:%M:%S %p"
