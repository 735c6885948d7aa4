"""
Frigate API client - read-only access to events, cameras, and version.

Owns one VersionNegotiator (per repository instance) and one
ResponseNormalizer. fetch_events() parses with the version-tiered cascade and,
if that fails, re-issues the request once and parses the fresh body with the
version-independent fallback cascade.
"""

import logging
import threading
from typing import Any
from urllib.parse import urlparse, urlunparse

import requests

from frigate_events.constants import (
    DEFAULT_EVENT_LIMIT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TIMEZONE,
    EVENTS_FIXED_PARAMS,
    FILTER_ALL,
    LOG_MAX_RESPONSE_BODY,
    MEDIA_KINDS,
)
from frigate_events.errors import DecodingError, InvalidURLError, NetworkError
from frigate_events.models import Event, event_media_url
from frigate_events.services.json_fields import as_object, get_object, parse_json
from frigate_events.services.normalizer import ResponseNormalizer
from frigate_events.services.version import VersionNegotiator

logger = logging.getLogger("frigate-events")


def validate_base_url(url: str) -> str:
    """Return url without trailing slashes; raise InvalidURLError unless it is
    an http(s) URL with a host.
    """
    candidate = (url or "").strip().rstrip("/")
    try:
        parsed = urlparse(candidate)
    except ValueError as e:
        raise InvalidURLError(f"The URL for the Frigate API is invalid: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidURLError(f"The URL for the Frigate API is invalid: {redact_url(candidate)!r}")
    return candidate


def redact_url(url: str) -> str:
    """Return URL with password redacted for safe logging."""
    try:
        parsed = urlparse(url)
        if parsed.password is not None:
            safe_netloc = f"{parsed.username or ''}:***@{parsed.hostname or ''}"
            if parsed.port is not None:
                safe_netloc += f":{parsed.port}"
            parsed = parsed._replace(netloc=safe_netloc)
        return urlunparse(parsed)
    except ValueError:
        return "(url parse error)"


def _filter_value(value: str | None) -> str:
    return value if value and value != FILTER_ALL else FILTER_ALL


class FrigateEventRepository:
    """Read operations against one Frigate server (events, cameras, version)."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        timezone: str = DEFAULT_TIMEZONE,
        default_limit: int = DEFAULT_EVENT_LIMIT,
        normalizer: ResponseNormalizer | None = None,
    ):
        self._base_url = validate_base_url(base_url)
        self._base_url_lock = threading.Lock()
        self.timeout = timeout
        self.timezone = timezone
        self.default_limit = default_limit
        self.normalizer = normalizer or ResponseNormalizer()
        self.version_negotiator = VersionNegotiator(lambda: self.base_url, timeout=timeout)
        logger.info("Frigate API client initialized with URL: %s", redact_url(self._base_url))

    @property
    def base_url(self) -> str:
        with self._base_url_lock:
            return self._base_url

    def set_base_url(self, url: str) -> None:
        """Re-synchronize the server address (e.g. after the user edits settings)."""
        validated = validate_base_url(url)
        with self._base_url_lock:
            if validated == self._base_url:
                return
            self._base_url = validated
        logger.info("Frigate URL changed to %s", redact_url(validated))

    def media_url(self, event_id: str, kind: str) -> str:
        """URL of thumbnail.jpg, snapshot.jpg or clip.mp4 for an event."""
        if kind not in MEDIA_KINDS:
            raise ValueError(f"Unknown media kind: {kind}")
        return event_media_url(self.base_url, event_id, kind)

    def build_events_params(
        self,
        camera: str | None = None,
        label: str | None = None,
        zone: str | None = None,
        limit: int | None = None,
        in_progress: bool = False,
        sort_by: str | None = None,
    ) -> dict[str, str]:
        """Query parameters for GET /api/events."""
        params = {
            "cameras": _filter_value(camera),
            "labels": _filter_value(label),
            "zones": _filter_value(zone),
            **EVENTS_FIXED_PARAMS,
            "timezone": self.timezone,
            "in_progress": "1" if in_progress else "0",
            "limit": str(limit if limit is not None else self.default_limit),
        }
        if sort_by:
            params["order_by"] = sort_by
        return params

    def _get(self, path: str, params: dict[str, str] | None = None) -> requests.Response:
        """GET {base}{path}; NetworkError on transport failure or non-200."""
        url = f"{self.base_url}{path}"
        try:
            resp = requests.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.InvalidURL as e:
            raise InvalidURLError(f"The URL for the Frigate API is invalid: {e}") from e
        except requests.RequestException as e:
            raise NetworkError(f"Network error: {e}") from e
        if resp.status_code != 200:
            logger.debug(
                "Frigate %s non-200: status=%s body=%s",
                path,
                resp.status_code,
                (resp.text or "")[:LOG_MAX_RESPONSE_BODY],
            )
            raise NetworkError(
                f"Invalid response from the Frigate API (HTTP {resp.status_code}).",
                status_code=resp.status_code,
            )
        return resp

    def fetch_events(
        self,
        camera: str | None = None,
        label: str | None = None,
        zone: str | None = None,
        limit: int | None = None,
        in_progress: bool = False,
        sort_by: str | None = None,
    ) -> list[Event]:
        """Fetch completed (in_progress=False) or currently open events."""
        params = self.build_events_params(camera, label, zone, limit, in_progress, sort_by)
        resp = self._get("/api/events", params)
        body = resp.content
        logger.debug("Events API response (first %d chars): %s", LOG_MAX_RESPONSE_BODY, body[:LOG_MAX_RESPONSE_BODY])

        version = self.version_negotiator.resolve_version()
        try:
            return self.normalizer.normalize_for_version(body, version)
        except DecodingError as e:
            logger.info("Version-based parsing failed (%s), retrying with fallback parsing", e.message)

        resp = self._get("/api/events", params)
        return self.normalizer.normalize_with_fallback(resp.content)

    def fetch_cameras(self) -> list[str]:
        """Camera names from /api/config, sorted; empty if config has no cameras object."""
        resp = self._get("/api/config")
        try:
            config: Any = parse_json(resp.content)
        except (ValueError, RecursionError) as e:
            raise NetworkError(f"Could not parse Frigate config: {e}") from e
        config_obj = as_object(config)
        cameras = get_object(config_obj, "cameras") if config_obj is not None else None
        if cameras is None:
            logger.debug("Frigate config has no cameras object")
            return []
        return sorted(cameras.keys())

    def fetch_version_string(self) -> str:
        """Raw Frigate version for display (shares the negotiator's cache)."""
        return self.version_negotiator.fetch_version_string()
