"""
Frigate version negotiation.

Frigate has no format negotiation, so /api/version decides which response
shape ResponseNormalizer tries first. The endpoint itself has returned plain
text and several JSON shapes across releases; the body is probed with an
ordered list of pure functions (VERSION_PROBES). A failed probe never
propagates out of resolve_version(): the default version is used instead and
cached like a real answer.
"""

import json
import logging
import re
import threading
from typing import Any, Callable

import requests

from frigate_events.constants import DEFAULT_FRIGATE_VERSION, DEFAULT_REQUEST_TIMEOUT, LOG_MAX_RESPONSE_BODY
from frigate_events.errors import FrigateAPIError, InvalidResponseError, NetworkError
from frigate_events.models import VersionTriple
from frigate_events.services.json_fields import as_object, get_str

logger = logging.getLogger("frigate-events")

VersionProbe = Callable[[str], str | None]

BARE_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+")
EMBEDDED_VERSION_RE = re.compile(r'"version"\s*:\s*"([^"]+)"')
ALTERNATE_VERSION_KEYS = ("frigate_version", "server_version", "api_version")


def _json_object(text: str) -> dict[str, Any] | None:
    try:
        return as_object(json.loads(text))
    except (ValueError, RecursionError):
        return None


def probe_version_field(text: str) -> str | None:
    """{"version": "0.14.1"}"""
    obj = _json_object(text)
    return get_str(obj, "version") if obj is not None else None


def probe_alternate_fields(text: str) -> str | None:
    """{"frigate_version": ...}, then server_version, then api_version."""
    obj = _json_object(text)
    if obj is None:
        return None
    for key in ALTERNATE_VERSION_KEYS:
        value = get_str(obj, key)
        if value is not None:
            return value
    return None


def probe_bare_string(text: str) -> str | None:
    """Plain-text body such as "0.14.1-f4f3cfa" (current Frigate)."""
    candidate = text.strip()
    return candidate if BARE_VERSION_RE.match(candidate) else None


def probe_embedded_version(text: str) -> str | None:
    """Last resort: "version": "<value>" anywhere in the re-serialized JSON."""
    try:
        parsed = json.loads(text)
    except (ValueError, RecursionError):
        return None
    match = EMBEDDED_VERSION_RE.search(json.dumps(parsed))
    return match.group(1) if match else None


VERSION_PROBES: tuple[VersionProbe, ...] = (
    probe_version_field,
    probe_alternate_fields,
    probe_bare_string,
    probe_embedded_version,
)


def parse_version_text(text: str) -> str:
    """Run VERSION_PROBES in order; raise InvalidResponseError if none match."""
    for probe in VERSION_PROBES:
        version = probe(text)
        if version:
            logger.debug("Found Frigate version %r via %s", version, probe.__name__)
            return version
    raise InvalidResponseError("Could not find a version in the /api/version response.")


def _leading_int(component: str) -> int:
    match = re.match(r"\d+", component.strip())
    return int(match.group(0)) if match else 0


def parse_version(version: str) -> VersionTriple:
    """ "0.16.0-beta2" -> (0, 16, 0); missing or non-numeric parts become 0."""
    parts = version.strip().lstrip("vV").split(".")
    padded = (parts + ["0", "0", "0"])[:3]
    major, minor, patch = (_leading_int(p) for p in padded)
    return VersionTriple(major, minor, patch)


class VersionNegotiator:
    """Resolves and caches the Frigate version for one repository.

    resolve_version() never raises; fetch_version_string() (display only)
    raises so the caller can show why the probe failed. Both share one cache of
    the raw version string.

    The lock is held for the whole HTTP probe (up to the request timeout), so
    callers that need a probe queue behind one in flight. Once a version is
    resolved, resolve_version() returns it without taking the lock.
    """

    def __init__(
        self,
        base_url_getter: Callable[[], str],
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        default_version: str = DEFAULT_FRIGATE_VERSION,
    ):
        self._base_url_getter = base_url_getter
        self._timeout = timeout
        self._default_version = default_version
        self._raw_version: str | None = None
        self._resolved: VersionTriple | None = None
        self._used_default = False
        self._lock = threading.Lock()

    @property
    def resolved(self) -> VersionTriple | None:
        """Cached version, or None if resolve_version() has not run yet."""
        return self._resolved

    @property
    def used_default(self) -> bool:
        return self._used_default

    def _probe(self) -> str:
        url = f"{self._base_url_getter()}/api/version"
        try:
            resp = requests.get(url, timeout=self._timeout)
        except requests.RequestException as e:
            raise NetworkError(f"Network error: {e}") from e
        if resp.status_code != 200:
            raise NetworkError(
                f"Frigate /api/version returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        text = resp.text or ""
        logger.debug("Version API response: %s", text[:LOG_MAX_RESPONSE_BODY])
        return parse_version_text(text)

    def fetch_version_string(self) -> str:
        """Raw version string for display; reuses a successful earlier probe."""
        with self._lock:
            if self._raw_version is None:
                self._raw_version = self._probe()
            return self._raw_version

    def resolve_version(self) -> VersionTriple:
        """Version used for parsing decisions. Probed once, then cached for good."""
        resolved = self._resolved
        if resolved is not None:
            return resolved
        # Blocks while another thread probes /api/version.
        with self._lock:
            if self._resolved is not None:
                return self._resolved
            try:
                if self._raw_version is None:
                    self._raw_version = self._probe()
                self._resolved = parse_version(self._raw_version)
                logger.info("Detected Frigate version %s", self._resolved)
            except FrigateAPIError as e:
                logger.warning(
                    "Could not detect Frigate version, using default %s: %s",
                    self._default_version,
                    e.message,
                )
                self._resolved = parse_version(self._default_version)
                self._used_default = True
            return self._resolved
