"""Thread-safe persisted settings: server URL, facet selections, observed facets.

The file lives under the application storage path so it persists across
process restarts. Every mutation is written back immediately with an atomic
replace; the lock serializes Flask request threads and polling threads.
"""

import json
import logging
import os
import tempfile
import threading
from typing import Any

from frigate_events.models import FACETS, FacetSet, Selection

logger = logging.getLogger("frigate-events")

SETTINGS_FILENAME = "settings.json"

KEY_BASE_URL = "frigate_base_url"
KEY_HAS_LAUNCHED = "has_launched_before"


def selected_key(facet: str) -> str:
    return f"selected_{facet}"


def available_key(facet: str) -> str:
    return f"available_{facet}"


class SettingsStore:
    """Key-value store backed by settings.json under storage_path.

    Selections change only through explicit user actions (select/unselect/
    replace/clear). Available facets are written by FacetTracker via
    add_available().
    """

    def __init__(self, storage_path: str, default_base_url: str) -> None:
        """Initialize and load any previously persisted state.

        Args:
            storage_path: Directory under which settings.json is created
                (config STORAGE_PATH).
            default_base_url: Frigate URL used until the user sets one.
        """
        self._storage_path = os.path.realpath(os.path.abspath(storage_path))
        self._file_path = os.path.join(self._storage_path, SETTINGS_FILENAME)
        self._lock = threading.RLock()
        self._data: dict[str, Any] = self._read() or {}
        self._default_base_url = default_base_url
        self.write_count = 0

    @property
    def file_path(self) -> str:
        return self._file_path

    # -- server address -----------------------------------------------------

    def get_base_url(self) -> str:
        with self._lock:
            value = self._data.get(KEY_BASE_URL)
            if isinstance(value, str) and value.strip():
                return value.strip()
            return self._default_base_url

    def set_base_url(self, url: str) -> None:
        with self._lock:
            self._data[KEY_BASE_URL] = url.strip()
            self._write()

    # -- first launch -------------------------------------------------------

    def is_first_launch(self) -> bool:
        with self._lock:
            return not bool(self._data.get(KEY_HAS_LAUNCHED))

    def mark_launched(self) -> None:
        with self._lock:
            if self._data.get(KEY_HAS_LAUNCHED):
                return
            self._data[KEY_HAS_LAUNCHED] = True
            self._write()

    # -- facet sets -----------------------------------------------------------

    def _get_set(self, key: str) -> set[str]:
        value = self._data.get(key)
        if not isinstance(value, list):
            return set()
        return {v for v in value if isinstance(v, str)}

    def _put_set(self, key: str, values: set[str]) -> None:
        self._data[key] = sorted(values)
        self._write()

    @staticmethod
    def _check_facet(facet: str) -> None:
        if facet not in FACETS:
            raise ValueError(f"Unknown facet: {facet}")

    def available(self) -> FacetSet:
        with self._lock:
            return FacetSet(**{f: self._get_set(available_key(f)) for f in FACETS})

    def add_available(self, facet: str, values: set[str]) -> bool:
        """Union values into the available set; persist only if it grew."""
        self._check_facet(facet)
        with self._lock:
            current = self._get_set(available_key(facet))
            merged = current | values
            if len(merged) == len(current):
                return False
            self._put_set(available_key(facet), merged)
            logger.debug("Available %s grew: %s", facet, sorted(merged - current))
            return True

    def selection(self) -> Selection:
        with self._lock:
            return Selection(**{f: self._get_set(selected_key(f)) for f in FACETS})

    def set_selected(self, facet: str, value: str, selected: bool) -> None:
        """Select or unselect one value (explicit user action)."""
        self._check_facet(facet)
        with self._lock:
            current = self._get_set(selected_key(facet))
            if selected:
                current.add(value)
            else:
                current.discard(value)
            self._put_set(selected_key(facet), current)

    def replace_selected(self, facet: str, values: set[str]) -> None:
        self._check_facet(facet)
        with self._lock:
            self._put_set(selected_key(facet), set(values))

    def clear_selected(self, facet: str) -> None:
        self.replace_selected(facet, set())

    # -- persistence ----------------------------------------------------------

    def _read(self) -> dict | None:
        """Read and parse the JSON file; return None if missing or invalid."""
        if not os.path.isfile(self._file_path):
            return None
        try:
            with open(self._file_path, encoding="utf-8") as f:
                out = json.load(f)
            if not isinstance(out, dict):
                return None
            return out
        except (OSError, json.JSONDecodeError) as e:
            logger.debug("Could not read settings file %s: %s", self._file_path, e)
            return None

    def _write(self) -> None:
        """Write settings as JSON atomically; creates parent dir and file if needed."""
        os.makedirs(self._storage_path, exist_ok=True)
        tmp_fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=self._storage_path,
            delete=False,
            suffix=".tmp",
            encoding="utf-8",
        )
        tmp_path = tmp_fd.name
        try:
            json.dump(self._data, tmp_fd, indent=2)
            tmp_fd.close()
            os.replace(tmp_path, self._file_path)
            self.write_count += 1
        except Exception:
            tmp_fd.close()
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
