"""
Feed coordinator - keeps the completed and in-progress event lists current.

Two polling streams run on a private schedule.Scheduler driven by one daemon
thread; each due job runs on its own worker thread so a slow completed fetch
never delays the in-progress stream. Each stream has a single-flight guard: a
scheduled tick is skipped while the previous fetch of that stream is still
running. When an in-progress event disappears from the in-progress list, one
extra completed fetch runs shortly after so the finished event shows up
without waiting for the next completed tick; that extra fetch waits for the
guard instead of skipping, so it is always the last write.

All writes to the working lists go through _state_lock.
"""

import logging
import threading
import time
from typing import Any, Callable

import schedule

from frigate_events.constants import (
    DEFAULT_EVENTS_POLL_SECONDS,
    DEFAULT_FINISHED_REFRESH_DELAY_SECONDS,
    DEFAULT_IN_PROGRESS_POLL_SECONDS,
    DEFAULT_REFRESH_DELAY_SECONDS,
    SCHEDULER_TICK_SECONDS,
)
from frigate_events.errors import FrigateAPIError
from frigate_events.managers.facets import FacetTracker
from frigate_events.managers.filters import apply_filters
from frigate_events.managers.settings import SettingsStore
from frigate_events.models import Event
from frigate_events.services.frigate_api import FrigateEventRepository

logger = logging.getLogger("frigate-events")


class FeedCoordinator:
    """Owns the polling loops, in-progress reconciliation, and filtered views."""

    def __init__(
        self,
        config: dict,
        repository: FrigateEventRepository,
        store: SettingsStore,
        facet_tracker: FacetTracker,
    ):
        self.config = config
        self.repository = repository
        self.store = store
        self.facet_tracker = facet_tracker
        self.started_at = time.time()

        self._in_progress_seconds = config.get("IN_PROGRESS_POLL_SECONDS", DEFAULT_IN_PROGRESS_POLL_SECONDS)
        self._events_seconds = config.get("EVENTS_POLL_SECONDS", DEFAULT_EVENTS_POLL_SECONDS)
        self._finished_delay = config.get("FINISHED_REFRESH_DELAY_SECONDS", DEFAULT_FINISHED_REFRESH_DELAY_SECONDS)
        self._refresh_delay = config.get("REFRESH_DELAY_SECONDS", DEFAULT_REFRESH_DELAY_SECONDS)
        self._event_limit = config.get("EVENT_LIMIT")
        self._order_by = config.get("ORDER_BY")

        self._state_lock = threading.RLock()
        self._completed: list[Event] = []
        self._in_progress: list[Event] = []
        self.completed_updated_at: float | None = None
        self.in_progress_updated_at: float | None = None
        self.last_refresh_error: str | None = None
        self.finished_refresh_count = 0

        # Single-flight guards, one per stream
        self._completed_guard = threading.Lock()
        self._in_progress_guard = threading.Lock()

        self._scheduler = schedule.Scheduler()
        self._stop_event = threading.Event()
        self._scheduler_thread: threading.Thread | None = None

    # -- working sets ---------------------------------------------------------

    @property
    def completed_events(self) -> list[Event]:
        with self._state_lock:
            return list(self._completed)

    @property
    def in_progress_events(self) -> list[Event]:
        with self._state_lock:
            return list(self._in_progress)

    def filtered_completed(self) -> list[Event]:
        return apply_filters(self.completed_events, self.store.selection())

    def filtered_in_progress(self) -> list[Event]:
        return apply_filters(self.in_progress_events, self.store.selection())

    # -- fetch steps (raise FrigateAPIError) ----------------------------------

    def _fetch(self, in_progress: bool) -> list[Event]:
        return self.repository.fetch_events(
            limit=self._event_limit,
            in_progress=in_progress,
            sort_by=self._order_by,
        )

    def _load_completed(self) -> list[Event]:
        events = self._fetch(in_progress=False)
        with self._state_lock:
            self._completed = events
            self.completed_updated_at = time.time()
        self.facet_tracker.merge_observed(events)
        logger.debug("Fetched %d completed event(s)", len(events))
        return events

    def _load_in_progress(self) -> set[str]:
        """Replace the in-progress list; return ids that are no longer in progress."""
        with self._state_lock:
            previous_ids = {e.id for e in self._in_progress}
        events = self._fetch(in_progress=True)
        with self._state_lock:
            self._in_progress = events
            self.in_progress_updated_at = time.time()
        self.facet_tracker.merge_observed(events)
        current_ids = {e.id for e in events}
        return previous_ids - current_ids

    # -- background polls -----------------------------------------------------

    def poll_completed(self, wait: bool = False) -> bool:
        """Completed-stream tick. Errors are logged and the previous list kept.

        wait=False skips the tick if a completed fetch is already running.
        Returns True if the list was replaced.
        """
        if not self._completed_guard.acquire(blocking=wait):
            logger.debug("Completed-events fetch still running, skipping tick")
            return False
        try:
            self._load_completed()
            return True
        except FrigateAPIError as e:
            logger.warning("Background fetch of completed events failed: %s", e.message)
            return False
        finally:
            self._completed_guard.release()

    def poll_in_progress(self, trigger_refresh: bool = True) -> set[str]:
        """In-progress-stream tick. Returns the ids that just finished.

        When trigger_refresh is set and any event finished, one extra completed
        fetch is started after a short delay.
        """
        if not self._in_progress_guard.acquire(blocking=False):
            logger.debug("In-progress fetch still running, skipping tick")
            return set()
        try:
            finished_ids = self._load_in_progress()
        except FrigateAPIError as e:
            logger.warning("Background fetch of in-progress events failed: %s", e.message)
            return set()
        finally:
            self._in_progress_guard.release()

        if finished_ids and trigger_refresh:
            logger.info(
                "In-progress event(s) finished: %s. Refreshing completed events in %.1fs",
                ", ".join(sorted(finished_ids)),
                self._finished_delay,
            )
            self._spawn(self._finished_refresh, "finished-refresh")
        return finished_ids

    def _finished_refresh(self) -> None:
        if self._finished_delay:
            time.sleep(self._finished_delay)
        with self._state_lock:
            self.finished_refresh_count += 1
        self.poll_completed(wait=True)

    # -- manual refresh -------------------------------------------------------

    def refresh(self) -> str | None:
        """User-triggered reload of both lists and the camera list.

        Returns a displayable error message for the first failed event fetch,
        or None. Later steps still run after a failure.
        """
        errors: list[str] = []
        try:
            self.repository.set_base_url(self.store.get_base_url())
        except FrigateAPIError as e:
            logger.error("Cannot refresh: %s", e.message)
            self.last_refresh_error = e.message
            return e.message

        if self._refresh_delay:
            time.sleep(self._refresh_delay)

        with self._completed_guard:
            try:
                self._load_completed()
            except FrigateAPIError as e:
                logger.error("Error fetching events: %s", e.message)
                errors.append(e.message)

        with self._in_progress_guard:
            try:
                self._load_in_progress()
            except FrigateAPIError as e:
                logger.error("Error fetching in-progress events: %s", e.message)
                errors.append(e.message)

        try:
            cameras = self.repository.fetch_cameras()
            self.facet_tracker.merge_cameras(cameras)
        except FrigateAPIError as e:
            logger.warning("Error fetching available cameras: %s", e.message)

        message = errors[0] if errors else None
        self.last_refresh_error = message
        return message

    # -- scheduling -----------------------------------------------------------

    def _spawn(self, target: Callable[[], Any], name: str) -> None:
        threading.Thread(target=target, name=name, daemon=True).start()

    def _run_scheduler(self) -> None:
        """Background thread for the two polling streams."""
        while not self._stop_event.is_set():
            self._scheduler.run_pending()
            self._stop_event.wait(SCHEDULER_TICK_SECONDS)

    @property
    def running(self) -> bool:
        return self._scheduler_thread is not None and self._scheduler_thread.is_alive()

    def start(self) -> None:
        """Start both polling streams (idempotent)."""
        if self.running:
            return
        self._stop_event.clear()
        self._scheduler.clear()
        self._scheduler.every(self._in_progress_seconds).seconds.do(
            self._spawn, self.poll_in_progress, "in-progress-poll"
        )
        self._scheduler.every(self._events_seconds).seconds.do(
            self._spawn, self.poll_completed, "completed-poll"
        )
        logger.info(
            "Polling in-progress events every %ss and completed events every %ss",
            self._in_progress_seconds,
            self._events_seconds,
        )
        self._scheduler_thread = threading.Thread(
            target=self._run_scheduler, name="feed-scheduler", daemon=True
        )
        self._scheduler_thread.start()

    def stop(self) -> None:
        """Stop scheduling new polls. In-flight fetches finish on their own."""
        logger.info("Stopping feed polling...")
        self._stop_event.set()
        self._scheduler.clear()
        if self._scheduler_thread is not None:
            self._scheduler_thread.join(timeout=5)
            self._scheduler_thread = None

    # -- views ----------------------------------------------------------------

    def snapshot(self, now: float | None = None) -> dict[str, Any]:
        """Filtered feed for the JSON API."""
        if now is None:
            now = time.time()
        base_url = self.repository.base_url
        completed = self.filtered_completed()
        in_progress = self.filtered_in_progress()
        with self._state_lock:
            totals = {"completed": len(self._completed), "in_progress": len(self._in_progress)}
            completed_at = self.completed_updated_at
            in_progress_at = self.in_progress_updated_at
        return {
            "in_progress": [e.to_dict(base_url, now) for e in in_progress],
            "completed": [e.to_dict(base_url, now) for e in completed],
            "totals": totals,
            "completed_updated_at": completed_at,
            "in_progress_updated_at": in_progress_at,
            "error": self.last_refresh_error,
        }
