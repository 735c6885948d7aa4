"""Tests for FeedCoordinator: polling streams, finished-event refresh, manual refresh."""

import shutil
import tempfile
import threading
import unittest
from unittest.mock import MagicMock, patch

from frigate_events.errors import InvalidURLError, NetworkError
from frigate_events.managers.facets import FacetTracker
from frigate_events.managers.settings import SettingsStore
from frigate_events.models import Event
from frigate_events.services.feed import FeedCoordinator


def _event(event_id, label="person", camera="front_door", zones=(), end_time=None):
    return Event(
        id=event_id,
        camera=camera,
        label=label,
        start_time=100.0,
        end_time=end_time,
        zones=tuple(zones),
    )


class _FeedTestCase(unittest.TestCase):

    def setUp(self):
        tmp = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmp, ignore_errors=True)
        self.store = SettingsStore(tmp, default_base_url="http://h")
        self.repository = MagicMock()
        self.repository.base_url = "http://h"
        self.repository.fetch_cameras.return_value = []
        self.config = {
            "IN_PROGRESS_POLL_SECONDS": 60,
            "EVENTS_POLL_SECONDS": 60,
            "FINISHED_REFRESH_DELAY_SECONDS": 0,
            "REFRESH_DELAY_SECONDS": 0,
            "EVENT_LIMIT": 20,
            "ORDER_BY": None,
        }
        self.coordinator = FeedCoordinator(self.config, self.repository, self.store, FacetTracker(self.store))

    def _calls(self, in_progress):
        return [c for c in self.repository.fetch_events.call_args_list if c.kwargs["in_progress"] is in_progress]


class TestInProgressReconciliation(_FeedTestCase):

    def setUp(self):
        super().setUp()
        self.batches = [[_event("A"), _event("B")], [_event("B")]]
        self.completed = [_event("A", end_time=110.0)]

        def fetch_events(limit=None, in_progress=False, sort_by=None):
            if in_progress:
                return self.batches.pop(0)
            return self.completed

        self.repository.fetch_events.side_effect = fetch_events

    def test_finished_event_triggers_one_completed_fetch(self):
        with patch.object(self.coordinator, "_spawn", side_effect=lambda target, name: target()):
            self.assertEqual(self.coordinator.poll_in_progress(), set())
            self.assertEqual(self._calls(False), [])

            finished = self.coordinator.poll_in_progress()

        self.assertEqual(finished, {"A"})
        self.assertEqual(len(self._calls(False)), 1)
        self.assertEqual(self.coordinator.finished_refresh_count, 1)
        self.assertEqual([e.id for e in self.coordinator.completed_events], ["A"])
        self.assertEqual([e.id for e in self.coordinator.in_progress_events], ["B"])

    def test_no_trigger_when_disabled(self):
        with patch.object(self.coordinator, "_spawn") as spawn:
            self.coordinator.poll_in_progress()
            finished = self.coordinator.poll_in_progress(trigger_refresh=False)
        self.assertEqual(finished, {"A"})
        spawn.assert_not_called()
        self.assertEqual(self._calls(False), [])

    def test_fetch_arguments(self):
        with patch.object(self.coordinator, "_spawn"):
            self.coordinator.poll_in_progress()
        self.repository.fetch_events.assert_called_once_with(limit=20, in_progress=True, sort_by=None)


class TestBackgroundPolls(_FeedTestCase):

    def test_error_keeps_previous_list(self):
        self.repository.fetch_events.side_effect = [[_event("A", end_time=110.0)], NetworkError("down")]
        self.assertTrue(self.coordinator.poll_completed())
        with self.assertLogs("frigate-events", level="WARNING") as logs:
            self.assertFalse(self.coordinator.poll_completed())
        self.assertIn("down", logs.output[0])
        self.assertEqual([e.id for e in self.coordinator.completed_events], ["A"])
        self.assertIsNone(self.coordinator.last_refresh_error)

    def test_in_progress_error_keeps_previous_list(self):
        self.repository.fetch_events.side_effect = [[_event("A")], NetworkError("down")]
        self.coordinator.poll_in_progress()
        with self.assertLogs("frigate-events", level="WARNING"):
            self.assertEqual(self.coordinator.poll_in_progress(), set())
        self.assertEqual([e.id for e in self.coordinator.in_progress_events], ["A"])

    def test_tick_skipped_while_fetch_running(self):
        self.coordinator._completed_guard.acquire()
        try:
            self.assertFalse(self.coordinator.poll_completed())
        finally:
            self.coordinator._completed_guard.release()
        self.repository.fetch_events.assert_not_called()

    def test_in_progress_tick_skipped_while_fetch_running(self):
        self.coordinator._in_progress_guard.acquire()
        try:
            self.assertEqual(self.coordinator.poll_in_progress(), set())
        finally:
            self.coordinator._in_progress_guard.release()
        self.repository.fetch_events.assert_not_called()

    def test_finished_refresh_waits_for_running_fetch(self):
        first_started = threading.Event()
        release_first = threading.Event()
        results = [[_event("old", end_time=110.0)], [_event("new", end_time=120.0)]]

        def fetch_events(limit=None, in_progress=False, sort_by=None):
            batch = results.pop(0)
            if batch[0].id == "old":
                first_started.set()
                release_first.wait(5)
            return batch

        self.repository.fetch_events.side_effect = fetch_events

        tick = threading.Thread(target=self.coordinator.poll_completed)
        tick.start()
        self.assertTrue(first_started.wait(5))

        finished = threading.Thread(target=self.coordinator._finished_refresh)
        finished.start()
        finished.join(0.2)
        self.assertTrue(finished.is_alive())
        self.assertEqual(self.repository.fetch_events.call_count, 1)

        release_first.set()
        tick.join(5)
        finished.join(5)

        self.assertFalse(finished.is_alive())
        self.assertEqual(self.repository.fetch_events.call_count, 2)
        self.assertEqual([e.id for e in self.coordinator.completed_events], ["new"])
        self.assertEqual(self.coordinator.finished_refresh_count, 1)

    def test_observed_facets_are_merged(self):
        self.repository.fetch_events.return_value = [_event("A", label="car", zones=["driveway"], end_time=1.0)]
        self.coordinator.poll_completed()
        available = self.store.available()
        self.assertEqual(available.labels, {"car"})
        self.assertEqual(available.zones, {"driveway"})


class TestManualRefresh(_FeedTestCase):

    def test_refresh_order_and_success(self):
        self.repository.fetch_events.return_value = []
        self.repository.fetch_cameras.return_value = ["porch", "garage"]
        self.store.set_base_url("http://frigate:5000")

        self.assertIsNone(self.coordinator.refresh())

        self.repository.set_base_url.assert_called_once_with("http://frigate:5000")
        flags = [c.kwargs["in_progress"] for c in self.repository.fetch_events.call_args_list]
        self.assertEqual(flags, [False, True])
        self.assertEqual(self.store.available().cameras, {"porch", "garage"})
        self.assertIsNotNone(self.coordinator.completed_updated_at)
        self.assertIsNotNone(self.coordinator.in_progress_updated_at)

    def test_refresh_surfaces_first_error_and_continues(self):
        self.repository.fetch_events.side_effect = [NetworkError("completed failed"), NetworkError("in-progress failed")]
        with self.assertLogs("frigate-events", level="ERROR"):
            error = self.coordinator.refresh()
        self.assertEqual(error, "completed failed")
        self.assertEqual(self.coordinator.last_refresh_error, "completed failed")
        self.assertEqual(self.repository.fetch_events.call_count, 2)
        self.repository.fetch_cameras.assert_called_once()

    def test_camera_error_only_logged(self):
        self.repository.fetch_events.return_value = []
        self.repository.fetch_cameras.side_effect = NetworkError("config failed")
        with self.assertLogs("frigate-events", level="WARNING"):
            self.assertIsNone(self.coordinator.refresh())

    def test_invalid_url_aborts_refresh(self):
        self.repository.set_base_url.side_effect = InvalidURLError("bad url")
        with self.assertLogs("frigate-events", level="ERROR"):
            self.assertEqual(self.coordinator.refresh(), "bad url")
        self.repository.fetch_events.assert_not_called()

    def test_success_clears_previous_error(self):
        self.repository.fetch_events.side_effect = [NetworkError("x"), [], [], []]
        with self.assertLogs("frigate-events", level="ERROR"):
            self.coordinator.refresh()
        self.assertEqual(self.coordinator.last_refresh_error, "x")
        self.coordinator.refresh()
        self.assertIsNone(self.coordinator.last_refresh_error)


class TestViews(_FeedTestCase):

    def setUp(self):
        super().setUp()
        self.repository.fetch_events.side_effect = lambda limit=None, in_progress=False, sort_by=None: (
            [_event("live", label="person")]
            if in_progress
            else [_event("c1", label="car", end_time=130.0), _event("c2", label="person", end_time=110.0)]
        )
        self.coordinator.refresh()

    def test_filtered_views_follow_selection(self):
        self.store.set_selected("labels", "car", True)
        self.assertEqual([e.id for e in self.coordinator.filtered_completed()], ["c1"])
        self.assertEqual(self.coordinator.filtered_in_progress(), [])
        self.assertEqual(len(self.coordinator.completed_events), 2)

    def test_snapshot(self):
        snap = self.coordinator.snapshot(now=150.0)
        self.assertEqual(snap["totals"], {"completed": 2, "in_progress": 1})
        self.assertEqual(snap["in_progress"][0]["live_duration"], 50.0)
        self.assertIsNone(snap["in_progress"][0]["duration"])
        self.assertEqual(snap["completed"][0]["duration"], 30.0)
        self.assertEqual(snap["completed"][0]["thumbnail_url"], "http://h/api/events/c1/thumbnail.jpg")
        self.assertIsNone(snap["error"])


class TestScheduling(_FeedTestCase):

    def test_start_and_stop(self):
        self.repository.fetch_events.return_value = []
        self.coordinator.start()
        self.addCleanup(self.coordinator.stop)
        self.assertTrue(self.coordinator.running)
        self.assertEqual(len(self.coordinator._scheduler.jobs), 2)
        self.coordinator.start()
        self.assertEqual(len(self.coordinator._scheduler.jobs), 2)
        self.coordinator.stop()
        self.assertFalse(self.coordinator.running)
        self.assertEqual(self.coordinator._scheduler.jobs, [])


if __name__ == "__main__":
    unittest.main()
