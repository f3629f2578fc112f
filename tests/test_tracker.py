"""Tests for LiveVehicleTracker polling and wiring."""

import json
import unittest
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add src to path so we can import transittrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from transittrack.config import TrackerConfig
from transittrack.feed_client import FeedClient, FeedError
from transittrack.line_filter import SELECTION_KEY, ShowOnly
from transittrack.models import LabelTier, VehicleSnapshot
from transittrack.scheduling import ManualScheduler
from transittrack.storage import MemoryStore
from transittrack.surface import InMemorySurface
from transittrack.tracker import LiveVehicleTracker


def batch(*vehicles):
    return [VehicleSnapshot(id=v, lat=59.3 + i * 0.01, lon=18.0, line=line) for i, (v, line) in enumerate(vehicles)]


class TestLiveVehicleTracker(unittest.TestCase):
    """Test the poll cycle and event passthroughs."""

    def setUp(self):
        self.feed = MagicMock()
        self.feed.fetch.return_value = batch(("t1", "14"), ("t2", "17"))
        self.surface = InMemorySurface()
        self.scheduler = ManualScheduler()
        self.store = MemoryStore()
        self.tracker = LiveVehicleTracker(
            self.feed,
            self.surface,
            self.scheduler,
            store=self.store,
            config=TrackerConfig(poll_interval_ms=3000),
        )

    def test_start_polls_now_and_on_interval(self):
        """Test start polls now and on interval."""
        self.tracker.start()
        self.assertEqual(self.feed.fetch.call_count, 1)
        self.assertEqual(set(self.surface.markers), {"t1", "t2"})

        self.scheduler.advance(3000)
        self.assertEqual(self.feed.fetch.call_count, 2)
        self.scheduler.advance(6000)
        self.assertEqual(self.feed.fetch.call_count, 4)

    def test_feed_failure_keeps_state_and_retries(self):
        """Test feed failure keeps state and retries."""
        self.tracker.start()
        self.feed.fetch.side_effect = FeedError("503")

        self.scheduler.advance(3000)

        self.assertEqual(set(self.surface.markers), {"t1", "t2"})
        self.assertIsInstance(self.tracker.last_error, FeedError)

        self.feed.fetch.side_effect = None
        self.feed.fetch.return_value = batch(("t1", "14"))
        self.scheduler.advance(3000)

        self.assertEqual(self.feed.fetch.call_count, 3)
        self.assertEqual(set(self.surface.markers), {"t1"})
        self.assertIsNone(self.tracker.last_error)

    def test_out_of_range_entry_does_not_abort_poll(self):
        """Test a batch with one unparseable number still tracks the valid vehicles."""
        response = MagicMock()
        response.json.return_value = [
            {"id": "bad", "lat": 10 ** 400, "lon": 18.0, "line": "14"},
            {"id": "t1", "lat": 59.334, "lon": 18.060, "line": "14"},
        ]
        session = MagicMock()
        session.get.return_value = response
        tracker = LiveVehicleTracker(FeedClient("http://test", session=session), self.surface, self.scheduler)

        self.assertTrue(tracker.poll_once())
        self.assertEqual(set(self.surface.markers), {"t1"})

    def test_poll_once_reports_failure(self):
        """Test poll once reports failure."""
        self.feed.fetch.side_effect = FeedError("timeout")
        self.assertFalse(self.tracker.poll_once())
        self.assertIsNone(self.tracker.last_updated)

    def test_hidden_map_does_not_poll(self):
        """Test hidden map does not poll."""
        self.tracker.start()
        self.tracker.set_visible(False)
        self.scheduler.advance(10000)
        self.assertEqual(self.feed.fetch.call_count, 1)
        self.assertEqual(self.scheduler.pending_timers, 0)

        self.tracker.set_visible(True)
        self.assertEqual(self.feed.fetch.call_count, 2)
        self.scheduler.advance(3000)
        self.assertEqual(self.feed.fetch.call_count, 3)

    def test_visibility_before_start_does_not_poll(self):
        """Test visibility before start does not poll."""
        self.tracker.set_visible(False)
        self.tracker.set_visible(True)
        self.feed.fetch.assert_not_called()

    def test_stop(self):
        """Test stop."""
        self.tracker.start()
        self.tracker.stop()
        self.scheduler.advance(10000)
        self.assertEqual(self.feed.fetch.call_count, 1)

    def test_toggle_line_removes_vehicles_and_persists(self):
        """Test toggle line removes vehicles and persists."""
        self.tracker.poll_once()
        self.tracker.click("t2")

        selection = self.tracker.toggle_line("17")

        self.assertIsInstance(selection, ShowOnly)
        self.assertEqual(set(self.surface.markers), {"t1"})
        self.assertEqual(self.surface.labels, {})
        self.assertNotIn("17", json.loads(self.store.load(SELECTION_KEY)))

    def test_pointer_passthrough(self):
        """Test pointer passthrough."""
        self.tracker.poll_once()
        self.tracker.pointer_enter("t1")
        self.assertEqual(self.surface.labels[LabelTier.HOVER].text, "14 → ?")
        self.tracker.pointer_leave("t1")
        self.tracker.pointer_enter("t2")
        self.tracker.pointer_move(over_entity=False)
        self.assertEqual(self.surface.labels, {})

    def test_cleanup_releases_everything(self):
        """Test cleanup releases everything."""
        self.tracker.start()
        self.feed.fetch.return_value = [VehicleSnapshot(id="t1", lat=59.5, lon=18.5, line="14")]
        self.scheduler.advance(3000)
        self.tracker.click("t1")

        self.tracker.cleanup()

        self.assertEqual(self.surface.markers, {})
        self.assertEqual(self.surface.labels, {})
        self.assertEqual(self.tracker.animator.active_count, 0)
        self.assertEqual(self.scheduler.pending_timers, 0)
        self.feed.close.assert_called_once()


class TestTrackerConfig(unittest.TestCase):
    """Test configuration parsing."""

    def test_defaults(self):
        """Test defaults."""
        config = TrackerConfig()
        self.assertEqual(config.poll_interval_ms, 3000)
        self.assertEqual(config.max_animation_ms, 2500)

    def test_max_animation_follows_interval(self):
        """Test max animation follows interval."""
        self.assertEqual(TrackerConfig(poll_interval_ms=2000).max_animation_ms, 1700)

    def test_from_env(self):
        """Test from env."""
        config = TrackerConfig.from_env({
            "TRANSITTRACK_FEED_URL": "http://feed/vehicles",
            "TRANSITTRACK_POLL_MS": "5000",
            "TRANSITTRACK_STORAGE": "/tmp/tt.json",
        })
        self.assertEqual(config.feed_url, "http://feed/vehicles")
        self.assertEqual(config.poll_interval_ms, 5000)
        self.assertEqual(config.storage_path, "/tmp/tt.json")

    def test_invalid_values(self):
        """Test invalid values."""
        with self.assertRaises(ValueError):
            TrackerConfig.from_env({"TRANSITTRACK_POLL_MS": "fast"})
        with self.assertRaises(ValueError):
            TrackerConfig(poll_interval_ms=0)


if __name__ == "__main__":
    unittest.main()
