"""Tests for the vehicle feed clients."""

import unittest
import sys
from pathlib import Path
from unittest.mock import MagicMock

import requests

# Add src to path so we can import transittrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from transittrack.feed_client import FeedClient, FeedError, GtfsRealtimeFeedClient
from transittrack.models import VehicleSnapshot

try:
    from google.transit import gtfs_realtime_pb2
except ImportError:
    gtfs_realtime_pb2 = None


def mock_session(payload=None, status_error=None, json_error=None, content=b""):
    response = MagicMock()
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    response.content = content
    session = MagicMock()
    session.get.return_value = response
    return session


class TestVehicleSnapshot(unittest.TestCase):
    """Test lenient parsing of feed entries."""

    def test_from_dict(self):
        """Test from dict."""
        snapshot = VehicleSnapshot.from_dict({
            "id": "t1", "lat": "59.334", "lon": 18.060, "line": "14",
            "dest": "Fruängen", "speedKmh": 48, "bearing": 190,
        })
        self.assertEqual(snapshot.id, "t1")
        self.assertEqual(snapshot.lat, 59.334)
        self.assertEqual(snapshot.headsign, "Fruängen")
        self.assertEqual(snapshot.bearing_deg, 190.0)
        self.assertTrue(snapshot.is_valid())

    def test_bad_values_become_none(self):
        """Test bad values become none."""
        snapshot = VehicleSnapshot.from_dict({"id": "t1", "lat": "north", "speedKmh": -3, "bearingDeg": None})
        self.assertIsNone(snapshot.lat)
        self.assertIsNone(snapshot.lon)
        self.assertIsNone(snapshot.speed_kmh)
        self.assertIsNone(snapshot.bearing_deg)
        self.assertFalse(snapshot.is_valid())

    def test_trip_id(self):
        """Test trip id."""
        snapshot = VehicleSnapshot.from_dict({"id": 7, "lat": 1, "lon": 2, "tripId": "abc"})
        self.assertEqual(snapshot.id, "7")
        self.assertEqual(snapshot.trip_id, "abc")
        self.assertIsNone(snapshot.line)


class TestFeedClient(unittest.TestCase):
    """Test JSON feed fetching and its failure modes."""

    def test_fetch_parses_array(self):
        """Test fetch parses array."""
        session = mock_session([
            {"id": "t1", "lat": 59.334, "lon": 18.060, "line": "14", "bearingDeg": 0},
            "garbage",
            {"id": "t2", "lat": 59.343, "lon": 18.020, "tripId": "trip-17"},
        ])
        client = FeedClient("http://test/vehicles", session=session)

        snapshots = client.fetch()

        self.assertEqual([s.id for s in snapshots], ["t1", "t2"])
        self.assertEqual(snapshots[0].bearing_deg, 0.0)
        self.assertEqual(snapshots[1].trip_id, "trip-17")
        session.get.assert_called_once_with("http://test/vehicles", timeout=10)

    def test_network_error(self):
        """Test network error."""
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(FeedError):
            FeedClient("http://test", session=session).fetch()

    def test_http_error_status(self):
        """Test http error status."""
        session = mock_session(status_error=requests.HTTPError("503 Server Error"))
        with self.assertRaises(FeedError):
            FeedClient("http://test", session=session).fetch()

    def test_malformed_json(self):
        """Test malformed json."""
        session = mock_session(json_error=ValueError("Expecting value"))
        with self.assertRaises(FeedError):
            FeedClient("http://test", session=session).fetch()

    def test_non_array_body(self):
        """Test non array body."""
        session = mock_session({"vehicles": []})
        with self.assertRaises(FeedError):
            FeedClient("http://test", session=session).fetch()

    def test_overflowing_number_drops_only_that_entry(self):
        """Test an out-of-range number invalidates its entry without aborting the batch."""
        session = mock_session([
            {"id": "bad", "lat": 10 ** 400, "lon": 18.0, "line": "14"},
            {"id": "t1", "lat": 59.334, "lon": 18.060, "line": "14"},
        ])

        snapshots = FeedClient("http://test", session=session).fetch()

        self.assertEqual([s.id for s in snapshots], ["bad", "t1"])
        self.assertIsNone(snapshots[0].lat)
        self.assertFalse(snapshots[0].is_valid())
        self.assertTrue(snapshots[1].is_valid())


@unittest.skipIf(gtfs_realtime_pb2 is None, "gtfs-realtime bindings not installed")
class TestGtfsRealtimeFeedClient(unittest.TestCase):
    """Test VehiclePosition parsing."""

    @staticmethod
    def _create_feed() -> bytes:
        feed = gtfs_realtime_pb2.FeedMessage()
        feed.header.gtfs_realtime_version = "2.0"

        entity = feed.entity.add()
        entity.id = "e1"
        vehicle = entity.vehicle
        vehicle.vehicle.id = "v1"
        vehicle.trip.trip_id = "trip-14"
        vehicle.position.latitude = 59.334
        vehicle.position.longitude = 18.06
        vehicle.position.bearing = 90
        vehicle.position.speed = 10
        vehicle.timestamp = 1700000000

        entity = feed.entity.add()
        entity.id = "e2"
        vehicle = entity.vehicle
        vehicle.trip.route_id = "17"
        vehicle.position.latitude = 59.343
        vehicle.position.longitude = 18.02

        # Trip updates are not vehicle positions
        entity = feed.entity.add()
        entity.id = "e3"
        entity.trip_update.trip.trip_id = "other"

        return feed.SerializeToString()

    def test_parses_vehicle_positions(self):
        """Test parses vehicle positions."""
        session = mock_session(content=self._create_feed())
        snapshots = GtfsRealtimeFeedClient("http://test/vp", session=session).fetch()

        self.assertEqual(len(snapshots), 2)
        first, second = snapshots
        self.assertEqual(first.id, "v1")
        self.assertEqual(first.trip_id, "trip-14")
        self.assertIsNone(first.line)
        self.assertAlmostEqual(first.lat, 59.334, places=4)
        self.assertEqual(first.bearing_deg, 90)
        self.assertAlmostEqual(first.speed_kmh, 36.0)
        self.assertEqual(first.timestamp, 1700000000)

        self.assertEqual(second.id, "e2")
        self.assertEqual(second.line, "17")
        self.assertIsNone(second.bearing_deg)
        self.assertIsNone(second.speed_kmh)

    def test_http_error_status(self):
        """Test http error status."""
        session = mock_session(status_error=requests.HTTPError("404"))
        with self.assertRaises(FeedError):
            GtfsRealtimeFeedClient("http://test/vp", session=session).fetch()


if __name__ == "__main__":
    unittest.main()
