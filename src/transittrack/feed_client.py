"""Vehicle position feed fetchers (JSON snapshot feed and GTFS-Realtime)."""

import logging
from typing import Any, List, Optional

import requests

from .models import VehicleSnapshot

logger = logging.getLogger(__name__)

MS_TO_KMH = 3.6


class FeedError(Exception):
    """A poll cycle could not produce a snapshot batch."""


class FeedClient:
    """Fetches a JSON array of vehicle states from a fixed endpoint."""

    def __init__(self, url: str, timeout: float = 10, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            url: Feed endpoint returning a JSON array.
            timeout: Request timeout in seconds.
            session: Optional requests session to reuse connections.
        """
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self) -> List[VehicleSnapshot]:
        """
        Fetch one snapshot batch.

        Returns:
            One VehicleSnapshot per object in the array. Entries that are not
            objects are skipped; field validity is not checked here.

        Raises:
            FeedError: On network failure, non-2xx status or a malformed body.
        """
        payload = self._get_json()
        if not isinstance(payload, list):
            raise FeedError(f"Expected a JSON array from {self.url}, got {type(payload).__name__}")

        snapshots: List[VehicleSnapshot] = []
        for entry in payload:
            if not isinstance(entry, dict):
                logger.debug(f"Skipping non-object feed entry: {entry!r}")
                continue
            snapshots.append(VehicleSnapshot.from_dict(entry))

        logger.debug(f"Fetched {len(snapshots)} vehicles from {self.url}")
        return snapshots

    def _get_json(self) -> Any:
        logger.debug(f"Fetching {self.url}")
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FeedError(f"Failed to fetch {self.url}: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise FeedError(f"Malformed JSON from {self.url}: {e}") from e

    def close(self) -> None:
        self.session.close()


class GtfsRealtimeFeedClient(FeedClient):
    """Fetches vehicle positions from a GTFS-Realtime protobuf feed."""

    def fetch(self) -> List[VehicleSnapshot]:
        logger.debug(f"Fetching {self.url}")
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FeedError(f"Failed to fetch {self.url}: {e}") from e

        return self._parse_vehicles(response.content)

    def _parse_vehicles(self, feed_data: bytes) -> List[VehicleSnapshot]:
        """
        Parse VehiclePosition entities from GTFS-Realtime bytes.

        Args:
            feed_data: Raw protobuf bytes.

        Returns:
            List of VehicleSnapshot objects.
        """
        try:
            from google.protobuf.message import DecodeError
            from google.transit import gtfs_realtime_pb2
        except ImportError:
            logger.error("google.transit.gtfs_realtime_pb2 not installed")
            raise

        feed = gtfs_realtime_pb2.FeedMessage()
        try:
            feed.ParseFromString(feed_data)
        except DecodeError as e:
            raise FeedError(f"Malformed GTFS-Realtime feed from {self.url}: {e}") from e

        snapshots: List[VehicleSnapshot] = []
        for entity in feed.entity:
            if not entity.HasField("vehicle"):
                continue

            vehicle = entity.vehicle
            if not vehicle.HasField("position"):
                continue
            position = vehicle.position

            vehicle_id = vehicle.vehicle.id if vehicle.HasField("vehicle") and vehicle.vehicle.id else entity.id
            trip_id = vehicle.trip.trip_id if vehicle.HasField("trip") and vehicle.trip.trip_id else None
            route_id = vehicle.trip.route_id if vehicle.HasField("trip") and vehicle.trip.route_id else None

            snapshots.append(
                VehicleSnapshot(
                    id=vehicle_id or None,
                    lat=position.latitude,
                    lon=position.longitude,
                    # Without a trip id the route id is the best line we have
                    line=None if trip_id else route_id,
                    trip_id=trip_id,
                    bearing_deg=position.bearing if position.HasField("bearing") else None,
                    speed_kmh=position.speed * MS_TO_KMH if position.HasField("speed") else None,
                    timestamp=float(vehicle.timestamp) if vehicle.HasField("timestamp") else None,
                )
            )

        logger.debug(f"Parsed {len(snapshots)} vehicle positions")
        return snapshots
