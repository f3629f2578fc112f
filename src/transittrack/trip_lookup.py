"""Static GTFS trip table used to resolve trip ids to lines and headsigns."""

import io
import logging
import zipfile
from typing import Dict, Optional

import pandas as pd
import requests

from .models import TripInfo

logger = logging.getLogger(__name__)


def _clean(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


class TripLookup:
    """Maps trip ids to the line they run on."""

    def __init__(self):
        """Initialize an empty lookup."""
        self.trips: Dict[str, TripInfo] = {}

    def __len__(self) -> int:
        return len(self.trips)

    def resolve(self, trip_id: Optional[str]) -> Optional[TripInfo]:
        """Return the TripInfo for trip_id, or None if unknown."""
        if not trip_id:
            return None
        return self.trips.get(trip_id)

    def add(self, trip_id: str, line: str, headsign: Optional[str] = None) -> None:
        self.trips[trip_id] = TripInfo(line=line, headsign=headsign)

    def load_from_url(self, url: str, timeout: float = 60) -> None:
        """Download a GTFS static zip and load trips.txt and routes.txt from it."""
        logger.info(f"Downloading GTFS data from {url}")
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
            with zipfile.ZipFile(io.BytesIO(response.content)) as zip_file:
                with zip_file.open("trips.txt") as trips_file, zip_file.open("routes.txt") as routes_file:
                    self.load_frames(
                        pd.read_csv(trips_file, dtype=str),
                        pd.read_csv(routes_file, dtype=str),
                    )
        except Exception as e:
            logger.error(f"Failed to load GTFS data: {e}")
            raise

    def load_from_files(self, trips_path: str, routes_path: str) -> None:
        """Load trips.txt and routes.txt from local files."""
        logger.info("Loading GTFS trips from local files")
        self.load_frames(pd.read_csv(trips_path, dtype=str), pd.read_csv(routes_path, dtype=str))

    def load_frames(self, trips: pd.DataFrame, routes: pd.DataFrame) -> None:
        """
        Index trips by id, joined with their route's display name.

        The line is the route's short name, falling back to its long name
        and then to the route id.

        Args:
            trips: trips.txt contents (needs trip_id, route_id).
            routes: routes.txt contents (needs route_id).
        """
        for column in ("trip_id", "route_id"):
            if column not in trips.columns:
                raise ValueError(f"trips table is missing column '{column}'")
        if "route_id" not in routes.columns:
            raise ValueError("routes table is missing column 'route_id'")

        route_columns = [c for c in ("route_id", "route_short_name", "route_long_name") if c in routes.columns]
        merged = trips.merge(routes[route_columns], on="route_id", how="left")

        loaded = 0
        for row in merged.itertuples(index=False):
            trip_id = _clean(row.trip_id)
            if trip_id is None:
                continue
            line = (
                _clean(getattr(row, "route_short_name", None))
                or _clean(getattr(row, "route_long_name", None))
                or _clean(row.route_id)
            )
            if line is None:
                continue
            self.trips[trip_id] = TripInfo(line=line, headsign=_clean(getattr(row, "trip_headsign", None)))
            loaded += 1

        logger.info(f"Loaded {loaded} trips")

    def clear(self) -> None:
        """Clear all loaded data to free memory."""
        self.trips.clear()
        logger.info("Cleared trip data from memory")
