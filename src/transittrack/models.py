"""Data models for live vehicle tracking."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

LatLng = Tuple[float, float]  # (lat, lon) in degrees


def _as_float(value: Any) -> Optional[float]:
    """Coerce a feed value to a finite float, or None."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class VehicleSnapshot:
    """One vehicle's reported state at one poll instant."""
    id: Optional[str]
    lat: Optional[float]
    lon: Optional[float]
    line: Optional[str] = None  # Raw, un-normalized line identifier
    trip_id: Optional[str] = None
    headsign: Optional[str] = None
    bearing_deg: Optional[float] = None  # Clockwise from north; 0 means "not reported"
    speed_kmh: Optional[float] = None
    timestamp: Optional[float] = None

    @property
    def position(self) -> LatLng:
        return (self.lat, self.lon)

    def is_valid(self) -> bool:
        """True when the entry carries an id and a finite position."""
        return bool(self.id) and _as_float(self.lat) is not None and _as_float(self.lon) is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VehicleSnapshot":
        """
        Build a snapshot from one feed entry.

        Missing or unparseable fields become None; nothing is rejected here.
        """
        speed = _as_float(data.get("speedKmh"))
        if speed is not None and speed < 0:
            speed = None

        bearing = data.get("bearingDeg")
        if bearing is None:
            bearing = data.get("bearing")

        return cls(
            id=_as_str(data.get("id")),
            lat=_as_float(data.get("lat")),
            lon=_as_float(data.get("lon")),
            line=_as_str(data.get("line")),
            trip_id=_as_str(data.get("tripId")),
            headsign=_as_str(data.get("headsign") or data.get("dest")),
            bearing_deg=_as_float(bearing),
            speed_kmh=speed,
            timestamp=_as_float(data.get("timestamp")),
        )


@dataclass(frozen=True)
class HeadingEstimate:
    """Heading chosen for one entity in one poll cycle."""
    bearing: Optional[float]
    established: bool


@dataclass(frozen=True)
class TripInfo:
    """Static trip metadata used to enrich snapshots."""
    line: str
    headsign: Optional[str] = None


@dataclass(frozen=True)
class MarkerStyle:
    """How the rendering surface should draw one vehicle."""
    color: str
    shape: str  # "dot" when heading unknown, "arrow" when known
    rotation_deg: float = 0.0
    pop: bool = False  # One-shot transition when the heading first becomes known


class LabelTier(Enum):
    """Visual tier of a vehicle label."""
    HOVER = "hover"
    PINNED = "pinned"


@dataclass
class Label:
    """A label glued to one tracked vehicle."""
    entity_id: str
    position: LatLng
    text: str
    tier: LabelTier


@dataclass
class TrackedEntity:
    """The tracker's persistent notion of one vehicle across polls."""
    id: str
    normalized_line: str
    rendered_position: LatLng  # Last committed, possibly mid-tween, coordinate
    target_position: LatLng  # Latest snapshot coordinate
    last_snapshot: VehicleSnapshot
    last_known_bearing: Optional[float] = None
    bearing_established: bool = False
    headsign: Optional[str] = None
    pop: bool = False
    active_animation: Optional[Any] = field(default=None, repr=False)

    @property
    def heading(self) -> HeadingEstimate:
        return HeadingEstimate(self.last_known_bearing, self.bearing_established)
