"""Heading estimation for vehicles whose feed bearing is missing or unreliable."""

import math
from typing import Optional

from .models import HeadingEstimate, LatLng

# Displacement (degrees lat or lon) below which a vehicle is considered stationary.
# Roughly 2 meters.
MOVEMENT_THRESHOLD_DEG = 2e-5

UNKNOWN_HEADING = HeadingEstimate(bearing=None, established=False)


def forward_azimuth(start: LatLng, end: LatLng) -> float:
    """
    Initial great-circle bearing from start to end.

    Args:
        start: (lat, lon) in degrees.
        end: (lat, lon) in degrees.

    Returns:
        Bearing in degrees clockwise from north, in [0, 360).
    """
    lat1, lat2 = math.radians(start[0]), math.radians(end[0])
    dlon = math.radians(end[1] - start[1])

    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)
    return math.degrees(math.atan2(y, x)) % 360.0


def has_moved(previous: LatLng, current: LatLng, threshold: float = MOVEMENT_THRESHOLD_DEG) -> bool:
    """True when the displacement exceeds the threshold in latitude or longitude."""
    return abs(current[0] - previous[0]) > threshold or abs(current[1] - previous[1]) > threshold


def estimate_heading(
    current: LatLng,
    bearing_deg: Optional[float],
    previous: Optional[LatLng],
    cached: HeadingEstimate = UNKNOWN_HEADING,
    threshold: float = MOVEMENT_THRESHOLD_DEG,
) -> HeadingEstimate:
    """
    Pick a heading for one vehicle.

    Rules are tried in order and the first that yields a value wins:
    a reported bearing greater than 0, the bearing of the displacement since
    the previous position, the cached established bearing, unknown.

    A reported bearing of exactly 0 is indistinguishable from "not reported"
    for this feed and is never taken as due north.

    Args:
        current: Position in this snapshot.
        bearing_deg: Bearing reported by the feed, if any.
        previous: Position in the previous snapshot, or None for a new vehicle.
        cached: The vehicle's heading from the previous cycle.
        threshold: Minimum displacement in degrees to infer a bearing.

    Returns:
        HeadingEstimate; once established, never reverts to unknown.
    """
    if bearing_deg is not None and math.isfinite(bearing_deg) and bearing_deg > 0:
        return HeadingEstimate(bearing=bearing_deg % 360.0, established=True)

    if previous is not None and has_moved(previous, current, threshold):
        return HeadingEstimate(bearing=forward_azimuth(previous, current), established=True)

    if cached.established:
        return HeadingEstimate(bearing=cached.bearing, established=True)

    return UNKNOWN_HEADING
