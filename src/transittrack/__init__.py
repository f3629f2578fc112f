"""TransitTrack - Smooth live transit vehicle positions from a polled snapshot feed."""

__version__ = "0.1.0"

from .models import VehicleSnapshot, TrackedEntity, HeadingEstimate, MarkerStyle, Label, LabelTier, TripInfo
from .heading import estimate_heading, forward_azimuth
from .animation import MotionAnimator, animation_duration_ms, ease_in_out_cubic
from .line_filter import LineFilter, ShowAll, ShowOnly, SHOW_ALL
from .labels import LabelInteractionController
from .reconciler import EntityReconciler
from .feed_client import FeedClient, FeedError, GtfsRealtimeFeedClient
from .trip_lookup import TripLookup
from .config import TrackerConfig
from .tracker import LiveVehicleTracker

__all__ = [
    "LiveVehicleTracker",
    "EntityReconciler",
    "MotionAnimator",
    "LabelInteractionController",
    "LineFilter",
    "ShowAll",
    "ShowOnly",
    "SHOW_ALL",
    "FeedClient",
    "FeedError",
    "GtfsRealtimeFeedClient",
    "TripLookup",
    "TrackerConfig",
    "VehicleSnapshot",
    "TrackedEntity",
    "HeadingEstimate",
    "MarkerStyle",
    "Label",
    "LabelTier",
    "TripInfo",
    "estimate_heading",
    "forward_azimuth",
    "animation_duration_ms",
    "ease_in_out_cubic",
]
