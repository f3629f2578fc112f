"""Main live vehicle tracker: polling, reconciliation and pointer interaction."""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Protocol

from .animation import MotionAnimator
from .config import TrackerConfig
from .feed_client import FeedError
from .labels import LabelInteractionController
from .line_filter import LineFilter, Selection
from .lines import DEFAULT_MODES, TransitMode
from .models import VehicleSnapshot
from .reconciler import EntityReconciler
from .scheduling import Cancelable, HostScheduler
from .storage import KeyValueStore
from .surface import RenderSurface
from .trip_lookup import TripLookup

logger = logging.getLogger(__name__)


class VehicleFeed(Protocol):
    def fetch(self) -> List[VehicleSnapshot]:
        ...


class LiveVehicleTracker:
    """
    Keeps a map surface in sync with a periodically polled vehicle feed.

    This class provides methods to:
    - Poll the feed on a fixed interval, paused while the map is hidden
    - Filter vehicles by line, with the selection persisted
    - Forward pointer and click events to the label state machine
    """

    def __init__(
        self,
        feed: VehicleFeed,
        surface: RenderSurface,
        scheduler: HostScheduler,
        store: Optional[KeyValueStore] = None,
        lookup: Optional[TripLookup] = None,
        config: Optional[TrackerConfig] = None,
        modes: Iterable[TransitMode] = DEFAULT_MODES,
    ):
        """
        Initialize the tracker.

        Args:
            feed: Anything with fetch() returning a snapshot batch.
            surface: Rendering surface for markers and labels.
            scheduler: Host timer and frame primitives.
            store: Persistence for the line selection. None keeps it in memory only.
            lookup: Optional trip table to resolve lines from trip ids.
            config: Tracker settings; defaults when None.
            modes: Transit modes defining known lines and colors.
        """
        self.config = config or TrackerConfig()
        self.feed = feed
        self.surface = surface
        self.scheduler = scheduler
        modes = tuple(modes)

        self.line_filter = LineFilter(store, modes)
        self.animator = MotionAnimator(scheduler)
        self.reconciler = EntityReconciler(
            surface,
            self.animator,
            self.line_filter,
            lookup=lookup,
            modes=modes,
            poll_interval_ms=self.config.poll_interval_ms,
            ms_per_pixel=self.config.ms_per_pixel,
            min_animation_ms=self.config.min_animation_ms,
            max_animation=self.config.max_animation_ms,
        )
        self.labels = LabelInteractionController(surface, self.reconciler.position_of, self.reconciler.label_text)
        self.reconciler.labels = self.labels

        self.running = False
        self.visible = True
        self.last_updated: Optional[datetime] = None
        self.last_error: Optional[Exception] = None
        self._timer: Optional[Cancelable] = None

    def poll_once(self) -> bool:
        """
        Fetch one batch and reconcile it.

        Returns:
            True if the batch was applied. On a feed failure the current
            vehicles are left untouched and False is returned.
        """
        try:
            snapshots = self.feed.fetch()
        except FeedError as e:
            logger.error(f"Poll failed: {e}")
            self.last_error = e
            return False

        self.reconciler.reconcile(snapshots)
        self.last_error = None
        self.last_updated = datetime.now()
        return True

    def start(self) -> None:
        """Poll now and then every poll interval."""
        if self.running:
            return
        self.running = True
        logger.info(f"Polling {self.config.feed_url} every {self.config.poll_interval_ms} ms")
        if self.visible:
            self._cycle()

    def stop(self) -> None:
        self.running = False
        self._cancel_timer()

    def set_visible(self, visible: bool) -> None:
        """
        Pause polling while the map is hidden; poll at once when shown again.
        """
        if visible == self.visible:
            return
        self.visible = visible
        if not visible:
            self._cancel_timer()
            logger.debug("Map hidden; polling paused")
        elif self.running:
            logger.debug("Map visible; polling resumed")
            self._cycle()

    def pointer_enter(self, entity_id: str) -> None:
        self.labels.pointer_enter(entity_id)

    def pointer_leave(self, entity_id: str) -> None:
        self.labels.pointer_leave(entity_id)

    def pointer_move(self, over_entity: Optional[bool] = None) -> None:
        self.labels.pointer_move(over_entity)

    def click(self, entity_id: Optional[str]) -> None:
        self.labels.click(entity_id)

    def toggle_line(self, line: str) -> Selection:
        """Toggle a line in the filter and drop vehicles that no longer pass."""
        selection = self.line_filter.toggle(line)
        removed = self.reconciler.refilter()
        if removed:
            logger.debug(f"Removed {removed} vehicles after toggling line {line}")
        return selection

    def cleanup(self) -> None:
        """Stop polling and release every vehicle, animation and label."""
        self.stop()
        self.reconciler.clear()
        self.animator.cancel_all()
        self.labels.clear()
        close = getattr(self.feed, "close", None)
        if close is not None:
            close()
        logger.info("Cleaned up tracker resources")

    def _cycle(self) -> None:
        self._timer = None
        if not self.running or not self.visible:
            return
        # Fixed interval, no backoff: the next poll is booked before this one runs
        self._timer = self.scheduler.call_later(self.config.poll_interval_ms, self._cycle)
        self.poll_once()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
