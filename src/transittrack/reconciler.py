"""Reconciles each snapshot batch against the table of tracked vehicles."""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Tuple

from .animation import (
    MIN_ANIMATION_MS,
    MS_PER_PIXEL,
    MotionAnimator,
    animation_duration_ms,
    max_animation_ms,
)
from .heading import estimate_heading
from .labels import LabelInteractionController, format_label_text
from .line_filter import LineFilter
from .lines import DEFAULT_MODES, TransitMode, color_for_line, normalize_line
from .models import LatLng, MarkerStyle, TrackedEntity, VehicleSnapshot
from .surface import RenderSurface
from .trip_lookup import TripLookup

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 3000


class EntityReconciler:
    """
    Owns the table of tracked vehicles.

    Each call to reconcile() diffs one batch against the table: vehicles
    seen for the first time are drawn at rest, known vehicles are tweened
    from wherever they are currently drawn to their new position, and
    vehicles missing from the batch (or filtered out) are retired.
    """

    def __init__(
        self,
        surface: RenderSurface,
        animator: MotionAnimator,
        line_filter: LineFilter,
        labels: Optional[LabelInteractionController] = None,
        lookup: Optional[TripLookup] = None,
        modes: Iterable[TransitMode] = DEFAULT_MODES,
        poll_interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
        ms_per_pixel: float = MS_PER_PIXEL,
        min_animation_ms: float = MIN_ANIMATION_MS,
        max_animation: Optional[float] = None,
    ):
        self.surface = surface
        self.animator = animator
        self.line_filter = line_filter
        self.labels = labels
        self.lookup = lookup
        self.modes = tuple(modes)
        self.ms_per_pixel = ms_per_pixel
        self.max_animation_ms = max_animation if max_animation is not None else max_animation_ms(poll_interval_ms)
        self.min_animation_ms = min(min_animation_ms, self.max_animation_ms)
        self._entities: Dict[str, TrackedEntity] = {}

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._entities

    @property
    def entities(self) -> List[TrackedEntity]:
        return list(self._entities.values())

    def get(self, entity_id: str) -> Optional[TrackedEntity]:
        return self._entities.get(entity_id)

    def position_of(self, entity_id: str) -> Optional[LatLng]:
        entity = self._entities.get(entity_id)
        return entity.rendered_position if entity else None

    def label_text(self, entity_id: str) -> Optional[str]:
        entity = self._entities.get(entity_id)
        if entity is None:
            return None
        return format_label_text(entity.normalized_line, entity.headsign, entity.last_snapshot.speed_kmh)

    def reconcile(self, snapshots: Iterable[VehicleSnapshot]) -> None:
        """
        Apply one poll cycle's batch.

        Args:
            snapshots: Every vehicle in the feed response, in feed order.
        """
        accepted = self._accept(snapshots)

        for snapshot, line, headsign in accepted.values():
            self._upsert(snapshot, line, headsign)

        retired = [entity_id for entity_id in self._entities if entity_id not in accepted]
        for entity_id in retired:
            self.retire(entity_id)

        logger.debug(f"Reconciled {len(accepted)} vehicles, retired {len(retired)}")

    def retire(self, entity_id: str) -> bool:
        """Remove a vehicle with everything it owns: animation, marker, labels."""
        entity = self._entities.pop(entity_id, None)
        if entity is None:
            return False
        self.animator.cancel(entity_id)
        entity.active_animation = None
        self.surface.remove_marker(entity_id)
        if self.labels is not None:
            self.labels.entity_retired(entity_id)
        return True

    def refilter(self) -> int:
        """Retire vehicles that no longer pass the line filter. Returns how many."""
        failing = [e.id for e in self._entities.values() if not self.line_filter.passes(e.normalized_line)]
        for entity_id in failing:
            self.retire(entity_id)
        return len(failing)

    def clear(self) -> None:
        for entity_id in list(self._entities):
            self.retire(entity_id)

    def _accept(self, snapshots: Iterable[VehicleSnapshot]) -> "OrderedDict[str, Tuple[VehicleSnapshot, str, Optional[str]]]":
        """Validate, enrich and filter a batch. Later duplicates of an id win."""
        accepted: "OrderedDict[str, Tuple[VehicleSnapshot, str, Optional[str]]]" = OrderedDict()
        dropped = 0
        filtered = 0

        for snapshot in snapshots:
            if not snapshot.is_valid():
                dropped += 1
                continue

            line, headsign = self._enrich(snapshot)
            if line is None:
                dropped += 1
                continue

            self.line_filter.observe([line])
            if not self.line_filter.passes(line):
                filtered += 1
                continue

            accepted.pop(snapshot.id, None)
            accepted[snapshot.id] = (snapshot, line, headsign)

        if dropped or filtered:
            logger.debug(f"Dropped {dropped} malformed or unresolvable entries, filtered {filtered}")
        return accepted

    def _enrich(self, snapshot: VehicleSnapshot) -> Tuple[Optional[str], Optional[str]]:
        line = snapshot.line
        headsign = snapshot.headsign
        if self.lookup is not None and snapshot.trip_id:
            info = self.lookup.resolve(snapshot.trip_id)
            if info is not None:
                line = line or info.line
                headsign = headsign or info.headsign
        return normalize_line(line), headsign

    def _upsert(self, snapshot: VehicleSnapshot, line: str, headsign: Optional[str]) -> None:
        position = snapshot.position
        entity = self._entities.get(snapshot.id)

        if entity is None:
            heading = estimate_heading(position, snapshot.bearing_deg, None)
            entity = TrackedEntity(
                id=snapshot.id,
                normalized_line=line,
                rendered_position=position,
                target_position=position,
                last_snapshot=snapshot,
                last_known_bearing=heading.bearing,
                bearing_established=heading.established,
                headsign=headsign,
                pop=False,
            )
            self._entities[entity.id] = entity
            self.surface.draw_marker(entity.id, position, self._style(entity))
            return

        heading = estimate_heading(position, snapshot.bearing_deg, entity.target_position, entity.heading)
        # Rising edge only: the first time this vehicle's heading becomes known
        entity.pop = heading.established and not entity.bearing_established
        entity.last_known_bearing = heading.bearing
        entity.bearing_established = heading.established
        entity.normalized_line = line
        entity.headsign = headsign
        entity.last_snapshot = snapshot
        entity.target_position = position

        self.surface.draw_marker(entity.id, entity.rendered_position, self._style(entity))
        if self.labels is not None:
            self.labels.refresh(entity.id)

        start = entity.rendered_position
        entity.active_animation = self.animator.animate(
            entity.id,
            start,
            position,
            self._duration(start, position),
            on_frame=lambda pos, e=entity: self._on_frame(e, pos),
            on_done=lambda e=entity: setattr(e, "active_animation", None),
        )

    def _on_frame(self, entity: TrackedEntity, position: LatLng) -> None:
        if self._entities.get(entity.id) is not entity:
            return
        entity.rendered_position = position
        self.surface.move_marker(entity.id, position)
        if self.labels is not None:
            self.labels.frame_update(entity.id, position)

    def _duration(self, start: LatLng, end: LatLng) -> float:
        return animation_duration_ms(
            self.surface.project(start),
            self.surface.project(end),
            ms_per_pixel=self.ms_per_pixel,
            min_ms=self.min_animation_ms,
            max_ms=self.max_animation_ms,
        )

    def _style(self, entity: TrackedEntity) -> MarkerStyle:
        if entity.bearing_established:
            return MarkerStyle(
                color=color_for_line(entity.normalized_line, self.modes),
                shape="arrow",
                rotation_deg=entity.last_known_bearing or 0.0,
                pop=entity.pop,
            )
        return MarkerStyle(color=color_for_line(entity.normalized_line, self.modes), shape="dot")
