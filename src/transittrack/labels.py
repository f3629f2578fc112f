"""Hover and pin label state machine."""

import logging
from typing import Callable, List, NamedTuple, Optional

from .models import Label, LabelTier, LatLng
from .surface import RenderSurface

logger = logging.getLogger(__name__)


class InteractionState(NamedTuple):
    hovered_id: Optional[str]
    pinned_id: Optional[str]

    @property
    def name(self) -> str:
        if self.pinned_id is not None:
            return "Pinned"
        if self.hovered_id is not None:
            return "Hovering"
        return "Idle"


class LabelInteractionController:
    """
    Shows at most one hover label and one pinned label.

    A pin always wins: hovering the pinned vehicle shows nothing extra, while
    hovering another vehicle still shows a transient hover label for it.
    Every event for an id that position_of() does not know is a no-op, so
    labels can never point at a vehicle that has been removed.
    """

    def __init__(
        self,
        surface: RenderSurface,
        position_of: Callable[[str], Optional[LatLng]],
        text_of: Callable[[str], Optional[str]],
    ):
        self.surface = surface
        self.position_of = position_of
        self.text_of = text_of
        self.hovered_id: Optional[str] = None
        self.pinned_id: Optional[str] = None
        # Whether the pointer is over some vehicle, per the last enter/leave/move
        self.pointer_over_entity = False

    @property
    def state(self) -> InteractionState:
        return InteractionState(self.hovered_id, self.pinned_id)

    def visible_labels(self) -> List[LabelTier]:
        tiers = []
        if self.hovered_id is not None:
            tiers.append(LabelTier.HOVER)
        if self.pinned_id is not None:
            tiers.append(LabelTier.PINNED)
        return tiers

    def pointer_enter(self, entity_id: str) -> None:
        self.pointer_over_entity = True
        if entity_id == self.pinned_id or self.position_of(entity_id) is None:
            return
        self._clear_hover()
        if self._show(LabelTier.HOVER, entity_id):
            self.hovered_id = entity_id

    def pointer_leave(self, entity_id: str) -> None:
        # A late leave for another vehicle says nothing about the current hover
        if self.hovered_id is not None and entity_id != self.hovered_id:
            return
        self.pointer_over_entity = False
        self._clear_hover()

    def pointer_move(self, over_entity: Optional[bool] = None) -> None:
        """
        Recheck hover on any pointer movement over the surface.

        Enter/leave events can be dropped by the host under fast pointer
        movement; a hover label left behind while the pointer is over no
        vehicle is cleared here.
        """
        if over_entity is not None:
            self.pointer_over_entity = over_entity
        if (
            not self.pointer_over_entity
            and self.hovered_id is not None
            and self.hovered_id != self.pinned_id
        ):
            logger.debug(f"Clearing stale hover label for {self.hovered_id}")
            self._clear_hover()

    def click(self, entity_id: Optional[str]) -> None:
        """Click on a vehicle (pin/unpin) or on the background (entity_id=None)."""
        self._clear_hover()
        if entity_id is None or entity_id == self.pinned_id:
            self._clear_pin()
            return
        self._clear_pin()
        if self._show(LabelTier.PINNED, entity_id):
            self.pinned_id = entity_id

    def entity_retired(self, entity_id: str) -> None:
        if entity_id == self.hovered_id:
            self._clear_hover()
        if entity_id == self.pinned_id:
            self._clear_pin()

    def frame_update(self, entity_id: str, position: LatLng) -> None:
        """Keep a visible label glued to its vehicle while it moves."""
        if entity_id == self.pinned_id:
            self.surface.move_label(LabelTier.PINNED, position)
        elif entity_id == self.hovered_id:
            self.surface.move_label(LabelTier.HOVER, position)

    def refresh(self, entity_id: str) -> None:
        """Re-render label text after the vehicle's snapshot changed."""
        if entity_id == self.pinned_id:
            self._show(LabelTier.PINNED, entity_id)
        elif entity_id == self.hovered_id:
            self._show(LabelTier.HOVER, entity_id)

    def clear(self) -> None:
        self._clear_hover()
        self._clear_pin()

    def _show(self, tier: LabelTier, entity_id: str) -> bool:
        position = self.position_of(entity_id)
        if position is None:
            logger.debug(f"No tracked vehicle {entity_id}; not showing {tier.value} label")
            return False
        text = self.text_of(entity_id) or entity_id
        self.surface.show_label(Label(entity_id, position, text, tier))
        return True

    def _clear_hover(self) -> None:
        if self.hovered_id is None:
            return
        self.surface.remove_label(LabelTier.HOVER)
        self.hovered_id = None

    def _clear_pin(self) -> None:
        if self.pinned_id is None:
            return
        self.surface.remove_label(LabelTier.PINNED)
        self.pinned_id = None


def format_speed(speed_kmh: Optional[float]) -> str:
    if speed_kmh is None:
        return ""
    return f" • {round(speed_kmh)} km/h"


def format_label_text(line: str, headsign: Optional[str], speed_kmh: Optional[float]) -> str:
    """Label text such as "14 → Fruängen • 48 km/h"."""
    return f"{line} → {headsign or '?'}{format_speed(speed_kmh)}"
