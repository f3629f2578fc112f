"""Rendering port: what the tracker draws and how positions map to pixels."""

import math
from dataclasses import dataclass
from typing import Dict, Protocol, Tuple

from .models import Label, LabelTier, LatLng, MarkerStyle

TILE_SIZE = 256
MAX_MERCATOR_LAT = 85.05112878


def web_mercator_pixel(pos: LatLng, zoom: float, tile_size: int = TILE_SIZE) -> Tuple[float, float]:
    """Project (lat, lon) to global Web Mercator pixel coordinates at a zoom level."""
    lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, pos[0]))
    scale = tile_size * (2 ** zoom)
    x = (pos[1] + 180.0) / 360.0 * scale
    sin_lat = math.sin(math.radians(lat))
    y = (0.5 - math.log((1 + sin_lat) / (1 - sin_lat)) / (4 * math.pi)) * scale
    return (x, y)


class RenderSurface(Protocol):
    def project(self, pos: LatLng) -> Tuple[float, float]:
        ...

    def draw_marker(self, entity_id: str, position: LatLng, style: MarkerStyle) -> None:
        ...

    def move_marker(self, entity_id: str, position: LatLng) -> None:
        ...

    def remove_marker(self, entity_id: str) -> None:
        ...

    def show_label(self, label: Label) -> None:
        ...

    def move_label(self, tier: LabelTier, position: LatLng) -> None:
        ...

    def remove_label(self, tier: LabelTier) -> None:
        ...


@dataclass
class MarkerState:
    position: LatLng
    style: MarkerStyle


class InMemorySurface:
    """Surface that only records what would be drawn."""

    def __init__(self, zoom: float = 12):
        self.zoom = zoom
        self.markers: Dict[str, MarkerState] = {}
        self.labels: Dict[LabelTier, Label] = {}

    def project(self, pos: LatLng) -> Tuple[float, float]:
        return web_mercator_pixel(pos, self.zoom)

    def draw_marker(self, entity_id: str, position: LatLng, style: MarkerStyle) -> None:
        self.markers[entity_id] = MarkerState(position, style)

    def move_marker(self, entity_id: str, position: LatLng) -> None:
        marker = self.markers.get(entity_id)
        if marker is not None:
            marker.position = position

    def remove_marker(self, entity_id: str) -> None:
        self.markers.pop(entity_id, None)

    def show_label(self, label: Label) -> None:
        self.labels[label.tier] = label

    def move_label(self, tier: LabelTier, position: LatLng) -> None:
        label = self.labels.get(tier)
        if label is not None:
            label.position = position

    def remove_label(self, tier: LabelTier) -> None:
        self.labels.pop(tier, None)

    def labels_for(self, entity_id: str):
        return [label for label in self.labels.values() if label.entity_id == entity_id]
