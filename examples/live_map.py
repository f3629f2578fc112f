#!/usr/bin/env python3
"""
Live vehicle map on a tkinter canvas.

Vehicles are drawn on a plain canvas (no map tiles): dots until their
heading is known, then arrows. Hover a vehicle for its label, click to pin
it, click the background to clear. Line buttons toggle the filter.
"""

import logging
import math
import sys
import tkinter as tk
from pathlib import Path
from typing import Dict, Optional, Tuple

# Add src to path so we can import transittrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from transittrack import FeedClient, LiveVehicleTracker, TrackerConfig
from transittrack.lines import DEFAULT_MODES, mode_for_line
from transittrack.models import Label, LabelTier, LatLng, MarkerStyle
from transittrack.scheduling import TkScheduler
from transittrack.storage import JsonFileStore
from transittrack.surface import web_mercator_pixel

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

CENTER = (59.3293, 18.0686)
ZOOM = 12
WIDTH, HEIGHT = 900, 700
VEHICLE_TAG = "vehicle"
ARROW_SIZE = 14
DOT_RADIUS = 6


class TkCanvasSurface:
    """RenderSurface drawing onto a tkinter canvas around a fixed center."""

    def __init__(self, canvas: tk.Canvas, center: LatLng, zoom: float):
        self.canvas = canvas
        self.zoom = zoom
        cx, cy = web_mercator_pixel(center, zoom)
        self._origin = (cx - WIDTH / 2, cy - HEIGHT / 2)
        self._styles: Dict[str, MarkerStyle] = {}
        self._labels: Dict[LabelTier, int] = {}

    def project(self, pos: LatLng) -> Tuple[float, float]:
        x, y = web_mercator_pixel(pos, self.zoom)
        return (x - self._origin[0], y - self._origin[1])

    def draw_marker(self, entity_id: str, position: LatLng, style: MarkerStyle) -> None:
        self._styles[entity_id] = style
        self._redraw(entity_id, position)

    def move_marker(self, entity_id: str, position: LatLng) -> None:
        if entity_id in self._styles:
            self._redraw(entity_id, position)

    def remove_marker(self, entity_id: str) -> None:
        self._styles.pop(entity_id, None)
        self.canvas.delete(self._tag(entity_id))

    def show_label(self, label: Label) -> None:
        self.remove_label(label.tier)
        x, y = self.project(label.position)
        pinned = label.tier == LabelTier.PINNED
        self._labels[label.tier] = self.canvas.create_text(
            x + 12,
            y - 12,
            text=label.text,
            anchor="sw",
            fill="#111" if pinned else "#444",
            font=("Helvetica", 11, "bold" if pinned else "normal"),
        )

    def move_label(self, tier: LabelTier, position: LatLng) -> None:
        item = self._labels.get(tier)
        if item is not None:
            x, y = self.project(position)
            self.canvas.coords(item, x + 12, y - 12)

    def remove_label(self, tier: LabelTier) -> None:
        item = self._labels.pop(tier, None)
        if item is not None:
            self.canvas.delete(item)

    @staticmethod
    def _tag(entity_id: str) -> str:
        return f"v:{entity_id}"

    def _redraw(self, entity_id: str, position: LatLng) -> None:
        style = self._styles[entity_id]
        tag = self._tag(entity_id)
        self.canvas.delete(tag)
        x, y = self.project(position)
        width = 3 if style.pop else 1

        if style.shape == "arrow":
            angle = math.radians(style.rotation_deg)
            points = []
            for dx, dy in ((0, -ARROW_SIZE), (-ARROW_SIZE * 0.7, ARROW_SIZE), (0, ARROW_SIZE * 0.5), (ARROW_SIZE * 0.7, ARROW_SIZE)):
                # Screen y grows downward; rotate clockwise from north
                points.extend((
                    x + dx * math.cos(angle) - dy * math.sin(angle),
                    y + dx * math.sin(angle) + dy * math.cos(angle),
                ))
            self.canvas.create_polygon(points, fill=style.color, outline="#111", width=width, tags=(VEHICLE_TAG, tag))
        else:
            self.canvas.create_oval(
                x - DOT_RADIUS, y - DOT_RADIUS, x + DOT_RADIUS, y + DOT_RADIUS,
                fill=style.color, outline="#111", width=width, tags=(VEHICLE_TAG, tag),
            )

        # Labels stay on top of markers
        for item in self._labels.values():
            self.canvas.tag_raise(item)


def entity_under_pointer(canvas: tk.Canvas) -> Optional[str]:
    for tag in canvas.gettags("current"):
        if tag.startswith("v:"):
            return tag[2:]
    return None


def run_gui():
    """Build the window and start polling."""
    config = TrackerConfig.from_env()

    root = tk.Tk()
    root.title("TransitTrack")

    canvas = tk.Canvas(root, width=WIDTH, height=HEIGHT, background="#f2efe9", highlightthickness=0)
    canvas.pack(fill="both", expand=True)

    surface = TkCanvasSurface(canvas, CENTER, ZOOM)
    tracker = LiveVehicleTracker(
        FeedClient(config.feed_url, timeout=config.request_timeout),
        surface,
        TkScheduler(root),
        store=JsonFileStore(config.storage_path),
        config=config,
    )

    chips = tk.Frame(root)
    chips.pack(fill="x")
    buttons: Dict[str, tk.Button] = {}

    def refresh_chips():
        for line, button in buttons.items():
            button.configure(relief="sunken" if tracker.line_filter.is_selected(line) else "raised")

    def on_toggle(line):
        tracker.toggle_line(line)
        refresh_chips()

    for mode in DEFAULT_MODES:
        for line in sorted(mode.lines, key=lambda name: (len(name), name)):
            color = mode_for_line(line).color
            buttons[line] = tk.Button(chips, text=line, fg=color, width=3, command=lambda name=line: on_toggle(name))
            buttons[line].pack(side="left")
    refresh_chips()

    canvas.tag_bind(VEHICLE_TAG, "<Enter>", lambda e: tracker.pointer_enter(entity_under_pointer(canvas)))
    canvas.tag_bind(VEHICLE_TAG, "<Leave>", lambda e: tracker.pointer_leave(entity_under_pointer(canvas) or tracker.labels.hovered_id or ""))
    canvas.bind("<Motion>", lambda e: tracker.pointer_move(over_entity=entity_under_pointer(canvas) is not None))
    canvas.bind("<Button-1>", lambda e: tracker.click(entity_under_pointer(canvas)))

    root.bind("<Unmap>", lambda e: tracker.set_visible(False) if e.widget is root else None)
    root.bind("<Map>", lambda e: tracker.set_visible(True) if e.widget is root else None)

    def on_close():
        tracker.cleanup()
        root.destroy()

    root.protocol("WM_DELETE_WINDOW", on_close)
    root.after(100, tracker.start)
    root.mainloop()


if __name__ == "__main__":
    run_gui()
