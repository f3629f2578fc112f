"""Tests for the projection and the in-memory surface."""

import unittest
import sys
from pathlib import Path

# Add src to path so we can import transittrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from transittrack.models import Label, LabelTier, MarkerStyle
from transittrack.surface import InMemorySurface, web_mercator_pixel


class TestWebMercator(unittest.TestCase):
    """Test pixel projection."""

    def test_origin_is_world_center(self):
        """Test origin is world center."""
        self.assertEqual(web_mercator_pixel((0.0, 0.0), 0), (128.0, 128.0))

    def test_zoom_doubles_scale(self):
        """Test zoom doubles scale."""
        x1, y1 = web_mercator_pixel((59.3, 18.0), 10)
        x2, y2 = web_mercator_pixel((59.3, 18.0), 11)
        self.assertAlmostEqual(x2, 2 * x1)
        self.assertAlmostEqual(y2, 2 * y1)

    def test_north_is_up(self):
        """Test north is up."""
        _, south = web_mercator_pixel((59.0, 18.0), 12)
        _, north = web_mercator_pixel((60.0, 18.0), 12)
        self.assertLess(north, south)


class TestInMemorySurface(unittest.TestCase):
    """Test recorded drawing state."""

    def test_markers_and_labels(self):
        """Test markers and labels."""
        surface = InMemorySurface()
        surface.draw_marker("t1", (1.0, 2.0), MarkerStyle(color="#fff", shape="dot"))
        surface.move_marker("t1", (1.5, 2.5))
        surface.move_marker("ghost", (0.0, 0.0))
        self.assertEqual(surface.markers["t1"].position, (1.5, 2.5))
        self.assertNotIn("ghost", surface.markers)

        surface.show_label(Label("t1", (1.5, 2.5), "14 → ?", LabelTier.HOVER))
        surface.move_label(LabelTier.HOVER, (1.6, 2.6))
        surface.move_label(LabelTier.PINNED, (0.0, 0.0))
        self.assertEqual(surface.labels_for("t1")[0].position, (1.6, 2.6))

        surface.remove_marker("t1")
        surface.remove_label(LabelTier.HOVER)
        surface.remove_label(LabelTier.HOVER)
        self.assertEqual(surface.markers, {})
        self.assertEqual(surface.labels, {})


if __name__ == "__main__":
    unittest.main()
