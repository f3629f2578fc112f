"""Example usage of LiveVehicleTracker without a GUI."""

import logging
import time
import sys
from pathlib import Path

# Add src to path so we can import transittrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from transittrack import FeedClient, LiveVehicleTracker, TrackerConfig
from transittrack.scheduling import ManualScheduler
from transittrack.storage import JsonFileStore
from transittrack.surface import InMemorySurface

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def print_vehicles(tracker: LiveVehicleTracker) -> None:
    """Print every tracked vehicle with its heading and position."""
    print(f"\n{'='*70}")
    print(f"Updated: {tracker.last_updated.strftime('%H:%M:%S') if tracker.last_updated else 'never'}")
    print(f"{'='*70}")
    for entity in sorted(tracker.reconciler.entities, key=lambda e: (e.normalized_line, e.id)):
        heading = f"{entity.last_known_bearing:5.1f}°" if entity.bearing_established else "  ?  "
        lat, lon = entity.rendered_position
        print(f"  {tracker.reconciler.label_text(entity.id):40s} {heading}  ({lat:.5f}, {lon:.5f})")


def main():
    """Poll the feed a few times, stepping the virtual clock between polls."""
    config = TrackerConfig.from_env()
    cycles = int(sys.argv[1]) if len(sys.argv) > 1 else 5

    scheduler = ManualScheduler()
    tracker = LiveVehicleTracker(
        FeedClient(config.feed_url, timeout=config.request_timeout),
        InMemorySurface(),
        scheduler,
        store=JsonFileStore(config.storage_path),
        config=config,
    )

    try:
        tracker.start()
        for _ in range(cycles):
            print_vehicles(tracker)
            time.sleep(config.poll_interval_ms / 1000)
            scheduler.advance(config.poll_interval_ms)
    except KeyboardInterrupt:
        print("\nGoodbye!")
    finally:
        tracker.cleanup()


if __name__ == "__main__":
    main()
