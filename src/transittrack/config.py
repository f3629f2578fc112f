"""Tracker configuration."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .animation import MAX_ANIMATION_CAP_MS, MIN_ANIMATION_MS, MS_PER_PIXEL, POLL_INTERVAL_RATIO, max_animation_ms

DEFAULT_FEED_URL = "http://localhost:8000/vehicles"
DEFAULT_POLL_INTERVAL_MS = 3000
DEFAULT_STORAGE_PATH = os.path.join(os.path.expanduser("~"), ".transittrack", "settings.json")


@dataclass
class TrackerConfig:
    """Settings for one live map."""
    feed_url: str = DEFAULT_FEED_URL
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    ms_per_pixel: float = MS_PER_PIXEL
    min_animation_ms: float = MIN_ANIMATION_MS
    max_animation_cap_ms: float = MAX_ANIMATION_CAP_MS
    animation_poll_ratio: float = POLL_INTERVAL_RATIO
    request_timeout: float = 10
    storage_path: str = DEFAULT_STORAGE_PATH

    def __post_init__(self):
        if self.poll_interval_ms <= 0:
            raise ValueError(f"poll_interval_ms must be positive, got {self.poll_interval_ms}")
        if not 0 < self.animation_poll_ratio <= 1:
            raise ValueError(f"animation_poll_ratio must be in (0, 1], got {self.animation_poll_ratio}")

    @property
    def max_animation_ms(self) -> float:
        """Upper bound for any tween: a share of the poll interval, capped."""
        return max_animation_ms(self.poll_interval_ms, self.animation_poll_ratio, self.max_animation_cap_ms)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TrackerConfig":
        """
        Build a config from TRANSITTRACK_* environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        env = os.environ if environ is None else environ
        config = {}
        if env.get("TRANSITTRACK_FEED_URL"):
            config["feed_url"] = env["TRANSITTRACK_FEED_URL"]
        if env.get("TRANSITTRACK_POLL_MS"):
            try:
                config["poll_interval_ms"] = int(env["TRANSITTRACK_POLL_MS"])
            except ValueError:
                raise ValueError(f"TRANSITTRACK_POLL_MS must be an integer, got {env['TRANSITTRACK_POLL_MS']!r}")
        if env.get("TRANSITTRACK_STORAGE"):
            config["storage_path"] = env["TRANSITTRACK_STORAGE"]
        return cls(**config)
