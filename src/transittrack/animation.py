"""Time-based position tweening between two snapshot coordinates."""

import logging
import math
from typing import Callable, Dict, Optional, Tuple

from .models import LatLng
from .scheduling import Cancelable, HostScheduler

logger = logging.getLogger(__name__)

SAME_POINT_EPSILON_DEG = 1e-8

MS_PER_PIXEL = 7.0
MIN_ANIMATION_MS = 350
MAX_ANIMATION_CAP_MS = 2500
POLL_INTERVAL_RATIO = 0.85

FrameHandler = Callable[[LatLng], None]


def ease_in_out_cubic(t: float) -> float:
    """Cubic ease-in-out over t in [0, 1]."""
    if t < 0.5:
        return 4 * t * t * t
    return 1 - ((-2 * t + 2) ** 3) / 2


def interpolate(start: LatLng, end: LatLng, fraction: float) -> LatLng:
    """Linear interpolation in lat/lon space (not great-circle)."""
    return (
        start[0] + (end[0] - start[0]) * fraction,
        start[1] + (end[1] - start[1]) * fraction,
    )


def same_point(a: LatLng, b: LatLng, epsilon: float = SAME_POINT_EPSILON_DEG) -> bool:
    return abs(a[0] - b[0]) <= epsilon and abs(a[1] - b[1]) <= epsilon


def max_animation_ms(
    poll_interval_ms: float,
    ratio: float = POLL_INTERVAL_RATIO,
    cap_ms: float = MAX_ANIMATION_CAP_MS,
) -> float:
    """Longest tween allowed so it never outlives the next poll."""
    return min(poll_interval_ms * ratio, cap_ms)


def animation_duration_ms(
    from_px: Tuple[float, float],
    to_px: Tuple[float, float],
    ms_per_pixel: float = MS_PER_PIXEL,
    min_ms: float = MIN_ANIMATION_MS,
    max_ms: float = MAX_ANIMATION_CAP_MS,
) -> float:
    """
    Tween duration from projected screen distance.

    Keeps perceived speed roughly constant across zoom levels.

    Args:
        from_px: Projected start point in pixels.
        to_px: Projected end point in pixels.
        ms_per_pixel: Duration per pixel travelled.
        min_ms: Lower bound for any non-zero move.
        max_ms: Upper bound.

    Returns:
        0 for a zero-length move, otherwise the clamped duration.
    """
    if min_ms > max_ms:
        raise ValueError(f"min_ms ({min_ms}) must not exceed max_ms ({max_ms})")

    distance = math.hypot(to_px[0] - from_px[0], to_px[1] - from_px[1])
    if distance == 0:
        return 0.0
    return max(min_ms, min(max_ms, distance * ms_per_pixel))


class Animation:
    """One in-flight tween driving a single entity's rendered position."""

    def __init__(
        self,
        entity_id: str,
        start: LatLng,
        end: LatLng,
        duration_ms: float,
        started_at: float,
        on_frame: FrameHandler,
        on_done: Optional[Callable[[], None]] = None,
    ):
        self.entity_id = entity_id
        self.start = start
        self.end = end
        self.duration_ms = duration_ms
        self.started_at = started_at
        self.on_frame = on_frame
        self.on_done = on_done
        self.active = True
        self._frame: Optional[Cancelable] = None

    def position_at(self, now_ms: float) -> Tuple[LatLng, bool]:
        """Interpolated position at now_ms, and whether the tween is finished."""
        if self.duration_ms <= 0:
            t = 1.0
        else:
            t = min(1.0, max(0.0, (now_ms - self.started_at) / self.duration_ms))
        if t >= 1.0:
            return self.end, True
        return interpolate(self.start, self.end, ease_in_out_cubic(t)), False

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._frame is not None:
            self._frame.cancel()
            self._frame = None

    def __repr__(self):
        return f"Animation({self.entity_id!r}, {self.start} -> {self.end}, {self.duration_ms:.0f}ms)"


class MotionAnimator:
    """
    Tweens entity positions, at most one animation per entity.

    Starting a new animation for an entity cancels the one in flight before
    anything else happens, so two tweens never drive the same entity.
    """

    def __init__(self, scheduler: HostScheduler):
        self.scheduler = scheduler
        self._animations: Dict[str, Animation] = {}

    def animate(
        self,
        entity_id: str,
        from_pos: LatLng,
        to_pos: LatLng,
        duration_ms: float,
        on_frame: FrameHandler,
        on_done: Optional[Callable[[], None]] = None,
    ) -> Optional[Animation]:
        """
        Tween an entity from from_pos to to_pos.

        If the two points are the same, to_pos is committed at once through a
        single synchronous on_frame call and nothing is scheduled.

        Returns:
            The Animation handle, or None when committed immediately.
        """
        self.cancel(entity_id)

        if same_point(from_pos, to_pos):
            on_frame(to_pos)
            if on_done is not None:
                on_done()
            return None

        animation = Animation(
            entity_id,
            from_pos,
            to_pos,
            duration_ms,
            self.scheduler.now_ms(),
            on_frame,
            on_done,
        )
        self._animations[entity_id] = animation
        self._schedule(animation)
        return animation

    def cancel(self, entity_id: str) -> bool:
        """Cancel the animation for entity_id, if any."""
        animation = self._animations.pop(entity_id, None)
        if animation is None:
            return False
        animation.cancel()
        logger.debug(f"Cancelled animation for {entity_id}")
        return True

    def cancel_all(self) -> None:
        for entity_id in list(self._animations):
            self.cancel(entity_id)

    def is_animating(self, entity_id: str) -> bool:
        return entity_id in self._animations

    def current(self, entity_id: str) -> Optional[Animation]:
        return self._animations.get(entity_id)

    @property
    def active_count(self) -> int:
        return len(self._animations)

    def _schedule(self, animation: Animation) -> None:
        animation._frame = self.scheduler.request_frame(lambda now: self._tick(animation, now))

    def _tick(self, animation: Animation, now_ms: float) -> None:
        if not animation.active or self._animations.get(animation.entity_id) is not animation:
            return

        position, finished = animation.position_at(now_ms)
        if finished:
            animation.active = False
            del self._animations[animation.entity_id]
            animation.on_frame(position)
            if animation.on_done is not None:
                animation.on_done()
            return

        animation.on_frame(position)
        # on_frame may have superseded this animation
        if animation.active:
            self._schedule(animation)
