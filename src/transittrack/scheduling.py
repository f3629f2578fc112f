"""Host timer and frame-pacing primitives, abstracted behind cancelable handles."""

import heapq
import itertools
import time
from typing import Any, Callable, List, Protocol, Tuple

FrameCallback = Callable[[float], None]

DEFAULT_FRAME_INTERVAL_MS = 16


class Cancelable(Protocol):
    def cancel(self) -> None:
        ...


class HostScheduler(Protocol):
    """What the tracker needs from its host: a clock, frames and timers."""

    def now_ms(self) -> float:
        ...

    def request_frame(self, callback: FrameCallback) -> Cancelable:
        ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> Cancelable:
        ...


class ScheduledCall:
    """Handle for one pending frame or timer callback."""

    def __init__(self, on_cancel: Callable[[], None] = None):
        self.cancelled = False
        self._on_cancel = on_cancel

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()


class ManualScheduler:
    """
    Deterministic scheduler driven by a virtual clock.

    Time only moves when advance() is called. Each step runs the timers that
    have come due, then every frame callback requested before the step.
    Frames requested from inside a frame callback run on the next step.
    """

    def __init__(self, start_ms: float = 0.0, frame_interval_ms: float = DEFAULT_FRAME_INTERVAL_MS):
        self._now = float(start_ms)
        self.frame_interval_ms = frame_interval_ms
        self._seq = itertools.count()
        self._timers: List[Tuple[float, int, Callable[[], None], ScheduledCall]] = []
        self._frames: List[Tuple[FrameCallback, ScheduledCall]] = []

    def now_ms(self) -> float:
        return self._now

    def request_frame(self, callback: FrameCallback) -> ScheduledCall:
        handle = ScheduledCall()
        self._frames.append((callback, handle))
        return handle

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledCall:
        handle = ScheduledCall()
        heapq.heappush(self._timers, (self._now + max(0.0, delay_ms), next(self._seq), callback, handle))
        return handle

    @property
    def pending_frames(self) -> int:
        return sum(1 for _, handle in self._frames if not handle.cancelled)

    @property
    def pending_timers(self) -> int:
        return sum(1 for *_, handle in self._timers if not handle.cancelled)

    def advance(self, ms: float) -> None:
        """Move the clock forward by ms, one frame interval at a time."""
        target = self._now + ms
        while self._now < target:
            step_to = min(target, self._now + self.frame_interval_ms)
            # Land exactly on timer due times so rescheduled timers do not drift
            if self._timers and self._now < self._timers[0][0] < step_to:
                step_to = self._timers[0][0]
            self._now = step_to
            self._run_due_timers()
            self._run_frames()

    def run_frames(self, count: int = 1) -> None:
        for _ in range(count):
            self.advance(self.frame_interval_ms)

    def _run_due_timers(self) -> None:
        while self._timers and self._timers[0][0] <= self._now:
            _, _, callback, handle = heapq.heappop(self._timers)
            if not handle.cancelled:
                handle.cancelled = True
                callback()

    def _run_frames(self) -> None:
        frames, self._frames = self._frames, []
        for callback, handle in frames:
            if not handle.cancelled:
                handle.cancelled = True
                callback(self._now)


class TkScheduler:
    """Scheduler backed by a tkinter widget's after()/after_cancel()."""

    def __init__(self, widget: Any, frame_interval_ms: int = DEFAULT_FRAME_INTERVAL_MS):
        self.widget = widget
        self.frame_interval_ms = frame_interval_ms

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def request_frame(self, callback: FrameCallback) -> ScheduledCall:
        return self._after(self.frame_interval_ms, lambda: callback(self.now_ms()))

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledCall:
        return self._after(int(delay_ms), callback)

    def _after(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall:
        handle = ScheduledCall()

        def run():
            if handle.cancelled:
                return
            handle.cancelled = True
            callback()

        after_id = self.widget.after(delay_ms, run)
        handle._on_cancel = lambda: self.widget.after_cancel(after_id)
        return handle
