"""
BytePusher Frame Scheduler
==========================
Paces frames at a fixed logical rate, whatever rate the host calls in at.

The host driver (display loop, test, benchmark) calls ``tick(now_ms)``
as often as it likes with a monotonic timestamp.  A frame runs only
once a full frame period has elapsed, and never more than one per tick:
dropped time is folded into the phase of ``last_frame_time`` instead of
being replayed.

Usage:
    sched = FrameScheduler(system.run_frame)
    while sched.running:
        sched.tick(clock_ms())
"""

from __future__ import annotations
from typing import Callable, Optional

from bytepusher import BytePusherError

FPS = 60
FRAME_DURATION_MS = 1000 / FPS


class FrameScheduler:

    def __init__(self, frame_fn: Callable[[], object],
                 frame_duration: float = FRAME_DURATION_MS,
                 running: bool = True):
        if frame_duration <= 0:
            raise ValueError("frame_duration must be positive")
        self.frame_fn = frame_fn
        self.frame_duration = frame_duration
        self.last_frame_time: float = 0
        self.frames: int = 0
        self.error: Optional[BytePusherError] = None
        self._running = running

    # -- Run control --

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        self.error = None
        self._running = True

    def stop(self):
        """Stop scheduling.  Only ever observed between frames."""
        self._running = False

    def toggle(self) -> bool:
        if self._running:
            self.stop()
        else:
            self.start()
        return self._running

    # -- Pacing --

    def tick(self, time: float) -> bool:
        """Run at most one frame for timestamp *time* (ms).

        Returns True if a frame ran.  A machine fault stops the
        scheduler and propagates to the caller.
        """
        if not self._running:
            return False
        delta = time - self.last_frame_time
        if delta < self.frame_duration:
            return False
        self.last_frame_time = time - (delta % self.frame_duration)
        try:
            self.frame_fn()
        except BytePusherError as e:
            self.error = e
            self._running = False
            raise
        self.frames += 1
        return True
