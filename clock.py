"""
Simulation Clock
Frame driver around CurveController.tick(): dt measurement, pacing and
an FPS counter. Physics always advances one unit step per frame.
"""

import time
from typing import Callable, Optional

from controller import CurveController, FrameSnapshot


class SimulationClock:
    """Calls ``controller.tick()`` once per frame and keeps frame statistics."""

    MAX_FRAME_DT = 0.05     # clamp after stalls (seconds)
    FPS_WINDOW   = 1.0      # FPS counter refresh interval (seconds)

    def __init__(self, controller: CurveController, target_fps: int = 60,
                 timer: Callable[[], float] = time.perf_counter):
        self.controller = controller
        self.target_fps = target_fps
        self.frame_dt   = 1.0 / target_fps
        self._timer     = timer

        self.last_time: Optional[float] = None
        self.last_dt    = 0.0
        self.fps        = target_fps
        self.total_frames = 0

        self._window_frames = 0
        self._window_start: Optional[float] = None

    def step(self, now: Optional[float] = None) -> FrameSnapshot:
        """Advance one frame at wall time ``now`` (defaults to the timer)."""
        if now is None:
            now = self._timer()

        if self.last_time is None:
            dt = self.frame_dt
        else:
            dt = min(now - self.last_time, self.MAX_FRAME_DT)
        self.last_time = now
        self.last_dt   = dt

        snapshot = self.controller.tick()
        self._count_frame(now)
        return snapshot

    def _count_frame(self, now: float) -> None:
        self.total_frames += 1
        if self._window_start is None:
            self._window_start = now
            return
        self._window_frames += 1
        elapsed = now - self._window_start
        if elapsed >= self.FPS_WINDOW:
            self.fps = round(self._window_frames / elapsed)
            self._window_frames = 0
            self._window_start  = now

    def sleep_time(self, started: float, now: Optional[float] = None) -> float:
        """Seconds left in the current frame budget (0 if over budget)."""
        if now is None:
            now = self._timer()
        return max(0.0, self.frame_dt - (now - started))

    def run(self, ticks: int) -> FrameSnapshot:
        """Headless: ``ticks`` frames back to back, no pacing."""
        snapshot = self.controller.snapshot()
        for _ in range(ticks):
            snapshot = self.controller.tick()
            self.total_frames += 1
        return snapshot
