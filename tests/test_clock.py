"""
Simulation Clock Tests — one tick per frame, dt clamp, FPS counter, pacing.
"""

import sys
import os
import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from clock import SimulationClock
from controller import CurveController


@pytest.fixture
def clock():
    return SimulationClock(CurveController(rng=np.random.default_rng(0)), target_fps=60)


class TestStep:

    def test_one_tick_per_step(self, clock):
        for i in range(5):
            snap = clock.step(i / 60)
        assert clock.controller.tick_count == 5
        assert snap.tick == 5
        assert clock.total_frames == 5

    def test_first_frame_uses_nominal_dt(self, clock):
        clock.step(10.0)
        assert clock.last_dt == pytest.approx(1 / 60)

    def test_dt_clamped_after_stall(self, clock):
        clock.step(0.0)
        clock.step(2.0)
        assert clock.last_dt == SimulationClock.MAX_FRAME_DT

    def test_physics_ignores_wall_time(self):
        fast = SimulationClock(CurveController(rng=np.random.default_rng(0)))
        slow = SimulationClock(CurveController(rng=np.random.default_rng(0)))
        for c in (fast, slow):
            c.controller.points[1].move_to(200.0, 300.0)
        for i in range(20):
            fast.step(i * 0.001)
            slow.step(i * 0.04)
        assert fast.controller.get_state_json() == slow.controller.get_state_json()


class TestFps:

    def test_fps_counter_refreshes_each_second(self):
        clock = SimulationClock(CurveController(), target_fps=60)
        for i in range(31):
            clock.step(i / 30)
        assert clock.fps == 30

    def test_fps_starts_at_target(self, clock):
        clock.step(0.0)
        assert clock.fps == 60


class TestPacing:

    def test_sleep_time_remaining_budget(self, clock):
        assert clock.sleep_time(0.0, now=0.01) == pytest.approx(1 / 60 - 0.01)

    def test_sleep_time_never_negative(self, clock):
        assert clock.sleep_time(0.0, now=0.5) == 0.0


class TestHeadlessRun:

    def test_run_ticks(self, clock):
        snap = clock.run(25)
        assert snap.tick == 25
        assert clock.total_frames == 25

    def test_run_zero_returns_current_snapshot(self, clock):
        assert clock.run(0) is clock.controller.snapshot()
