"""
CurveController — Layer 2 (Simulation State)

Owns the control points, physics parameters, pointer state and particles.
The renderer / transport layer drives it:
  ctrl.on_pointer_*(...)      — pointer input, already in surface units
  ctrl.set_* / apply_preset   — parameter control
  ctrl.tick()                 — advance one simulation step, returns a FrameSnapshot
  ctrl.pending_events         — list of dicts to consume (reset, preset, resize, …)
  ctrl.physics_events         — point_motion events from the last tick
"""

import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, List, Mapping, Optional, Tuple

import numpy as np

from curve import CURVE_STEPS, TANGENT_PARAMS, sample_curve, sample_tangents
from particles import ParticleState, ParticleSystem
from physics import (
    DEFAULT_HEIGHT, DEFAULT_WIDTH, MOVABLE_INDICES, PARAM_RANGES,
    ControlPoint, PhysicsParameters, PointerState, SpringEngine,
    compute_rest_pose, make_control_points,
)
from presets import PhysicsPreset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameSnapshot:
    """Read-only copy of the simulation state after one tick."""
    tick: int
    points: Tuple[Tuple[float, float], ...]
    velocities: Tuple[Tuple[float, float], ...]
    particles: Tuple[ParticleState, ...]
    params: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    held: Optional[str] = None
    particles_enabled: bool = True
    effects: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))

    def curve_points(self, steps: int = CURVE_STEPS) -> Iterator[np.ndarray]:
        """Fresh lazy iterator over the sampled curve."""
        return sample_curve(self.points, steps)

    def tangents(self, ts=TANGENT_PARAMS):
        """(t, position, unit direction) at the tangent sample parameters."""
        return sample_tangents(self.points, ts)


class CurveController:
    """Layer 2: simulation state + input handling + spawn policy."""

    # ── Class-level constants ─────────────────────────────────────────────────
    PICK_RADIUS          = 30.0   # pointer-down selection radius around P1/P2
    POINTER_VELOCITY_GAIN = 0.5   # pointer delta -> pointer velocity
    FAST_POINTER_SPEED   = 2.0    # per-axis pointer velocity for trail particles

    BURST_FAST_MOVE    = 2
    BURST_POINTER_DOWN = 15
    BURST_POINT_MOTION = 1
    BURST_RESET        = 30
    BURST_PRESET       = 20

    EFFECTS = ("glow", "trails")

    # ── Constructor ───────────────────────────────────────────────────────────

    def __init__(self, width: float = DEFAULT_WIDTH, height: float = DEFAULT_HEIGHT,
                 rng: Optional[np.random.Generator] = None):
        self.width  = float(width)
        self.height = float(height)

        # Geometry
        self.rest   = compute_rest_pose(self.width, self.height)
        self.points: List[ControlPoint] = make_control_points(self.rest)

        # Physics
        self.params  = PhysicsParameters()
        self.pointer = PointerState(x=self.width / 2, y=self.height / 2)
        self.engine  = SpringEngine(self.width, self.height)

        # Decoration
        self.particles = ParticleSystem(rng=rng)
        self.effects   = {name: True for name in self.EFFECTS}

        self.tick_count = 0
        self.status_msg = ""

        # Event queues
        self.pending_events: list[dict] = []   # renderer commands
        self.physics_events: list[dict] = []   # integrator events of the last tick

        self._snapshot = self._make_snapshot()

    # ──────────────────────────────────────────────────────────────────────────
    # Geometry helpers
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def center(self) -> Tuple[float, float]:
        return self.width / 2, self.height / 2

    @property
    def movable_points(self) -> List[ControlPoint]:
        return [self.points[i] for i in MOVABLE_INDICES]

    def pick_point(self, x: float, y: float) -> Optional[ControlPoint]:
        """First movable point (P1, then P2) within PICK_RADIUS of (x, y)."""
        for point in self.movable_points:
            if float(np.hypot(point.x - x, point.y - y)) < self.PICK_RADIUS:
                return point
        return None

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    def tick(self) -> FrameSnapshot:
        """Integrator, motion spawns, particle advance; skipped while paused."""
        if self.params.enabled:
            self.engine.update(self.points, self.rest, self.pointer, self.params)
            self.physics_events = list(self.engine.events)
            for ev in self.physics_events:
                self.particles.spawn(ev["pos"], self.BURST_POINT_MOTION)
            self.particles.advance()
        else:
            self.physics_events = []

        self.tick_count += 1
        self._snapshot = self._make_snapshot()
        return self._snapshot

    def snapshot(self) -> FrameSnapshot:
        """Snapshot produced by the most recent tick."""
        return self._snapshot

    def _make_snapshot(self) -> FrameSnapshot:
        held = self.pointer.target.name if self.pointer.target is not None else None
        return FrameSnapshot(
            tick=self.tick_count,
            points=tuple((p.x, p.y) for p in self.points),
            velocities=tuple((float(p.velocity[0]), float(p.velocity[1]))
                             for p in self.movable_points),
            particles=tuple(p.freeze() for p in self.particles),
            params=MappingProxyType(self.params.as_dict()),
            held=held,
            particles_enabled=self.particles.enabled,
            effects=MappingProxyType(dict(self.effects)),
        )

    # ──────────────────────────────────────────────────────────────────────────
    # Pointer input
    # ──────────────────────────────────────────────────────────────────────────

    def on_pointer_move(self, x: float, y: float) -> None:
        p = self.pointer
        p.px, p.py = p.x, p.y
        p.x, p.y = float(x), float(y)
        p.vx = (p.x - p.px) * self.POINTER_VELOCITY_GAIN
        p.vy = (p.y - p.py) * self.POINTER_VELOCITY_GAIN

        if p.is_down and p.target is not None:
            p.target.move_to(p.x, p.y)

        if abs(p.vx) > self.FAST_POINTER_SPEED or abs(p.vy) > self.FAST_POINTER_SPEED:
            self.particles.spawn((p.x, p.y), self.BURST_FAST_MOVE)

    def on_pointer_down(self, x: float, y: float) -> None:
        self.pointer.is_down = True
        self.pointer.target = self.pick_point(x, y)
        self.particles.spawn((x, y), self.BURST_POINTER_DOWN)
        if self.pointer.target is not None:
            logger.debug("[POINTER] grabbed %s", self.pointer.target.name)

    def on_pointer_up(self) -> None:
        self.pointer.release()

    def on_pointer_leave(self) -> None:
        self.pointer.release()

    # Touch input: no velocity tracking and no particle bursts

    def on_touch_start(self, x: float, y: float) -> None:
        self.pointer.x, self.pointer.y = float(x), float(y)
        self.pointer.is_down = True
        self.pointer.target = self.pick_point(x, y)

    def on_touch_move(self, x: float, y: float) -> None:
        self.pointer.x, self.pointer.y = float(x), float(y)
        if self.pointer.is_down and self.pointer.target is not None:
            self.pointer.target.move_to(self.pointer.x, self.pointer.y)

    def on_touch_end(self) -> None:
        self.pointer.release()

    # ──────────────────────────────────────────────────────────────────────────
    # Parameter control
    # ──────────────────────────────────────────────────────────────────────────

    def set_stiffness(self, value: float) -> None:
        self.params.stiffness = float(value)

    def set_damping(self, value: float) -> None:
        self.params.damping = float(value)

    def set_mouse_influence(self, value: float) -> None:
        self.params.mouse_influence = float(value)

    def set_param(self, attr: str, value: float) -> None:
        """Generic slider setter; ``attr`` must be listed in PARAM_RANGES."""
        if attr not in {a for a, *_ in PARAM_RANGES}:
            raise ValueError(f"Unknown physics parameter '{attr}'")
        setattr(self.params, attr, float(value))

    def set_particles_enabled(self, enabled: bool) -> None:
        self.particles.enabled = bool(enabled)

    def set_physics_enabled(self, enabled: bool) -> None:
        self.params.enabled = bool(enabled)
        self.status_msg = "Physics ON" if self.params.enabled else "Physics OFF"

    def toggle_physics(self) -> bool:
        self.set_physics_enabled(not self.params.enabled)
        self.pending_events.append({"type": "physics_toggled", "enabled": self.params.enabled})
        return self.params.enabled

    def set_effect(self, name: str, on: bool) -> None:
        """Render-only hints (glow, trails); stored and reported, never simulated."""
        if name not in self.effects:
            raise ValueError(f"Unknown effect '{name}'. Use {'/'.join(self.EFFECTS)}.")
        self.effects[name] = bool(on)

    def apply_preset(self, name: str) -> bool:
        """Apply a named preset; unknown names leave the parameters unchanged."""
        try:
            PhysicsPreset.apply(self.params, name)
        except KeyError:
            logger.warning("[PRESET] unknown preset %r", name)
            self.status_msg = f"Unknown preset '{name}'. Use {'/'.join(PhysicsPreset.names())}."
            return False

        logger.info("[PRESET] %s -> stiffness=%.2f damping=%.2f influence=%.1f",
                    name, self.params.stiffness, self.params.damping,
                    self.params.mouse_influence)
        self.particles.spawn(self.center, self.BURST_PRESET)
        self.pending_events.append({"type": "preset", "name": name,
                                    "params": self.params.as_dict()})
        self.status_msg = f"Preset: {name}"
        return True

    def get_params(self) -> list:
        """Slider descriptors with current values."""
        return [{
            "attr": attr, "label": label,
            "value": round(getattr(self.params, attr), 6),
            "min": mn, "max": mx, "step": step,
        } for attr, label, mn, mx, step in PARAM_RANGES]

    # ──────────────────────────────────────────────────────────────────────────
    # Reset / resize
    # ──────────────────────────────────────────────────────────────────────────

    def reset(self) -> None:
        """Movable points back to rest, velocities zeroed, particles cleared."""
        for i in MOVABLE_INDICES:
            self.points[i].move_to(*self.rest[i])
            self.points[i].stop()
        self.particles.clear()
        self.particles.spawn(self.center, self.BURST_RESET)

        self.pending_events.append({"type": "reset"})
        self.status_msg = "Reset."
        logger.info("[RESET] control points restored to rest pose")

    def resize(self, width: float, height: float) -> None:
        """Recompute the rest pose; re-centre the curve unless a point is held."""
        self.width  = float(width)
        self.height = float(height)
        self.rest   = compute_rest_pose(self.width, self.height)
        self.engine.resize(self.width, self.height)

        for i, point in enumerate(self.points):
            if not point.movable:
                point.move_to(*self.rest[i])

        if self.pointer.target is None:
            for i in MOVABLE_INDICES:
                self.points[i].move_to(*self.rest[i])
                self.points[i].stop()

        self.pending_events.append({"type": "resize", "width": self.width,
                                    "height": self.height})
        logger.info("[RESIZE] surface %.0fx%.0f (held=%s)", self.width, self.height,
                    self.pointer.target.name if self.pointer.target else None)

    # ──────────────────────────────────────────────────────────────────────────
    # State export
    # ──────────────────────────────────────────────────────────────────────────

    def get_state(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "points": {p.name: [round(p.x, 4), round(p.y, 4)] for p in self.points},
            "velocities": {p.name: [round(float(p.velocity[0]), 4),
                                    round(float(p.velocity[1]), 4)]
                           for p in self.movable_points},
            "params": self.params.as_dict(),
            "particles": len(self.particles),
            "particles_enabled": self.particles.enabled,
            "effects": dict(self.effects),
            "tick": self.tick_count,
        }

    def get_state_json(self) -> str:
        """Current state as compact single-line JSON."""
        return json.dumps(self.get_state(), separators=(',', ':'))
