"""
Spring-Damper Control Point Physics
Rest pose, pointer-driven targets, damped explicit Euler, boundary clamp.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional

# ──────────────────────────────────────────────
# Constants (canvas units, one tick = one unit of time)
# ──────────────────────────────────────────────
DEFAULT_WIDTH: float = 800.0
DEFAULT_HEIGHT: float = 600.0

# Rest pose as fractions of the surface size, P0..P3
REST_X_FRACTIONS = (0.15, 0.35, 0.65, 0.85)
REST_Y_FRACTIONS = (0.6, 0.2, 0.2, 0.6)

POINT_NAMES = ("P0", "P1", "P2", "P3")
MOVABLE_INDICES = (1, 2)

# Horizontal sign of the pointer offset per movable point (P2 is mirrored)
INFLUENCE_X_SIGN = {1: 1.0, 2: -1.0}

# ── Runtime-editable behavior constants ───────────────────────────────────────
# Read by name every call, so a host can tune them live:
#   import physics as _phys;  _phys.BOUNDARY_MARGIN = 40
BOUNDARY_MARGIN: float = 30.0         # padding of the clamp rectangle
BOUNCE_FACTOR: float = -0.3           # velocity multiplier on a wall hit
INFLUENCE_SCALE: float = 0.01         # mouse_influence -> target offset gain
POINTER_LEAD: float = 0.5             # pointer velocity -> target lead gain
MOTION_SPAWN_THRESHOLD: float = 0.5   # |vx| + |vy| above which a motion event fires

# Default physics parameters
DEFAULT_STIFFNESS: float = 0.05
DEFAULT_DAMPING: float = 0.90
DEFAULT_MOUSE_INFLUENCE: float = 0.5

# Slider ranges: (attr, label, min, max, step)
PARAM_RANGES = [
    ("stiffness",       "Stiffness",       0.01, 0.20, 0.01),
    ("damping",         "Damping",         0.70, 0.99, 0.01),
    ("mouse_influence", "Mouse Influence", 0.1,  2.0,  0.1),
]


@dataclass
class ControlPoint:
    """One of the four Bézier control points."""
    name: str
    position: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0]))
    velocity: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0]))
    movable: bool = False

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        self.velocity = np.array(self.velocity, dtype=float)

    @property
    def x(self) -> float:
        return float(self.position[0])

    @property
    def y(self) -> float:
        return float(self.position[1])

    def move_to(self, x: float, y: float) -> None:
        """Write coordinates in place; the array identity never changes."""
        self.position[0] = x
        self.position[1] = y

    def stop(self) -> None:
        self.velocity[:] = 0.0


@dataclass
class PhysicsParameters:
    stiffness: float = DEFAULT_STIFFNESS
    damping: float = DEFAULT_DAMPING
    mouse_influence: float = DEFAULT_MOUSE_INFLUENCE
    enabled: bool = True

    def as_dict(self) -> dict:
        return {
            "stiffness": self.stiffness,
            "damping": self.damping,
            "mouse_influence": self.mouse_influence,
            "enabled": self.enabled,
        }


@dataclass
class PointerState:
    """Latest pointer sample plus the point under manual control, if any."""
    x: float = 0.0
    y: float = 0.0
    px: float = 0.0
    py: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    is_down: bool = False
    target: Optional[ControlPoint] = None

    def release(self) -> None:
        self.is_down = False
        self.target = None


def compute_rest_pose(width: float, height: float) -> np.ndarray:
    """Return the (4, 2) rest positions for a surface of the given size."""
    return np.array([[width * fx, height * fy]
                     for fx, fy in zip(REST_X_FRACTIONS, REST_Y_FRACTIONS)],
                    dtype=float)


def make_control_points(rest: np.ndarray) -> List[ControlPoint]:
    """Create P0..P3 at the rest pose; P1 and P2 are movable."""
    return [ControlPoint(name, position=rest[i].copy(), movable=i in MOVABLE_INDICES)
            for i, name in enumerate(POINT_NAMES)]


class SpringEngine:
    """Spring-damper integrator for the two movable control points."""

    def __init__(self, width: float = DEFAULT_WIDTH, height: float = DEFAULT_HEIGHT):
        self.width = width
        self.height = height
        self.events: list = []

    def resize(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    # ──────────────────────────────────────────
    # Target position
    # ──────────────────────────────────────────
    def compute_target(self, index: int, rest: np.ndarray, pointer: PointerState,
                       params: PhysicsParameters) -> np.ndarray:
        """
        Spring equilibrium for movable point ``index``.

        The rest position is offset by the pointer's displacement from the
        surface centre (horizontal component mirrored for P2) and led by the
        pointer velocity.
        """
        influence = params.mouse_influence * INFLUENCE_SCALE
        dx = pointer.x - self.width / 2
        dy = pointer.y - self.height / 2

        target = np.array(rest[index], dtype=float)
        target[0] += INFLUENCE_X_SIGN[index] * dx * influence
        target[1] += dy * influence

        target[0] += pointer.vx * POINTER_LEAD
        target[1] += pointer.vy * POINTER_LEAD
        return target

    # ──────────────────────────────────────────
    # Boundary clamp
    # ──────────────────────────────────────────
    def apply_boundaries(self, point: ControlPoint) -> None:
        """Clamp into the padded surface rectangle with an inelastic bounce."""
        margin = BOUNDARY_MARGIN
        limits = (self.width - margin, self.height - margin)

        for axis in (0, 1):
            if point.position[axis] < margin:
                point.position[axis] = margin
                point.velocity[axis] *= BOUNCE_FACTOR
            if point.position[axis] > limits[axis]:
                point.position[axis] = limits[axis]
                point.velocity[axis] *= BOUNCE_FACTOR

    # ──────────────────────────────────────────
    # Main update
    # ──────────────────────────────────────────
    def update(self, points: List[ControlPoint], rest: np.ndarray,
               pointer: PointerState, params: PhysicsParameters) -> None:
        """Advance P1 and P2 by one tick."""
        self.events.clear()

        for i in MOVABLE_INDICES:
            point = points[i]

            # Held points follow the pointer directly
            if pointer.target is point:
                point.stop()
                continue

            target = self.compute_target(i, rest, pointer, params)
            force = -params.stiffness * (point.position - target)

            # Damping scales the old velocity before the new force is added
            point.velocity[:] = point.velocity * params.damping + force
            point.position += point.velocity

            self.apply_boundaries(point)

            speed = float(abs(point.velocity[0]) + abs(point.velocity[1]))
            if speed > MOTION_SPAWN_THRESHOLD:
                self.events.append({
                    "type": "point_motion", "point": point.name,
                    "pos": (point.x, point.y), "speed": speed,
                })

    def simulate(self, points: List[ControlPoint], rest: np.ndarray,
                 pointer: PointerState, params: PhysicsParameters,
                 ticks: int) -> None:
        """Run ``ticks`` updates back to back (headless)."""
        for _ in range(ticks):
            self.update(points, rest, pointer, params)
