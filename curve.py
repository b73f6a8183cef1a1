"""
Cubic Bézier Curve Evaluator
Position, tangent and sampling helpers for a 4-point curve.
"""

import numpy as np
from typing import Iterator, Optional, Sequence, Tuple

# Default sampling (t stepped by 0.01 over [0, 1])
CURVE_STEPS: int = 100
TANGENT_PARAMS: Tuple[float, ...] = (0.1, 0.3, 0.5, 0.7, 0.9)


def _as_points(p0, p1, p2, p3):
    return (np.asarray(p0, dtype=float), np.asarray(p1, dtype=float),
            np.asarray(p2, dtype=float), np.asarray(p3, dtype=float))


# ──────────────────────────────────────────────
# Evaluation
# ──────────────────────────────────────────────
def evaluate_position(t: float, p0, p1, p2, p3) -> np.ndarray:
    """
    Cubic Bernstein blend of the four control points.

    B(t) = (1-t)³P0 + 3(1-t)²t·P1 + 3(1-t)t²·P2 + t³P3

    Valid for any real t; curve sampling restricts it to [0, 1].
    """
    p0, p1, p2, p3 = _as_points(p0, p1, p2, p3)
    u = 1.0 - t
    uu = u * u
    tt = t * t
    return uu * u * p0 + 3.0 * uu * t * p1 + 3.0 * u * tt * p2 + tt * t * p3


def evaluate_tangent(t: float, p0, p1, p2, p3) -> np.ndarray:
    """
    First derivative of the curve.

    B'(t) = 3(1-t)²(P1-P0) + 6(1-t)t(P2-P1) + 3t²(P3-P2)

    Coincident control points can give the zero vector; it is returned as is.
    """
    p0, p1, p2, p3 = _as_points(p0, p1, p2, p3)
    u = 1.0 - t
    return 3.0 * u * u * (p1 - p0) + 6.0 * u * t * (p2 - p1) + 3.0 * t * t * (p3 - p2)


def unit_tangent(t: float, p0, p1, p2, p3) -> Optional[np.ndarray]:
    """Normalized tangent, or None when the tangent has zero length."""
    tangent = evaluate_tangent(t, p0, p1, p2, p3)
    length = float(np.hypot(tangent[0], tangent[1]))
    if length == 0.0:
        return None
    return tangent / length


# ──────────────────────────────────────────────
# Sampling
# ──────────────────────────────────────────────
def sample_curve(points: Sequence, steps: int = CURVE_STEPS) -> Iterator[np.ndarray]:
    """Lazily yield ``steps + 1`` curve positions for t = 0, 1/steps, ..., 1.

    Raises ValueError when ``steps`` is less than 1.
    """
    if steps < 1:
        raise ValueError(f"steps must be >= 1, got {steps}")
    p0, p1, p2, p3 = _as_points(*points)
    return (evaluate_position(i / steps, p0, p1, p2, p3) for i in range(steps + 1))


def sample_tangents(points: Sequence,
                    params: Sequence[float] = TANGENT_PARAMS
                    ) -> Iterator[Tuple[float, np.ndarray, np.ndarray]]:
    """Yield (t, position, unit direction); degenerate tangents are skipped."""
    p0, p1, p2, p3 = _as_points(*points)
    for t in params:
        direction = unit_tangent(t, p0, p1, p2, p3)
        if direction is None:
            continue
        yield t, evaluate_position(t, p0, p1, p2, p3), direction
