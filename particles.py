"""
Decorative Particle System
Burst spawning, ballistic advance with drag, and expiry.
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional, Sequence

# ──────────────────────────────────────────────
# Constants (per tick)
# ──────────────────────────────────────────────
GRAVITY: float = 0.1
AIR_RESISTANCE: float = 0.98
SPIN_RATE: float = 0.05

PALETTE = ("#06b6d4", "#8b5cf6", "#3b82f6", "#10b981")

# Spawn distributions: [low, high)
SPEED_RANGE = (1.0, 4.0)
LIFE_RANGE = (0.5, 1.0)
DECAY_RANGE = (0.01, 0.03)
SIZE_RANGE = (2.0, 6.0)


@dataclass
class Particle:
    x: float
    y: float
    vx: float
    vy: float
    life: float
    decay: float
    size: float
    color: str
    rotation: float = 0.0

    @property
    def alive(self) -> bool:
        return self.life > 0.0

    def advance(self) -> None:
        self.x += self.vx
        self.y += self.vy
        self.vy += GRAVITY
        self.vx *= AIR_RESISTANCE
        self.vy *= AIR_RESISTANCE
        self.life -= self.decay
        self.rotation += SPIN_RATE

    def freeze(self) -> "ParticleState":
        return ParticleState(self.x, self.y, self.life, self.size, self.color, self.rotation)


class ParticleState(NamedTuple):
    """Immutable per-frame view of a particle, as drawn by a renderer."""
    x: float
    y: float
    life: float
    size: float
    color: str
    rotation: float

    def as_dict(self) -> dict:
        """Rounded wire form used in frame messages."""
        return {
            "x": round(self.x, 2), "y": round(self.y, 2),
            "life": round(self.life, 3), "size": round(self.size, 2),
            "color": self.color, "rot": round(self.rotation, 3),
        }


class ParticleSystem:
    """
    Unordered particle collection.

    Only spawn/advance/clear live here. When and where bursts happen is
    decided by the caller.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None, enabled: bool = True):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.enabled = enabled
        self.particles: List[Particle] = []

    def __len__(self) -> int:
        return len(self.particles)

    def __iter__(self) -> Iterator[Particle]:
        return iter(self.particles)

    def spawn(self, origin: Sequence[float], count: int) -> List[Particle]:
        """Create ``count`` particles at ``origin``; no-op while disabled."""
        if not self.enabled:
            return []

        x, y = float(origin[0]), float(origin[1])
        rng = self.rng
        born = []
        for _ in range(count):
            angle = rng.uniform(0.0, 2.0 * math.pi)
            speed = rng.uniform(*SPEED_RANGE)
            born.append(Particle(
                x=x, y=y,
                vx=math.cos(angle) * speed,
                vy=math.sin(angle) * speed,
                life=rng.uniform(*LIFE_RANGE),
                decay=rng.uniform(*DECAY_RANGE),
                size=rng.uniform(*SIZE_RANGE),
                color=PALETTE[int(rng.integers(len(PALETTE)))],
                rotation=rng.uniform(0.0, 2.0 * math.pi),
            ))
        self.particles.extend(born)
        return born

    def advance(self) -> int:
        """Advance every particle one tick and drop the expired ones.

        Returns:
            Number of particles removed.
        """
        for p in self.particles:
            p.advance()
        before = len(self.particles)
        self.particles = [p for p in self.particles if p.alive]
        return before - len(self.particles)

    def clear(self) -> None:
        self.particles.clear()
