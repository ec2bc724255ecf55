from __future__ import annotations

from typing import Sequence

import numpy as np

from grassfield.world.blades import BladeType
from grassfield.world.errors import ConfigurationError
from grassfield.world.noise import GradientNoise2D

POLICIES = ("blended", "discrete", "random")


def plant_probability(blade: BladeType) -> float:
    """Planting chance implied by a type's density multiplier."""
    return min(1.0, max(0.0, float(blade.density_multiplier) / 5.0))


def accepts_planting(blade: BladeType, rng: np.random.Generator) -> bool:
    return not (float(rng.random()) > plant_probability(blade))


def blend_probability(blade: BladeType, value: float, transition_width: float) -> float:
    """Acceptance probability inside a type's range expanded by `transition_width`.

    1 at the range center, decaying linearly to 0 at the expanded edges, 0 outside.
    """
    lo = blade.range_min - transition_width
    hi = blade.range_max + transition_width
    if value < lo or value > hi:
        return 0.0
    center = (blade.range_min + blade.range_max) * 0.5
    reach = (blade.range_max - blade.range_min) * 0.5 + transition_width
    if reach <= 0.0:
        return 1.0
    return max(0.0, 1.0 - abs(value - center) / reach)


class TypeSelector:
    """Picks which blade type governs a placement.

    Noise-driven decisions (the type-selection field) and random draws (blend coin
    flips, the random policy) are kept apart: `noise_lattice` is pure, `pick` only
    consumes the generator that is passed in.
    """

    def __init__(
        self,
        types: Sequence[BladeType],
        *,
        policy: str = "blended",
        noise: GradientNoise2D | None = None,
        noise_scale: float = 5.0,
        transition_width: float = 0.1,
    ) -> None:
        if policy not in POLICIES:
            raise ConfigurationError(f"unknown type policy {policy!r} (expected one of {', '.join(POLICIES)})")
        if transition_width < 0.0:
            raise ConfigurationError(f"transition_width must be >= 0, got {transition_width!r}")
        self.types = tuple(types)
        self.policy = policy
        self.noise = noise or GradientNoise2D(0)
        self.noise_scale = float(noise_scale)
        self.transition_width = float(transition_width)

    @property
    def empty(self) -> bool:
        return not self.types

    def noise_lattice(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        """Type-selection noise over normalized lattice coordinates."""
        return self.noise.lattice(xs, zs, self.noise_scale)

    def pick(self, value: float, rng: np.random.Generator) -> BladeType | None:
        if not self.types:
            return None
        if self.policy == "random":
            return self.types[int(rng.integers(len(self.types)))]
        if self.policy == "discrete":
            for t in self.types:
                if t.range_min <= value <= t.range_max:
                    return t
            return self.types[0]

        for t in self.types:
            p = blend_probability(t, value, self.transition_width)
            if p <= 0.0:
                continue
            if float(rng.random()) < p:
                return t
        return self.types[0]

    def select(self, nx: float, nz: float, rng: np.random.Generator) -> BladeType | None:
        """Evaluate the selection field at normalized coordinates and pick a type."""
        if not self.types:
            return None
        value = self.noise.value(nx, nz, self.noise_scale) if self.policy != "random" else 0.0
        return self.pick(value, rng)
