from __future__ import annotations

import numpy as np
import pytest

from grassfield.world.blades import BladeType, Segment


class FlatTerrain:
    """Height 0 everywhere, normal straight up, one fully weighted grass layer."""

    color = (0.3, 0.6, 0.2)
    weight = 1.0

    def height(self, x: float, z: float) -> float:
        return 0.0

    def normal(self, x: float, z: float) -> np.ndarray:
        return np.array([0.0, 1.0, 0.0], dtype=np.float64)

    def surface_color(self, x: float, z: float, allowed_layers=None):
        return self.color, self.weight


class BareTerrain(FlatTerrain):
    """No eligible surface layer anywhere."""

    weight = 0.0


@pytest.fixture
def flat_terrain() -> FlatTerrain:
    return FlatTerrain()


@pytest.fixture
def bare_terrain() -> BareTerrain:
    return BareTerrain()


@pytest.fixture
def always_blade() -> BladeType:
    # Range covers every noise value and the planting coin flip always succeeds
    return BladeType(
        name="always",
        size=(0.05, 1.0),
        segments=(Segment(0.03, 0.5), Segment(0.01, 0.4)),
        range_min=0.0,
        range_max=1.0,
        density_multiplier=5.0,
    )
