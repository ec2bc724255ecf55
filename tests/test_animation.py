from __future__ import annotations

import math

import pytest

from grassfield.world.animation import AnimationFeed, InteractionParams, WindParams
from grassfield.world.errors import ConfigurationError


def test_wind_vector() -> None:
    feed = AnimationFeed(WindParams(speed=2.0, strength=0.7, direction_deg=90.0, turbulence=0.25))
    frame = feed.update(3.0)
    dx, turb, dz, t = frame.wind
    assert dx == pytest.approx(0.0, abs=1e-12)
    assert dz == pytest.approx(1.0)
    assert turb == pytest.approx(0.25)
    assert t == pytest.approx(6.0)
    assert frame.wind_strength == pytest.approx(0.7)


def test_disabled_parts_are_none() -> None:
    feed = AnimationFeed(WindParams(enabled=False), InteractionParams(enabled=False))
    frame = feed.update(1.0, (0.0, 0.0, 0.0))
    assert frame.wind is None and frame.wind_strength is None
    assert frame.interaction is None and frame.interaction_radius is None


def test_interaction_needs_a_position() -> None:
    feed = AnimationFeed(interaction=InteractionParams(enabled=True, radius=2.5, strength=0.8))
    assert feed.update(0.0).interaction is None
    frame = feed.update(0.0, (1.0, 2.0, 3.0))
    assert frame.interaction == (1.0, 2.0, 3.0, 0.8)
    assert frame.interaction_radius == 2.5


def test_default_direction() -> None:
    frame = AnimationFeed().update(0.0)
    dx, _, dz, _ = frame.wind
    assert dx == pytest.approx(math.sqrt(0.5))
    assert dz == pytest.approx(math.sqrt(0.5))


def test_invalid_params() -> None:
    with pytest.raises(ConfigurationError):
        AnimationFeed(WindParams(strength=-1.0))
    with pytest.raises(ConfigurationError):
        AnimationFeed(interaction=InteractionParams(radius=0.0))
