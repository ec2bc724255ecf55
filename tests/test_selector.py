from __future__ import annotations

import numpy as np
import pytest

from grassfield.world.blades import CLOVER, COMMON, TALL, BladeType
from grassfield.world.errors import ConfigurationError
from grassfield.world.selector import (
    TypeSelector,
    accepts_planting,
    blend_probability,
    plant_probability,
)


def _rng(seed: int = 0) -> np.random.Generator:
    return np.random.default_rng(seed)


def test_discrete_picks_first_matching_range() -> None:
    sel = TypeSelector((COMMON, TALL, CLOVER), policy="discrete")
    rng = _rng()
    assert sel.pick(0.1, rng) is COMMON
    assert sel.pick(0.55, rng) is TALL
    assert sel.pick(0.9, rng) is CLOVER
    # 0.4 lies in both COMMON [0, 0.4] and TALL [0.4, 0.7]; first wins
    assert sel.pick(0.4, rng) is COMMON


def test_discrete_falls_back_to_first_type() -> None:
    a = BladeType(name="a", range_min=0.2, range_max=0.3)
    b = BladeType(name="b", range_min=0.6, range_max=0.7)
    sel = TypeSelector((a, b), policy="discrete")
    assert sel.pick(0.95, _rng()) is a


def test_empty_type_list_yields_none() -> None:
    sel = TypeSelector((), policy="blended")
    assert sel.empty
    assert sel.pick(0.5, _rng()) is None
    assert sel.select(0.5, 0.5, _rng()) is None


def test_blend_probability_shape() -> None:
    t = BladeType(range_min=0.4, range_max=0.6)
    assert blend_probability(t, 0.5, 0.1) == pytest.approx(1.0)
    assert blend_probability(t, 0.7, 0.1) == pytest.approx(0.0)
    assert blend_probability(t, 0.25, 0.1) == 0.0
    assert 0.0 < blend_probability(t, 0.62, 0.1) < blend_probability(t, 0.55, 0.1) < 1.0


def test_blended_only_returns_eligible_types_or_fallback() -> None:
    a = BladeType(name="a", range_min=0.0, range_max=0.3)
    b = BladeType(name="b", range_min=0.7, range_max=1.0)
    sel = TypeSelector((a, b), policy="blended", transition_width=0.05)
    rng = _rng(3)
    picks = {sel.pick(0.85, rng).name for _ in range(200)}
    # b is drawn often near its center, a only as the fallback
    assert "b" in picks
    assert picks <= {"a", "b"}
    # Far outside both expanded ranges only the fallback is possible
    assert {sel.pick(0.5, rng).name for _ in range(50)} == {"a"}


def test_random_policy_covers_all_types() -> None:
    sel = TypeSelector((COMMON, TALL, CLOVER), policy="random")
    rng = _rng(5)
    names = {sel.pick(0.0, rng).name for _ in range(300)}
    assert names == {"common", "tall", "clover"}


def test_pick_is_reproducible_for_same_generator_state() -> None:
    sel = TypeSelector((COMMON, TALL, CLOVER), policy="blended")
    a = [sel.pick(v, _rng(9)).name for v in np.linspace(0.0, 1.0, 21)]
    b = [sel.pick(v, _rng(9)).name for v in np.linspace(0.0, 1.0, 21)]
    assert a == b


def test_planting_probability() -> None:
    assert plant_probability(BladeType(density_multiplier=5.0)) == 1.0
    assert plant_probability(BladeType(density_multiplier=10.0)) == 1.0
    assert plant_probability(BladeType(density_multiplier=2.5)) == pytest.approx(0.5)
    never = BladeType(density_multiplier=0.0)
    rng = _rng(1)
    assert not any(accepts_planting(never, rng) for _ in range(100))
    always = BladeType(density_multiplier=5.0)
    assert all(accepts_planting(always, rng) for _ in range(100))


def test_selector_rejects_bad_configuration() -> None:
    with pytest.raises(ConfigurationError):
        TypeSelector((COMMON,), policy="weighted")
    with pytest.raises(ConfigurationError):
        TypeSelector((COMMON,), transition_width=-0.1)
