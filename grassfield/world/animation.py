from __future__ import annotations

import math
from dataclasses import dataclass

from grassfield.config import (
    DEFAULT_INTERACTION,
    DEFAULT_INTERACTION_RADIUS,
    DEFAULT_INTERACTION_STRENGTH,
    DEFAULT_WIND,
    DEFAULT_WIND_DIRECTION_DEG,
    DEFAULT_WIND_SPEED,
    DEFAULT_WIND_STRENGTH,
    DEFAULT_WIND_TURBULENCE,
)
from grassfield.world.errors import ConfigurationError


@dataclass(frozen=True)
class WindParams:
    enabled: bool = DEFAULT_WIND
    speed: float = DEFAULT_WIND_SPEED
    strength: float = DEFAULT_WIND_STRENGTH
    direction_deg: float = DEFAULT_WIND_DIRECTION_DEG
    turbulence: float = DEFAULT_WIND_TURBULENCE

    def validate(self) -> None:
        if self.speed < 0.0 or self.strength < 0.0 or self.turbulence < 0.0:
            raise ConfigurationError("wind speed/strength/turbulence must be >= 0")


@dataclass(frozen=True)
class InteractionParams:
    enabled: bool = DEFAULT_INTERACTION
    radius: float = DEFAULT_INTERACTION_RADIUS
    strength: float = DEFAULT_INTERACTION_STRENGTH

    def validate(self) -> None:
        if self.radius <= 0.0:
            raise ConfigurationError(f"interaction radius must be positive, got {self.radius!r}")
        if self.strength < 0.0:
            raise ConfigurationError("interaction strength must be >= 0")


@dataclass(frozen=True)
class AnimationFrame:
    """Shader inputs for one tick. Disabled parts are None."""
    wind: tuple[float, float, float, float] | None  # (dir_x, turbulence, dir_z, time)
    wind_strength: float | None
    interaction: tuple[float, float, float, float] | None  # (x, y, z, strength)
    interaction_radius: float | None


class AnimationFeed:
    def __init__(self, wind: WindParams | None = None, interaction: InteractionParams | None = None) -> None:
        self.wind = wind or WindParams()
        self.interaction = interaction or InteractionParams()
        self.wind.validate()
        self.interaction.validate()
        self.last: AnimationFrame | None = None

    def update(self, time_s: float, interaction_pos=None) -> AnimationFrame:
        wind = None
        strength = None
        if self.wind.enabled:
            a = math.radians(self.wind.direction_deg)
            wind = (math.cos(a), float(self.wind.turbulence), math.sin(a), float(time_s) * self.wind.speed)
            strength = float(self.wind.strength)

        inter = None
        radius = None
        if self.interaction.enabled and interaction_pos is not None:
            x, y, z = (float(c) for c in interaction_pos)
            inter = (x, y, z, float(self.interaction.strength))
            radius = float(self.interaction.radius)

        self.last = AnimationFrame(wind=wind, wind_strength=strength, interaction=inter, interaction_radius=radius)
        return self.last
