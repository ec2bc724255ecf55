from __future__ import annotations

from dataclasses import dataclass, field

from grassfield.world.errors import ConfigurationError


@dataclass(frozen=True)
class Segment:
    """One ribbon step: width at its top edge and the share of total height it adds."""
    top_width: float
    height_fraction: float


@dataclass(frozen=True)
class BladeType:
    """Read-only descriptor of a vegetation (blade) type.

    `size` is (base width, total height). Segment height fractions accumulate from the
    base; the running total is clamped to 1.0 when the ribbon is built.
    """
    name: str = "blade"
    size: tuple[float, float] = (0.05, 1.0)
    segments: tuple[Segment, ...] = field(default_factory=tuple)

    # Appearance
    gradient: bool = True
    base_brightness: float = 0.3
    tip_brightness: float = 1.0

    # Per-blade color jitter ranges (added to the surface color in HSV)
    hue_range: tuple[float, float] = (-0.05, 0.05)
    saturation_range: tuple[float, float] = (-0.05, 0.05)
    value_range: tuple[float, float] = (-0.05, 0.05)

    # Scale and tilt (degrees)
    scale_range: tuple[float, float] = (0.8, 1.2)
    tilt_range: tuple[float, float] = (0.0, 15.0)

    # Type-selection noise
    noise_scale: float = 10.0
    range_min: float = 0.0
    range_max: float = 0.33

    density_multiplier: float = 1.0

    @property
    def vertex_count(self) -> int:
        # base pair + one pair per segment + apex
        return 2 * (len(self.segments) + 1) + 1

    @property
    def index_count(self) -> int:
        # two triangles per segment quad + two closing the apex
        return 3 * (2 * len(self.segments) + 2)

    def validate(self) -> None:
        w, h = self.size
        if w < 0.0 or h < 0.0:
            raise ConfigurationError(f"blade type {self.name!r}: size must be non-negative, got {self.size!r}")
        if not (0.0 <= self.range_min <= 1.0 and 0.0 <= self.range_max <= 1.0):
            raise ConfigurationError(f"blade type {self.name!r}: acceptance range must lie in [0,1]")
        if self.range_min > self.range_max:
            raise ConfigurationError(f"blade type {self.name!r}: range_min > range_max")
        if self.scale_range[0] > self.scale_range[1] or self.tilt_range[0] > self.tilt_range[1]:
            raise ConfigurationError(f"blade type {self.name!r}: inverted scale/tilt range")
        if self.density_multiplier < 0.0:
            raise ConfigurationError(f"blade type {self.name!r}: density_multiplier must be >= 0")
        for seg in self.segments:
            if seg.height_fraction < 0.0 or seg.top_width < 0.0:
                raise ConfigurationError(f"blade type {self.name!r}: negative segment value {seg!r}")


# Authoring presets
COMMON = BladeType(
    name="common",
    size=(0.05, 1.0),
    segments=(Segment(0.03, 0.6),),
    range_min=0.0,
    range_max=0.4,
    density_multiplier=1.5,
)

TALL = BladeType(
    name="tall",
    size=(0.04, 1.5),
    segments=(Segment(0.03, 0.5), Segment(0.02, 0.3)),
    range_min=0.4,
    range_max=0.7,
    density_multiplier=1.0,
)

CLOVER = BladeType(
    name="clover",
    size=(0.08, 0.5),
    segments=(Segment(0.06, 0.8),),
    range_min=0.7,
    range_max=1.0,
    density_multiplier=0.8,
)

PRESETS: dict[str, BladeType] = {t.name: t for t in (COMMON, TALL, CLOVER)}


def default_blade_types() -> tuple[BladeType, ...]:
    return (COMMON, TALL, CLOVER)
