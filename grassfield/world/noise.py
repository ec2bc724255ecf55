from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

import numpy as np
from opensimplex import OpenSimplex

from grassfield.world.errors import ConfigurationError


class DistanceMetric(str, Enum):
    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    CHEBYSHEV = "chebyshev"
    MINKOWSKI = "minkowski"


class CellMode(str, Enum):
    F1 = "f1"
    F2 = "f2"
    F2_MINUS_F1 = "f2-f1"  # edges / cracks
    F1_PLUS_F2 = "f1+f2"  # (F1 + F2) / 2
    CELL_ID = "cell-id"  # raw per-cell identity hash
    CELL_NOISE = "cell-noise"  # per-cell random value


# Minkowski exponents outside this range overflow or underflow in float64
MINKOWSKI_P_RANGE = (1.0, 64.0)


def _check_positive(name: str, value: float) -> float:
    v = float(value)
    if not math.isfinite(v) or v <= 0.0:
        raise ConfigurationError(f"{name} must be a positive finite number, got {value!r}")
    return v


def hash01(seed: int, ix: np.ndarray, iz: np.ndarray) -> np.ndarray:
    """Deterministic hash -> [0,1) for integer grids (vectorized).

    Only depends on (seed, ix, iz), so the same cell always hashes to the same value.
    """
    ixa = np.atleast_1d(np.asarray(ix))
    iza = np.atleast_1d(np.asarray(iz))
    x = (ixa.astype(np.uint32) * np.uint32(374761393)) ^ (iza.astype(np.uint32) * np.uint32(668265263)) ^ np.uint32(seed & 0xFFFFFFFF)
    x ^= (x >> np.uint32(13))
    x *= np.uint32(1274126177)
    x ^= (x >> np.uint32(16))
    out = x.astype(np.float64) / float(2**32)
    return out.reshape(np.shape(ix))


def smoothstep(edge0: float, edge1: float, x: np.ndarray) -> np.ndarray:
    """GLSL-like smoothstep for numpy arrays."""
    t = np.clip((x - edge0) / max(edge1 - edge0, 1e-9), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


# --- Gradient noise ---

@dataclass(frozen=True)
class NoiseConfig:
    octaves: int = 1
    lacunarity: float = 2.0
    gain: float = 0.5
    base_freq: float = 1.0

    def validate(self) -> None:
        if int(self.octaves) < 1:
            raise ConfigurationError(f"octaves must be >= 1, got {self.octaves!r}")
        _check_positive("lacunarity", self.lacunarity)
        _check_positive("gain", self.gain)
        _check_positive("base_freq", self.base_freq)


class GradientNoise2D:
    """Smooth 2D gradient noise remapped to [0,1].

    Thin wrapper over OpenSimplex. `lattice` evaluates a whole axis-aligned grid at
    once, which is how the chunk builder samples its placement lattice.
    """

    def __init__(self, seed: int) -> None:
        self.seed = int(seed)
        self._simp = OpenSimplex(self.seed)

    def value(self, x: float, z: float, scale: float = 1.0) -> float:
        s = _check_positive("noise scale", scale)
        n = self._simp.noise2(float(x) * s, float(z) * s)
        return min(1.0, max(0.0, (n + 1.0) * 0.5))

    def lattice(self, xs: np.ndarray, zs: np.ndarray, scale: float = 1.0) -> np.ndarray:
        """Return a (len(zs), len(xs)) grid of values in [0,1]."""
        s = _check_positive("noise scale", scale)
        xa = np.asarray(xs, dtype=np.float64).reshape(-1) * s
        za = np.asarray(zs, dtype=np.float64).reshape(-1) * s
        n = self._simp.noise2array(xa, za)
        return np.clip((n + 1.0) * 0.5, 0.0, 1.0)


class FractalGradientNoise:
    """Multi-octave gradient noise, normalized by total amplitude, in [0,1]."""

    def __init__(self, seed: int, cfg: NoiseConfig | None = None) -> None:
        self.seed = int(seed)
        self.cfg = cfg or NoiseConfig()
        self.cfg.validate()
        self._simp = OpenSimplex(self.seed)

    def value(self, x: float, z: float) -> float:
        freq = self.cfg.base_freq
        amp = 1.0
        total = 0.0
        norm = 0.0
        for _ in range(self.cfg.octaves):
            total += self._simp.noise2(x * freq, z * freq) * amp
            norm += amp
            freq *= self.cfg.lacunarity
            amp *= self.cfg.gain
        total = total / max(norm, 1e-9)
        return min(1.0, max(0.0, (total + 1.0) * 0.5))

    def lattice(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        xa = np.asarray(xs, dtype=np.float64).reshape(-1)
        za = np.asarray(zs, dtype=np.float64).reshape(-1)
        freq = self.cfg.base_freq
        amp = 1.0
        total = np.zeros((za.size, xa.size), dtype=np.float64)
        norm = 0.0
        for _ in range(self.cfg.octaves):
            total += self._simp.noise2array(xa * freq, za * freq) * amp
            norm += amp
            freq *= self.cfg.lacunarity
            amp *= self.cfg.gain
        total = total / max(norm, 1e-9)
        return np.clip((total + 1.0) * 0.5, 0.0, 1.0)


# --- Cellular noise ---

@dataclass(frozen=True)
class CellularConfig:
    scale: float = 10.0
    jitter: float = 1.0  # clamped to [0,1]
    mode: CellMode = CellMode.F1
    metric: DistanceMetric = DistanceMetric.EUCLIDEAN
    minkowski_p: float = 2.0

    def validate(self) -> None:
        _check_positive("cellular scale", self.scale)
        p = _check_positive("minkowski exponent", self.minkowski_p)
        lo, hi = MINKOWSKI_P_RANGE
        if not lo <= p <= hi:
            raise ConfigurationError(f"minkowski exponent must lie in [{lo:g}, {hi:g}], got {self.minkowski_p!r}")
        try:
            CellMode(self.mode)
            DistanceMetric(self.metric)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e


class CellularNoise2D:
    """Voronoi-style noise over unit cells, each owning one jittered feature point.

    Coordinates are multiplied by `cfg.scale` before the cell lookup. The 3x3 cell
    neighborhood around the query point is scanned and the two smallest distances
    (F1, F2) are tracked.
    """

    def __init__(self, seed: int = 0, cfg: CellularConfig | None = None) -> None:
        self.seed = int(seed)
        self.cfg = cfg or CellularConfig()
        self.cfg.validate()
        self.jitter = min(1.0, max(0.0, float(self.cfg.jitter)))
        self.mode = CellMode(self.cfg.mode)
        self.metric = DistanceMetric(self.cfg.metric)

    def _features(self, ix: np.ndarray, iz: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        fx = ix.astype(np.float64) + hash01(self.seed, ix, iz) * self.jitter
        fz = iz.astype(np.float64) + hash01(self.seed + 1013, ix, iz) * self.jitter
        return fx, fz

    def feature_point(self, ix: int, iz: int) -> tuple[float, float]:
        """Feature point of cell (ix, iz), in scaled coordinates."""
        fx, fz = self._features(np.array([ix], dtype=np.int64), np.array([iz], dtype=np.int64))
        return float(fx[0]), float(fz[0])

    def cell_id(self, ix: int, iz: int) -> float:
        return float(hash01(self.seed + 2029, np.array([ix], dtype=np.int64), np.array([iz], dtype=np.int64))[0])

    def _distance(self, dx: np.ndarray, dz: np.ndarray) -> np.ndarray:
        ax = np.abs(dx)
        az = np.abs(dz)
        if self.metric is DistanceMetric.MANHATTAN:
            return ax + az
        if self.metric is DistanceMetric.CHEBYSHEV:
            return np.maximum(ax, az)
        if self.metric is DistanceMetric.MINKOWSKI:
            p = float(self.cfg.minkowski_p)
            m = np.maximum(ax, az)
            safe = np.where(m > 0.0, m, 1.0)
            return m * np.power(np.power(ax / safe, p) + np.power(az / safe, p), 1.0 / p)
        return np.sqrt(dx * dx + dz * dz)

    def grid(self, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        # x,z: same-shape coordinate arrays (unscaled)
        shape = np.shape(x)
        px = np.atleast_1d(np.asarray(x, dtype=np.float64)) * self.cfg.scale
        pz = np.atleast_1d(np.asarray(z, dtype=np.float64)) * self.cfg.scale
        cx = np.floor(px).astype(np.int64)
        cz = np.floor(pz).astype(np.int64)

        f1 = np.full(px.shape, np.inf)
        f2 = np.full(px.shape, np.inf)
        near_x = cx.copy()
        near_z = cz.copy()
        for di in (-1, 0, 1):
            for dj in (-1, 0, 1):
                nx = cx + di
                nz = cz + dj
                fx, fz = self._features(nx, nz)
                d = self._distance(px - fx, pz - fz)
                closer = d < f1
                f2 = np.where(closer, f1, np.minimum(f2, d))
                f1 = np.where(closer, d, f1)
                near_x = np.where(closer, nx, near_x)
                near_z = np.where(closer, nz, near_z)

        if self.mode is CellMode.F2:
            out = np.clip(f2, 0.0, 1.0)
        elif self.mode is CellMode.F2_MINUS_F1:
            out = np.clip(f2 - f1, 0.0, 1.0)
        elif self.mode is CellMode.F1_PLUS_F2:
            out = np.clip((f1 + f2) * 0.5, 0.0, 1.0)
        elif self.mode is CellMode.CELL_ID:
            out = hash01(self.seed + 2029, near_x, near_z)
        elif self.mode is CellMode.CELL_NOISE:
            out = hash01(self.seed + 3037, near_x, near_z)
        else:
            out = np.clip(f1, 0.0, 1.0)
        return out.reshape(shape)

    def value(self, x: float, z: float) -> float:
        return float(self.grid(np.array([x], dtype=np.float64), np.array([z], dtype=np.float64))[0])


class FractalCellularNoise:
    """Sum of cellular octaves at increasing frequency, normalized by total amplitude."""

    def __init__(
        self,
        seed: int = 0,
        cfg: CellularConfig | None = None,
        *,
        octaves: int = 3,
        lacunarity: float = 2.0,
        persistence: float = 0.5,
    ) -> None:
        base = cfg or CellularConfig()
        NoiseConfig(octaves=octaves, lacunarity=lacunarity, gain=persistence).validate()
        self.layers: list[tuple[CellularNoise2D, float]] = []
        freq = float(base.scale)
        amp = 1.0
        for _ in range(int(octaves)):
            layer_cfg = CellularConfig(
                scale=freq,
                jitter=base.jitter,
                mode=base.mode,
                metric=base.metric,
                minkowski_p=base.minkowski_p,
            )
            self.layers.append((CellularNoise2D(seed, layer_cfg), amp))
            amp *= float(persistence)
            freq *= float(lacunarity)

    def grid(self, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        total = np.zeros(np.shape(x), dtype=np.float64)
        norm = 0.0
        for layer, amp in self.layers:
            total = total + layer.grid(x, z) * amp
            norm += amp
        return total / max(norm, 1e-9)

    def value(self, x: float, z: float) -> float:
        return float(self.grid(np.array([x], dtype=np.float64), np.array([z], dtype=np.float64))[0])


# --- Preset catalog ---

def clumping(x, z, scale: float = 10.0, jitter: float = 1.0, *, seed: int = 0) -> np.ndarray:
    """1 near feature points, falling to 0 away from them."""
    f1 = CellularNoise2D(seed, CellularConfig(scale=scale, jitter=jitter)).grid(np.asarray(x), np.asarray(z))
    return 1.0 - np.clip(f1, 0.0, 1.0)


def edges(x, z, scale: float = 10.0, edge_width: float = 0.1, *, seed: int = 0) -> np.ndarray:
    cell = CellularNoise2D(seed, CellularConfig(scale=scale, mode=CellMode.F2_MINUS_F1))
    return smoothstep(0.0, edge_width, cell.grid(np.asarray(x), np.asarray(z)))


def smooth(x, z, scale: float = 10.0, smoothness: float = 0.5, *, seed: int = 0) -> np.ndarray:
    """Clumping blended with gradient noise at half the frequency."""
    xa = np.atleast_1d(np.asarray(x, dtype=np.float64))
    za = np.atleast_1d(np.asarray(z, dtype=np.float64))
    vor = clumping(xa, za, scale, seed=seed)
    grad = GradientNoise2D(seed)
    g = np.array([grad.value(px, pz, scale * 0.5) for px, pz in zip(xa.reshape(-1), za.reshape(-1))]).reshape(xa.shape)
    out = vor + (g - vor) * float(smoothness)
    return out.reshape(np.shape(x))


def grass_clumps(x, z, scale: float = 15.0, *, seed: int = 0) -> np.ndarray:
    return clumping(x, z, scale, 0.9, seed=seed)


def rock_scatter(x, z, scale: float = 5.0, *, seed: int = 0) -> np.ndarray:
    cfg = CellularConfig(scale=scale, jitter=0.3, mode=CellMode.CELL_ID)
    return CellularNoise2D(seed, cfg).grid(np.asarray(x), np.asarray(z))


def tectonic_plates(x, z, scale: float = 8.0, *, seed: int = 0) -> np.ndarray:
    cfg = CellularConfig(scale=scale, jitter=0.5, mode=CellMode.F2_MINUS_F1)
    return CellularNoise2D(seed, cfg).grid(np.asarray(x), np.asarray(z))


def floral_clusters(x, z, scale: float = 20.0, *, seed: int = 0) -> np.ndarray:
    large = clumping(x, z, scale * 0.5, 1.0, seed=seed)
    small = clumping(x, z, scale * 2.0, 0.8, seed=seed)
    return large * 0.7 + small * 0.3


def crystals(x, z, scale: float = 12.0, *, seed: int = 0) -> np.ndarray:
    cfg = CellularConfig(scale=scale, jitter=0.2, metric=DistanceMetric.CHEBYSHEV)
    return CellularNoise2D(seed, cfg).grid(np.asarray(x), np.asarray(z))


def preview_image(noise, resolution: int = 256) -> np.ndarray:
    """Sample a noise object (anything with `grid(x, z)`) over the unit square."""
    res = int(resolution)
    if res < 1:
        raise ConfigurationError(f"resolution must be >= 1, got {resolution!r}")
    t = np.arange(res, dtype=np.float64) / res
    gx, gz = np.meshgrid(t, t, indexing="xy")
    return noise.grid(gx, gz)
