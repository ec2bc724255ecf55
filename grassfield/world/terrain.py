from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

import numpy as np

from grassfield.world.errors import ConfigurationError
from grassfield.world.noise import FractalGradientNoise, NoiseConfig, smoothstep


class TerrainSampler(Protocol):
    """Height/normal/surface provider the chunk builder samples from."""

    def height(self, x: float, z: float) -> float: ...

    def normal(self, x: float, z: float) -> np.ndarray: ...

    def surface_color(
        self, x: float, z: float, allowed_layers: Iterable[int] | None = None
    ) -> tuple[tuple[float, float, float], float]: ...


@dataclass
class SurfaceLayer:
    name: str
    weights: np.ndarray  # (rows, cols) blend weights over the whole terrain
    texture: np.ndarray | None = None  # (th, tw, 3) rgb in 0..1, None = no texture


def _soft_texture(h: int, w: int, *, seed: int, base_rgb: tuple[float, float, float], octaves: int = 4, contrast: float = 0.25) -> np.ndarray:
    """Low-frequency tiling color texture around `base_rgb`."""
    rng = np.random.default_rng(int(seed))
    img = np.zeros((h, w), dtype=np.float32)
    amp = 1.0
    total = 0.0
    for o in range(int(octaves)):
        step = max(1, 2 ** (o + 2))
        gh = max(2, h // step)
        gw = max(2, w // step)
        grid = rng.random((gh + 1, gw + 1), dtype=np.float32)

        # Bilinear upsample
        yy = np.linspace(0.0, gh, h, endpoint=False)
        xx = np.linspace(0.0, gw, w, endpoint=False)
        y0 = np.floor(yy).astype(np.int32)
        x0 = np.floor(xx).astype(np.int32)
        y1 = np.minimum(y0 + 1, gh)
        x1 = np.minimum(x0 + 1, gw)
        fy = (yy - y0).astype(np.float32)
        fx = (xx - x0).astype(np.float32)

        g00 = grid[y0[:, None], x0[None, :]]
        g10 = grid[y1[:, None], x0[None, :]]
        g01 = grid[y0[:, None], x1[None, :]]
        g11 = grid[y1[:, None], x1[None, :]]

        a = g00 * (1.0 - fy)[:, None] + g10 * fy[:, None]
        b = g01 * (1.0 - fy)[:, None] + g11 * fy[:, None]
        img += (a * (1.0 - fx)[None, :] + b * fx[None, :]) * amp
        total += amp
        amp *= 0.5
    img /= max(total, 1e-9)

    shade = 1.0 + (img - 0.5) * 2.0 * contrast
    rgb = np.asarray(base_rgb, dtype=np.float32)[None, None, :] * shade[..., None]
    return np.clip(rgb, 0.0, 1.0).astype(np.float32)


class HeightFieldTerrain:
    """TerrainSampler over a regular height grid with layered surface maps.

    `heights` is (rows, cols) spanning [0, width] x [0, depth] in world units.
    Each layer has its own weight grid (any resolution) and optional color texture,
    sampled with normalized coordinates like a splat map.
    """

    def __init__(self, heights: np.ndarray, layers: Sequence[SurfaceLayer] = (), *, width: float | None = None, depth: float | None = None) -> None:
        h = np.asarray(heights, dtype=np.float64)
        if h.ndim != 2 or h.shape[0] < 2 or h.shape[1] < 2:
            raise ConfigurationError(f"height grid must be 2D and at least 2x2, got shape {h.shape}")
        self.heights = h
        self.rows, self.cols = h.shape
        self.width = float(width) if width is not None else float(self.cols - 1)
        self.depth = float(depth) if depth is not None else float(self.rows - 1)
        if self.width <= 0.0 or self.depth <= 0.0:
            raise ConfigurationError("terrain width/depth must be positive")
        self._dx = self.width / (self.cols - 1)
        self._dz = self.depth / (self.rows - 1)
        self.layers = list(layers)

    # --- height / normal ---

    def height(self, x: float, z: float) -> float:
        gx = min(max(float(x) / self._dx, 0.0), self.cols - 1.0)
        gz = min(max(float(z) / self._dz, 0.0), self.rows - 1.0)
        i0 = min(int(gx), self.cols - 2)
        j0 = min(int(gz), self.rows - 2)
        fx = gx - i0
        fz = gz - j0
        h = self.heights
        a = h[j0, i0] + (h[j0, i0 + 1] - h[j0, i0]) * fx
        b = h[j0 + 1, i0] + (h[j0 + 1, i0 + 1] - h[j0 + 1, i0]) * fx
        return float(a + (b - a) * fz)

    def normal(self, x: float, z: float) -> np.ndarray:
        # Central differences at grid spacing
        dhdx = (self.height(x + self._dx, z) - self.height(x - self._dx, z)) / (2 * self._dx)
        dhdz = (self.height(x, z + self._dz) - self.height(x, z - self._dz)) / (2 * self._dz)
        n = np.array([-dhdx, 1.0, -dhdz], dtype=np.float64)
        return n / max(float(np.linalg.norm(n)), 1e-8)

    # --- surface layers ---

    @staticmethod
    def _texel(tex: np.ndarray, u: float, v: float) -> np.ndarray:
        th, tw = tex.shape[0], tex.shape[1]
        px = (u % 1.0) * tw - 0.5
        py = (v % 1.0) * th - 0.5
        x0 = int(np.floor(px))
        y0 = int(np.floor(py))
        fx = px - x0
        fy = py - y0
        x0m, x1m = x0 % tw, (x0 + 1) % tw
        y0m, y1m = y0 % th, (y0 + 1) % th
        a = tex[y0m, x0m] * (1.0 - fx) + tex[y0m, x1m] * fx
        b = tex[y1m, x0m] * (1.0 - fx) + tex[y1m, x1m] * fx
        return a * (1.0 - fy) + b * fy

    def surface_color(
        self, x: float, z: float, allowed_layers: Iterable[int] | None = None
    ) -> tuple[tuple[float, float, float], float]:
        """Weighted mean color of the eligible layers at (x, z) and their total weight.

        Layers outside `allowed_layers` (None = all) or without a texture do not
        contribute. With zero total weight the color is black.
        """
        allowed = None if allowed_layers is None else set(int(i) for i in allowed_layers)
        nx = min(max(float(x) / self.width, 0.0), 1.0)
        nz = min(max(float(z) / self.depth, 0.0), 1.0)

        color = np.zeros(3, dtype=np.float64)
        total = 0.0
        for i, layer in enumerate(self.layers):
            if allowed is not None and i not in allowed:
                continue
            if layer.texture is None:
                continue
            ar, ac = layer.weights.shape
            mx = min(max(int(np.floor(nx * (ac - 1))), 0), ac - 1)
            mz = min(max(int(np.floor(nz * (ar - 1))), 0), ar - 1)
            w = float(layer.weights[mz, mx])
            if w <= 0.0:
                continue
            color += self._texel(layer.texture, nx, nz)[:3] * w
            total += w

        if total > 0.0:
            color /= total
        return (float(color[0]), float(color[1]), float(color[2])), total

    # --- factory ---

    @classmethod
    def procedural(cls, seed: int, width: int, depth: int, *, amplitude: float = 6.0, base_freq: float = 0.02) -> "HeightFieldTerrain":
        """Rolling hills with two layers: 0 = grass (gentle slopes), 1 = rock (steep)."""
        if int(width) < 1 or int(depth) < 1:
            raise ConfigurationError(f"terrain size must be positive, got {width}x{depth}")
        noise = FractalGradientNoise(seed + 777, NoiseConfig(octaves=4, base_freq=base_freq))
        xs = np.arange(int(width) + 1, dtype=np.float64)
        zs = np.arange(int(depth) + 1, dtype=np.float64)
        h = (noise.lattice(xs, zs) - 0.5) * 2.0 * float(amplitude)

        dhdz, dhdx = np.gradient(h)
        slope = np.sqrt(dhdx * dhdx + dhdz * dhdz)
        rock = smoothstep(0.35, 0.6, slope)
        grass = 1.0 - rock

        layers = [
            SurfaceLayer("grass", grass, _soft_texture(64, 64, seed=seed + 1, base_rgb=(0.30, 0.52, 0.18))),
            SurfaceLayer("rock", rock, _soft_texture(64, 64, seed=seed + 2, base_rgb=(0.45, 0.43, 0.40))),
        ]
        return cls(h, layers, width=float(width), depth=float(depth))
