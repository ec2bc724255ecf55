from __future__ import annotations

import colorsys
from dataclasses import dataclass

import numpy as np

from grassfield.util.math import clamp01, lerp
from grassfield.world.blades import BladeType


@dataclass
class Placement:
    """Everything needed to emit one blade. Built per candidate, consumed at once."""
    position: np.ndarray  # (3,) world position of the blade root
    rotation: np.ndarray  # (3,3) slope * tilt * yaw
    scale: float
    blade: BladeType
    base_color: tuple[float, float, float]  # blended surface color (rgb 0..1)
    color_jitter: tuple[float, float, float]  # (dh, ds, dv), one draw per blade


def draw_color_jitter(blade: BladeType, rng: np.random.Generator) -> tuple[float, float, float]:
    dh = float(rng.uniform(blade.hue_range[0], blade.hue_range[1]))
    ds = float(rng.uniform(blade.saturation_range[0], blade.saturation_range[1]))
    dv = float(rng.uniform(blade.value_range[0], blade.value_range[1]))
    return dh, ds, dv


class MeshBuffers:
    """Append-only geometry for one chunk. Many blades batch into one mesh."""

    def __init__(self) -> None:
        self.positions: list[list[float]] = []
        self.colors: list[list[float]] = []
        self.uvs: list[list[float]] = []
        self.indices: list[int] = []

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    def arrays(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Return (positions (N,3), colors (N,4), uvs (N,2), indices (M,)) as numpy arrays."""
        pos = np.array(self.positions, dtype=np.float32).reshape(-1, 3)
        col = np.array(self.colors, dtype=np.float32).reshape(-1, 4)
        uv = np.array(self.uvs, dtype=np.float32).reshape(-1, 2)
        idx = np.array(self.indices, dtype=np.uint32)
        return pos, col, uv, idx


def _brightness(blade: BladeType, height: float, total: float, nh: float, *, ambient_occlusion: bool, ao_intensity: float) -> float:
    b = lerp(blade.base_brightness, blade.tip_brightness, nh) if blade.gradient else 1.0
    ao_top = total * 0.2
    if ambient_occlusion and height < ao_top:
        b *= lerp(1.0 - ao_intensity, 1.0, height / ao_top)
    return b


def build_blade(
    buf: MeshBuffers,
    p: Placement,
    *,
    ambient_occlusion: bool = True,
    ao_intensity: float = 0.3,
) -> None:
    """Append one tapering ribbon (base pair, one pair per segment, apex) to `buf`.

    Vertex alpha carries normalized height (0 base, 1 tip) for the bending shader.
    """
    blade = p.blade
    h, s, v = colorsys.rgb_to_hsv(*[clamp01(c) for c in p.base_color])
    dh, ds, dv = p.color_jitter
    h = (h + dh) % 1.0
    s = clamp01(s + ds)
    v = clamp01(v + dv)

    base_w = float(blade.size[0]) * float(p.scale)
    total = float(blade.size[1]) * float(p.scale)

    widths = [base_w]
    fracs = [0.0]
    accum = 0.0
    for seg in blade.segments:
        accum = min(1.0, accum + max(0.0, float(seg.height_fraction)))
        widths.append(float(seg.top_width))
        fracs.append(accum)

    local: list[list[float]] = []
    colors: list[list[float]] = []
    uvs: list[list[float]] = []
    for w, frac in zip(widths, fracs):
        y = total * frac
        nh = y / total if total > 0.0 else 0.0
        b = _brightness(blade, y, total, nh, ambient_occlusion=ambient_occlusion, ao_intensity=ao_intensity)
        r, g, bl = colorsys.hsv_to_rgb(h, s, clamp01(v * b))
        half_u = (w / base_w) * 0.5 if base_w > 0.0 else 0.0

        local.append([-w * 0.5, y, 0.0])
        local.append([w * 0.5, y, 0.0])
        colors.append([r, g, bl, nh])
        colors.append([r, g, bl, nh])
        uvs.append([0.5 - half_u, frac])
        uvs.append([0.5 + half_u, frac])

    # Apex
    tip_b = blade.tip_brightness if blade.gradient else 1.0
    r, g, bl = colorsys.hsv_to_rgb(h, s, clamp01(v * tip_b))
    local.append([0.0, total, 0.0])
    colors.append([r, g, bl, 1.0 if total > 0.0 else 0.0])
    uvs.append([0.5, 1.0])

    pts = np.asarray(local, dtype=np.float64) @ np.asarray(p.rotation, dtype=np.float64).T
    pts += np.asarray(p.position, dtype=np.float64)[None, :]

    base = buf.vertex_count
    n_seg = len(blade.segments)
    for k in range(n_seg):
        a = base + 2 * k
        c = a + 2
        buf.indices.extend([a, c, a + 1, c, c + 1, a + 1])
    last = base + 2 * n_seg
    tip = last + 2
    # Apex closes with a front and a back facing triangle.
    buf.indices.extend([last, tip, last + 1, last + 1, tip, last])

    buf.positions.extend(pts.tolist())
    buf.colors.extend(colors)
    buf.uvs.extend(uvs)


# --- Ground mesh (preview only) ---

def build_indices(cols: int, rows: int) -> np.ndarray:
    """Build indices for a (rows x cols) vertex grid (CCW)."""
    idx: list[int] = []
    for j in range(rows - 1):
        for i in range(cols - 1):
            a = j * cols + i
            b = a + 1
            c = a + cols
            d = c + 1
            idx.extend([a, c, b, b, c, d])
    return np.array(idx, dtype=np.uint32)


def build_ground_mesh(terrain, width: int, depth: int, *, step: float = 1.0) -> tuple[np.ndarray, np.ndarray]:
    """Return (vbo, ibo) for the ground under the field.

    Vertex format: pos (3) + norm (3) + color (3) => float32.
    """
    xs = np.arange(0.0, float(width) + 1e-6, float(step), dtype=np.float64)
    zs = np.arange(0.0, float(depth) + 1e-6, float(step), dtype=np.float64)
    cols, rows = xs.size, zs.size

    verts = np.zeros((rows, cols, 9), dtype=np.float32)
    for j, z in enumerate(zs):
        for i, x in enumerate(xs):
            y = float(terrain.height(x, z))
            n = terrain.normal(x, z)
            color, _weight = terrain.surface_color(x, z, allowed_layers=None)
            verts[j, i] = (x, y, z, n[0], n[1], n[2], color[0], color[1], color[2])
    return verts.reshape(-1, 9), build_indices(cols, rows)
