from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Iterator

import numpy as np

from grassfield.config import (
    DEFAULT_AMBIENT_OCCLUSION,
    DEFAULT_AO_INTENSITY,
    DEFAULT_ALLOWED_LAYERS,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CLUMP_SCALE,
    DEFAULT_DENSITY,
    DEFAULT_DISPERSION,
    DEFAULT_DOMAIN_SIZE,
    DEFAULT_HEIGHT_VARIATION,
    DEFAULT_HEIGHT_VARIATION_AMOUNT,
    DEFAULT_HEIGHT_VARIATION_SCALE,
    DEFAULT_MAX_VERTICES_PER_CHUNK,
    DEFAULT_MIN_NOISE_VALUE,
    DEFAULT_MIN_SURFACE_WEIGHT,
    DEFAULT_PLACEMENT_NOISE,
    DEFAULT_PLACEMENT_NOISE_SCALE,
    DEFAULT_RANDOM_YAW,
    DEFAULT_SEED,
    DEFAULT_TRANSITION_WIDTH,
    DEFAULT_TYPE_NOISE_SCALE,
    DEFAULT_TYPE_POLICY,
)
from grassfield.util.math import from_to_rotation, rot_x, rot_y, rot_z
from grassfield.world.blades import BladeType, default_blade_types
from grassfield.world.chunk import Bounds, ChunkRecord
from grassfield.world.errors import ConfigurationError, MissingCollaboratorError
from grassfield.world.mesh_builder import MeshBuffers, Placement, build_blade, draw_color_jitter
from grassfield.world.noise import CellularConfig, CellularNoise2D, GradientNoise2D
from grassfield.world.selector import POLICIES, TypeSelector, accepts_planting

PLACEMENT_NOISE_KINDS = ("gradient", "clumps")

_UP = np.array([0.0, 1.0, 0.0], dtype=np.float64)


def _positive(name: str, value: float) -> None:
    if not math.isfinite(float(value)) or float(value) <= 0.0:
        raise ConfigurationError(f"{name} must be a positive finite number, got {value!r}")


@dataclass(frozen=True)
class GenerationParams:
    # Domain and partitioning (lattice units)
    domain_width: int = DEFAULT_DOMAIN_SIZE
    domain_depth: int = DEFAULT_DOMAIN_SIZE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_vertices_per_chunk: int = DEFAULT_MAX_VERTICES_PER_CHUNK

    # Placement
    density: int = DEFAULT_DENSITY
    dispersion: float = DEFAULT_DISPERSION
    placement_noise: str = DEFAULT_PLACEMENT_NOISE
    placement_noise_scale: float = DEFAULT_PLACEMENT_NOISE_SCALE
    min_noise_value: float = DEFAULT_MIN_NOISE_VALUE
    clump_scale: float = DEFAULT_CLUMP_SCALE
    min_surface_weight: float = DEFAULT_MIN_SURFACE_WEIGHT
    allowed_layers: tuple[int, ...] = DEFAULT_ALLOWED_LAYERS

    # Types
    blade_types: tuple[BladeType, ...] = field(default_factory=default_blade_types)
    type_policy: str = DEFAULT_TYPE_POLICY
    type_noise_scale: float = DEFAULT_TYPE_NOISE_SCALE
    transition_width: float = DEFAULT_TRANSITION_WIDTH

    # Blade look
    ambient_occlusion: bool = DEFAULT_AMBIENT_OCCLUSION
    ao_intensity: float = DEFAULT_AO_INTENSITY
    random_yaw: bool = DEFAULT_RANDOM_YAW
    height_variation: bool = DEFAULT_HEIGHT_VARIATION
    height_variation_amount: float = DEFAULT_HEIGHT_VARIATION_AMOUNT
    height_variation_scale: float = DEFAULT_HEIGHT_VARIATION_SCALE

    seed: int = DEFAULT_SEED

    def validate(self) -> None:
        for name in ("domain_width", "domain_depth", "chunk_size"):
            v = getattr(self, name)
            if isinstance(v, bool) or not math.isfinite(float(v)) or not float(v).is_integer():
                raise ConfigurationError(f"{name} must be a whole number of lattice units, got {v!r}")
        if int(self.domain_width) <= 0 or int(self.domain_depth) <= 0:
            raise ConfigurationError(f"empty generation domain {self.domain_width}x{self.domain_depth}")
        if int(self.chunk_size) <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {self.chunk_size!r}")
        if int(self.max_vertices_per_chunk) < 1:
            raise ConfigurationError(f"max_vertices_per_chunk must be >= 1, got {self.max_vertices_per_chunk!r}")
        if int(self.density) < 0:
            raise ConfigurationError(f"density must be >= 0, got {self.density!r}")
        if float(self.dispersion) < 0.0:
            raise ConfigurationError(f"dispersion must be >= 0, got {self.dispersion!r}")
        if self.placement_noise not in PLACEMENT_NOISE_KINDS:
            raise ConfigurationError(f"unknown placement noise {self.placement_noise!r}")
        if self.type_policy not in POLICIES:
            raise ConfigurationError(f"unknown type policy {self.type_policy!r}")
        _positive("placement_noise_scale", self.placement_noise_scale)
        _positive("clump_scale", self.clump_scale)
        _positive("type_noise_scale", self.type_noise_scale)
        _positive("height_variation_scale", self.height_variation_scale)
        if not 0.0 <= float(self.min_noise_value) <= 1.0:
            raise ConfigurationError(f"min_noise_value must lie in [0,1], got {self.min_noise_value!r}")
        if float(self.min_surface_weight) < 0.0:
            raise ConfigurationError(f"min_surface_weight must be >= 0, got {self.min_surface_weight!r}")
        if float(self.transition_width) < 0.0:
            raise ConfigurationError(f"transition_width must be >= 0, got {self.transition_width!r}")
        if not 0.0 <= float(self.ao_intensity) <= 1.0:
            raise ConfigurationError(f"ao_intensity must lie in [0,1], got {self.ao_intensity!r}")
        if not 0.0 <= float(self.height_variation_amount) <= 1.0:
            raise ConfigurationError(f"height_variation_amount must lie in [0,1], got {self.height_variation_amount!r}")
        for t in self.blade_types:
            t.validate()


@dataclass
class GenerationStats:
    chunks_x: int = 0
    chunks_z: int = 0
    total_chunks: int = 0
    skipped_chunks: int = 0  # no geometry
    truncated_chunks: int = 0  # vertex budget reached
    total_blades: int = 0
    total_vertices: int = 0
    rejected_noise: int = 0
    rejected_surface: int = 0
    rejected_planting: int = 0
    skipped_no_type: int = 0
    empty_type_list: bool = False
    elapsed_s: float = 0.0


class ChunkBuilder:
    """Partitions the domain into chunks and fills each with blade geometry.

    Noise fields decide where grass may grow and which type it is; a per-chunk
    numpy Generator seeded from (seed, cx, cz) drives every random draw, so a chunk's
    content does not depend on the order chunks are built in.
    """

    def __init__(self, params: GenerationParams, terrain) -> None:
        params.validate()
        if terrain is None:
            raise MissingCollaboratorError("no terrain sampler bound; cannot sample height/normal/surface color")
        self.params = params
        self.terrain = terrain

        seed = int(params.seed)
        self.placement_noise = GradientNoise2D(seed)
        self.clumps = CellularNoise2D(seed + 31, CellularConfig(scale=params.clump_scale, jitter=0.9))
        self.height_noise = GradientNoise2D(seed + 1337)
        self.selector = TypeSelector(
            params.blade_types,
            policy=params.type_policy,
            noise=GradientNoise2D(seed + 9001),
            noise_scale=params.type_noise_scale,
            transition_width=params.transition_width,
        )

    def grid_shape(self) -> tuple[int, int]:
        p = self.params
        c = int(p.chunk_size)
        return math.ceil(int(p.domain_width) / c), math.ceil(int(p.domain_depth) / c)

    def chunk_domain(self, cx: int, cz: int) -> tuple[int, int, int, int]:
        """Half-open lattice extent (x0, x1, z0, z1) of chunk (cx, cz)."""
        c = int(self.params.chunk_size)
        x0 = cx * c
        z0 = cz * c
        return x0, min(x0 + c, int(self.params.domain_width)), z0, min(z0 + c, int(self.params.domain_depth))

    def chunk_keys(self) -> Iterator[tuple[int, int]]:
        nx, nz = self.grid_shape()
        for cx in range(nx):
            for cz in range(nz):
                yield cx, cz

    def chunk_rng(self, cx: int, cz: int) -> np.random.Generator:
        return np.random.default_rng([int(self.params.seed) & 0xFFFFFFFF, int(cx), int(cz)])

    def acceptance_lattice(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        """Placement-acceptance noise for lattice coordinates, shape (len(zs), len(xs))."""
        p = self.params
        nxs = np.asarray(xs, dtype=np.float64) / p.domain_width
        nzs = np.asarray(zs, dtype=np.float64) / p.domain_depth
        if p.placement_noise == "clumps":
            gx, gz = np.meshgrid(nxs, nzs, indexing="xy")
            return 1.0 - np.clip(self.clumps.grid(gx, gz), 0.0, 1.0)
        return self.placement_noise.lattice(nxs, nzs, p.placement_noise_scale)

    def height_modifier_lattice(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        p = self.params
        if not p.height_variation:
            return np.ones((len(zs), len(xs)), dtype=np.float64)
        nxs = np.asarray(xs, dtype=np.float64) / p.domain_width
        nzs = np.asarray(zs, dtype=np.float64) / p.domain_depth
        n = self.height_noise.lattice(nxs, nzs, p.height_variation_scale)
        a = float(p.height_variation_amount)
        return (1.0 - a) + n * (2.0 * a)

    def _place(self, x: float, z: float, blade: BladeType, slope: np.ndarray, color, height_mod: float, rng: np.random.Generator) -> Placement:
        p = self.params
        d = float(p.dispersion)
        dx, dz = rng.uniform(-d, d, size=2)
        px = float(x) + float(dx)
        pz = float(z) + float(dz)
        py = float(self.terrain.height(px, pz))

        yaw = float(rng.uniform(0.0, 360.0)) if p.random_yaw else 0.0
        tx, tz = rng.uniform(blade.tilt_range[0], blade.tilt_range[1], size=2)
        rotation = slope @ (rot_x(float(tx)) @ rot_z(float(tz))) @ rot_y(yaw)

        scale = float(rng.uniform(blade.scale_range[0], blade.scale_range[1])) * float(height_mod)
        return Placement(
            position=np.array([px, py, pz], dtype=np.float64),
            rotation=rotation,
            scale=scale,
            blade=blade,
            base_color=color,
            color_jitter=draw_color_jitter(blade, rng),
        )

    def build_chunk(self, cx: int, cz: int, stats: GenerationStats | None = None) -> ChunkRecord | None:
        """Build one chunk. Returns None when the chunk emits no geometry."""
        p = self.params
        st = stats if stats is not None else GenerationStats()
        rng = self.chunk_rng(cx, cz)

        x0, x1, z0, z1 = self.chunk_domain(cx, cz)
        xs = np.arange(x0, x1, dtype=np.float64)
        zs = np.arange(z0, z1, dtype=np.float64)
        if xs.size == 0 or zs.size == 0:
            return None

        accept = self.acceptance_lattice(xs, zs)
        height_mod = self.height_modifier_lattice(xs, zs)
        if self.selector.policy != "random":
            type_values = self.selector.noise_lattice(xs / p.domain_width, zs / p.domain_depth)
        else:
            type_values = np.zeros((zs.size, xs.size), dtype=np.float64)

        budget = int(p.max_vertices_per_chunk)
        buf = MeshBuffers()
        root_sum = np.zeros(3, dtype=np.float64)
        blades = 0
        truncated = False

        for i, x in enumerate(xs):
            for j, z in enumerate(zs):
                if accept[j, i] <= p.min_noise_value:
                    st.rejected_noise += 1
                    continue
                color, weight = self.terrain.surface_color(float(x), float(z), p.allowed_layers)
                if weight < p.min_surface_weight:
                    st.rejected_surface += 1
                    continue
                slope = from_to_rotation(_UP, self.terrain.normal(float(x), float(z)))

                for _ in range(int(p.density)):
                    blade = self.selector.pick(float(type_values[j, i]), rng)
                    if blade is None:
                        st.skipped_no_type += 1
                        continue
                    if not accepts_planting(blade, rng):
                        st.rejected_planting += 1
                        continue
                    if buf.vertex_count + blade.vertex_count > budget:
                        truncated = True
                        break
                    placement = self._place(float(x), float(z), blade, slope, color, float(height_mod[j, i]), rng)
                    build_blade(buf, placement, ambient_occlusion=p.ambient_occlusion, ao_intensity=p.ao_intensity)
                    root_sum += placement.position
                    blades += 1
                if truncated:
                    break
            if truncated:
                break

        if truncated:
            st.truncated_chunks += 1
        if buf.vertex_count == 0:
            return None

        pos, col, uv, idx = buf.arrays()
        st.total_blades += blades
        st.total_vertices += int(pos.shape[0])
        return ChunkRecord(
            cx=int(cx),
            cz=int(cz),
            positions=pos,
            colors=col,
            uvs=uv,
            indices=idx,
            bounds=Bounds.from_points(pos),
            centroid=root_sum / blades,
            blade_count=blades,
            truncated=truncated,
        )

    def build_all(self) -> tuple[list[ChunkRecord], GenerationStats]:
        t0 = time.perf_counter()
        nx, nz = self.grid_shape()
        stats = GenerationStats(chunks_x=nx, chunks_z=nz, empty_type_list=self.selector.empty)
        records: list[ChunkRecord] = []
        for cx, cz in self.chunk_keys():
            rec = self.build_chunk(cx, cz, stats)
            if rec is None:
                stats.skipped_chunks += 1
                continue
            records.append(rec)
            stats.total_chunks += 1
        stats.elapsed_s = time.perf_counter() - t0
        return records, stats


def generate_chunks(params: GenerationParams, terrain) -> tuple[list[ChunkRecord], GenerationStats]:
    return ChunkBuilder(params, terrain).build_all()
