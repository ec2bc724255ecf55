from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np


class LODBucket(IntEnum):
    CULLED = -1
    LOD0 = 0
    LOD1 = 1
    LOD2 = 2


@dataclass(frozen=True)
class Bounds:
    lo: np.ndarray  # (3,)
    hi: np.ndarray  # (3,)

    @classmethod
    def from_points(cls, pts: np.ndarray) -> "Bounds":
        p = np.asarray(pts, dtype=np.float64).reshape(-1, 3)
        return cls(lo=p.min(axis=0), hi=p.max(axis=0))

    @property
    def center(self) -> np.ndarray:
        return (self.lo + self.hi) * 0.5

    @property
    def size(self) -> np.ndarray:
        return self.hi - self.lo


@dataclass
class ChunkRecord:
    """Geometry of one non-empty chunk plus its per-tick classification.

    Geometry and bounds are fixed after generation; only `visible`, `lod` and
    `distance` change afterwards, and only through the visibility classifier.
    """
    cx: int
    cz: int
    positions: np.ndarray  # float32 (N,3)
    colors: np.ndarray  # float32 (N,4), alpha = normalized blade height
    uvs: np.ndarray  # float32 (N,2)
    indices: np.ndarray  # uint32 (M,)
    bounds: Bounds
    centroid: np.ndarray  # mean of blade root positions
    blade_count: int = 0
    truncated: bool = False  # vertex budget reached

    visible: bool = True
    lod: LODBucket = LODBucket.LOD0
    distance: float = field(default=0.0)

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def key(self) -> tuple[int, int]:
        return self.cx, self.cz
