from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

import numpy as np

from grassfield.config import DEFAULT_LOD0_DISTANCE, DEFAULT_LOD1_DISTANCE, DEFAULT_MAX_RENDER_DISTANCE
from grassfield.world.chunk import Bounds, ChunkRecord, LODBucket
from grassfield.world.errors import ConfigurationError

VisibilityTest = Callable[[Bounds], bool]


@dataclass(frozen=True)
class LODParams:
    lod0_distance: float = DEFAULT_LOD0_DISTANCE
    lod1_distance: float = DEFAULT_LOD1_DISTANCE
    # Enforced by the renderer, not by the classifier
    max_render_distance: float = DEFAULT_MAX_RENDER_DISTANCE

    def validate(self) -> None:
        if self.lod0_distance < 0.0 or self.lod1_distance < 0.0:
            raise ConfigurationError("LOD distances must be >= 0")
        if self.lod0_distance > self.lod1_distance:
            raise ConfigurationError(
                f"LOD thresholds must ascend, got lod0={self.lod0_distance} lod1={self.lod1_distance}"
            )
        if self.max_render_distance <= 0.0:
            raise ConfigurationError("max_render_distance must be positive")


def bucket_for_distance(distance: float, params: LODParams) -> LODBucket:
    if distance < params.lod0_distance:
        return LODBucket.LOD0
    if distance < params.lod1_distance:
        return LODBucket.LOD1
    return LODBucket.LOD2


@dataclass
class ClassificationSummary:
    visible: int = 0
    culled: int = 0
    lod0: int = 0
    lod1: int = 0
    lod2: int = 0

    @property
    def total(self) -> int:
        return self.visible + self.culled

    @property
    def culling_efficiency(self) -> float:
        """Percentage of chunks currently culled."""
        return (self.culled / self.total) * 100.0 if self.total else 0.0


class VisibilityClassifier:
    """Per-tick LOD bucketing. Memoryless: every tick recomputes every chunk."""

    def __init__(self, params: LODParams | None = None) -> None:
        self.params = params or LODParams()
        self.params.validate()

    def classify(
        self,
        chunks: Iterable[ChunkRecord],
        camera_pos: np.ndarray | None,
        is_visible: VisibilityTest | None,
    ) -> bool:
        """Update `visible`/`lod`/`distance` on each chunk.

        Returns False (and leaves every chunk untouched) when there is no camera or no
        visibility test to consult.
        """
        if camera_pos is None or is_visible is None:
            return False
        cam = np.asarray(camera_pos, dtype=np.float64).reshape(3)
        for ch in chunks:
            if not is_visible(ch.bounds):
                ch.visible = False
                ch.lod = LODBucket.CULLED
                continue
            ch.visible = True
            ch.distance = float(np.linalg.norm(cam - ch.centroid))
            ch.lod = bucket_for_distance(ch.distance, self.params)
        return True

    @staticmethod
    def summarize(chunks: Iterable[ChunkRecord]) -> ClassificationSummary:
        s = ClassificationSummary()
        for ch in chunks:
            if not ch.visible or ch.lod == LODBucket.CULLED:
                s.culled += 1
                continue
            s.visible += 1
            if ch.lod == LODBucket.LOD0:
                s.lod0 += 1
            elif ch.lod == LODBucket.LOD1:
                s.lod1 += 1
            else:
                s.lod2 += 1
        return s
