from __future__ import annotations

import threading

import numpy as np

from grassfield.world.animation import AnimationFeed, AnimationFrame, InteractionParams, WindParams
from grassfield.world.chunk import ChunkRecord
from grassfield.world.chunk_builder import ChunkBuilder, GenerationParams, GenerationStats
from grassfield.world.visibility import ClassificationSummary, LODParams, VisibilityClassifier, VisibilityTest


class GrassField:
    """Owns the current chunk set and exposes the two entry points: generate and classify.

    Generation builds a complete new set and swaps it in at the end, so readers only
    ever see the previous set or the new one. Regeneration requests are serialized on
    a lock.
    """

    def __init__(
        self,
        terrain=None,
        params: GenerationParams | None = None,
        *,
        lod: LODParams | None = None,
        wind: WindParams | None = None,
        interaction: InteractionParams | None = None,
        debug: bool = False,
    ) -> None:
        self.terrain = terrain
        self.params = params or GenerationParams()
        self.classifier = VisibilityClassifier(lod)
        self.animation = AnimationFeed(wind, interaction)
        self.debug = bool(debug)

        self._lock = threading.Lock()
        self._chunks: tuple[ChunkRecord, ...] = ()
        self.stats: GenerationStats | None = None
        self.generation = 0

    @property
    def chunks(self) -> tuple[ChunkRecord, ...]:
        return self._chunks

    def generate(self, params: GenerationParams | None = None, terrain=None) -> GenerationStats:
        """Rebuild every chunk. Raises ConfigurationError / MissingCollaboratorError.

        A new `terrain` is bound only once its chunks are built.
        """
        with self._lock:
            p = params or self.params
            t = terrain if terrain is not None else self.terrain
            builder = ChunkBuilder(p, t)
            if self.debug:
                nx, nz = builder.grid_shape()
                print(f"[grassfield] generating {nx}x{nz} chunks ({nx * nz} total) seed={p.seed}")
            records, stats = builder.build_all()

            self.params = p
            self.terrain = t
            self._chunks = tuple(records)
            self.stats = stats
            self.generation += 1

            if self.debug:
                print(
                    f"[grassfield] done in {stats.elapsed_s:.2f}s: {stats.total_blades} blades | "
                    f"{stats.total_chunks} chunks | {stats.skipped_chunks} empty | {stats.truncated_chunks} truncated"
                )
                if stats.empty_type_list:
                    print("[grassfield] no blade types configured; field is empty")
            return stats

    def classify(self, camera_pos: np.ndarray | None, is_visible: VisibilityTest | None) -> bool:
        """One classification tick over the current chunk set."""
        return self.classifier.classify(self._chunks, camera_pos, is_visible)

    def update_animation(self, time_s: float, interaction_pos=None) -> AnimationFrame:
        return self.animation.update(time_s, interaction_pos)

    def summary(self) -> ClassificationSummary:
        return self.classifier.summarize(self._chunks)
