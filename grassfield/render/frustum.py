from __future__ import annotations

import numpy as np

from grassfield.world.chunk import Bounds


def clip_matrix(view: np.ndarray, proj: np.ndarray) -> np.ndarray:
    """Row-major clip-from-world matrix from our column-major view/projection."""
    return (np.asarray(view, dtype=np.float64) @ np.asarray(proj, dtype=np.float64)).T


class Frustum:
    """Six planes extracted from a clip matrix (Gribb/Hartmann), normals pointing inward."""

    def __init__(self, view: np.ndarray, proj: np.ndarray) -> None:
        m = clip_matrix(view, proj)
        planes = np.array([
            m[3] + m[0],  # left
            m[3] - m[0],  # right
            m[3] + m[1],  # bottom
            m[3] - m[1],  # top
            m[3] + m[2],  # near
            m[3] - m[2],  # far
        ], dtype=np.float64)
        norms = np.linalg.norm(planes[:, :3], axis=1, keepdims=True)
        self.planes = planes / np.maximum(norms, 1e-12)

    def contains_box(self, lo: np.ndarray, hi: np.ndarray) -> bool:
        """Conservative AABB test: False only if the box is fully outside one plane."""
        n = self.planes[:, :3]
        d = self.planes[:, 3]
        # Corner furthest along each plane normal
        p = np.where(n >= 0.0, np.asarray(hi, dtype=np.float64)[None, :], np.asarray(lo, dtype=np.float64)[None, :])
        return bool(np.all(np.sum(n * p, axis=1) + d >= 0.0))


def box_distance(cam_pos: np.ndarray, b: Bounds) -> float:
    """Distance from a point to the closest point of an AABB (0 inside)."""
    c = np.asarray(cam_pos, dtype=np.float64)
    q = np.clip(c, b.lo, b.hi)
    return float(np.linalg.norm(c - q))


def visibility_test(view: np.ndarray, proj: np.ndarray, cam_pos: np.ndarray, max_distance: float):
    """Bounds -> bool: inside the view frustum and within render distance."""
    fr = Frustum(view, proj)
    cam = np.asarray(cam_pos, dtype=np.float64)
    max_d = float(max_distance)

    def _visible(b: Bounds) -> bool:
        return box_distance(cam, b) <= max_d and fr.contains_box(b.lo, b.hi)

    return _visible
