from __future__ import annotations
import numpy as np

def normalize(v: np.ndarray) -> np.ndarray:
    n = np.linalg.norm(v)
    if n == 0:
        return v
    return v / n

def clamp01(x: float) -> float:
    return 0.0 if x < 0.0 else 1.0 if x > 1.0 else float(x)

def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t

def rot_x(deg: float) -> np.ndarray:
    a = np.deg2rad(deg)
    c, s = float(np.cos(a)), float(np.sin(a))
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]], dtype=np.float64)

def rot_y(deg: float) -> np.ndarray:
    a = np.deg2rad(deg)
    c, s = float(np.cos(a)), float(np.sin(a))
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]], dtype=np.float64)

def rot_z(deg: float) -> np.ndarray:
    a = np.deg2rad(deg)
    c, s = float(np.cos(a)), float(np.sin(a))
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)

def from_to_rotation(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Return the 3x3 matrix rotating direction a onto direction b (shortest arc)."""
    a = normalize(np.asarray(a, dtype=np.float64))
    b = normalize(np.asarray(b, dtype=np.float64))
    v = np.cross(a, b)
    c = float(np.dot(a, b))
    if c > 1.0 - 1e-9:
        return np.eye(3, dtype=np.float64)
    if c < -1.0 + 1e-9:
        # Opposite vectors: rotate 180 degrees around any axis perpendicular to a.
        axis = np.cross(a, np.array([1.0, 0.0, 0.0]))
        if np.linalg.norm(axis) < 1e-6:
            axis = np.cross(a, np.array([0.0, 0.0, 1.0]))
        axis = normalize(axis)
        return 2.0 * np.outer(axis, axis) - np.eye(3)
    vx = np.array([[0.0, -v[2], v[1]], [v[2], 0.0, -v[0]], [-v[1], v[0], 0.0]], dtype=np.float64)
    return np.eye(3) + vx + (vx @ vx) * (1.0 / (1.0 + c))

def look_at(eye: np.ndarray, target: np.ndarray, up: np.ndarray) -> np.ndarray:
    """Return a column-major view matrix suitable for OpenGL."""
    f = normalize(target - eye)
    s = normalize(np.cross(f, up))
    u = np.cross(s, f)

    m = np.eye(4, dtype=np.float32)
    m[0, 0] = s[0]; m[1, 0] = s[1]; m[2, 0] = s[2]
    m[0, 1] = u[0]; m[1, 1] = u[1]; m[2, 1] = u[2]
    m[0, 2] = -f[0]; m[1, 2] = -f[1]; m[2, 2] = -f[2]
    m[3, 0] = -np.dot(s, eye)
    m[3, 1] = -np.dot(u, eye)
    m[3, 2] = np.dot(f, eye)
    return m

def perspective(fov_deg: float, aspect: float, near: float, far: float) -> np.ndarray:
    """Return a column-major projection matrix suitable for OpenGL."""
    f = 1.0 / np.tan(np.deg2rad(fov_deg) / 2.0)
    m = np.zeros((4, 4), dtype=np.float32)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = -1.0
    m[3, 2] = (2.0 * far * near) / (near - far)
    return m

def exp_smooth(current: float, target: float, k: float, dt: float) -> float:
    alpha = 1.0 - float(np.exp(-k * dt))
    return current + (target - current) * alpha
