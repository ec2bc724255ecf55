from __future__ import annotations

import numpy as np

from grassfield.util.math import exp_smooth, look_at


def _clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def _wrap_pi(angle: float) -> float:
    """Wrap angle to [-pi, pi]."""
    a = float(angle)
    a = (a + float(np.pi)) % (2.0 * float(np.pi)) - float(np.pi)
    return a


class CameraWalk:
    """Ground-following camera for walking through the field.

    - Moves in the XZ plane based on yaw and forward/back input.
    - Eye height follows the terrain with smoothing.
    - +Z is "forward" when yaw == 0.
    """

    def __init__(self, *, speed: float, turn_rate: float, eye_height: float, smooth_k: float, climb_rate: float = 4.0) -> None:
        self.speed = float(speed)
        self.turn_rate = float(turn_rate)
        self.eye_height = float(eye_height)
        self.smooth_k = float(smooth_k)
        self.climb_rate = float(climb_rate)

        self.x = 0.0
        self.z = 0.0
        self.y = float(eye_height)
        self.yaw = 0.0
        self.pitch = -0.15  # radians, slightly looking down

    def _forward(self) -> np.ndarray:
        # yaw==0 -> +Z
        return np.array([float(np.sin(self.yaw)), 0.0, float(np.cos(self.yaw))], dtype=np.float32)

    def update(self, dt: float, height_fn, *, forward: float, turn: float, lift: float = 0.0) -> None:
        """Update camera.

        Args:
            forward: -1..1 (back..forward)
            turn: -1..1 (left..right)
            lift: -1..1 changes eye height
        """
        dt = float(dt)
        forward = _clamp(float(forward), -1.0, 1.0)
        turn = _clamp(float(turn), -1.0, 1.0)

        # turn is negated to match intuitive screen-space left/right.
        self.yaw = _wrap_pi(self.yaw - turn * self.turn_rate * dt)
        if forward != 0.0:
            fwd = self._forward()
            self.x += float(fwd[0]) * forward * self.speed * dt
            self.z += float(fwd[2]) * forward * self.speed * dt

        self.eye_height = max(0.3, self.eye_height + float(lift) * self.climb_rate * dt)
        y_target = float(height_fn(self.x, self.z)) + self.eye_height
        self.y = exp_smooth(self.y, y_target, self.smooth_k, dt)

    def eye(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float32)

    def view_matrix(self) -> np.ndarray:
        eye = self.eye()
        fwd = self._forward()
        look = np.array([fwd[0] * np.cos(self.pitch), np.sin(self.pitch), fwd[2] * np.cos(self.pitch)], dtype=np.float32)
        up = np.array([0.0, 1.0, 0.0], dtype=np.float32)
        return look_at(eye, eye + look, up)
