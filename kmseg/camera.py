import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

DEFAULT_ROT_X = math.radians(25)
DEFAULT_ROT_Y = math.radians(-30)
DEFAULT_ZOOM = 1.2

MIN_ZOOM = 0.01
MAX_ZOOM = 100.0

WHEEL_SENSITIVITY = 0.001  # zoom fraction per wheel delta unit


def clamp_zoom(zoom: float) -> float:
    return min(MAX_ZOOM, max(MIN_ZOOM, zoom))


@dataclass
class CameraState:
    """
    Orthographic view of the color cube: rotation about the horizontal (X) and
    vertical (Y) axes in radians, a zoom factor and a screen-space pan offset.
    """
    rot_x: float = DEFAULT_ROT_X
    rot_y: float = DEFAULT_ROT_Y
    zoom: float = DEFAULT_ZOOM
    pan_x: float = 0.0
    pan_y: float = 0.0

    def rotate(self, d_rot_x: float, d_rot_y: float) -> None:
        self.rot_x += d_rot_x
        self.rot_y += d_rot_y

    def scale_zoom(self, factor: float) -> None:
        # zoom stays in [MIN_ZOOM, MAX_ZOOM], also for factors <= 0
        self.zoom = clamp_zoom(self.zoom * factor)

    def pan_by(self, dx: float, dy: float) -> None:
        self.pan_x += dx
        self.pan_y += dy

    def reset(self) -> None:
        self.rot_x = DEFAULT_ROT_X
        self.rot_y = DEFAULT_ROT_Y
        self.zoom = DEFAULT_ZOOM
        self.pan_x = 0.0
        self.pan_y = 0.0


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float

    @property
    def center_x(self) -> float:
        return self.width / 2

    @property
    def center_y(self) -> float:
        return self.height / 2

    @property
    def half_extent(self) -> float:
        return min(self.width, self.height) / 2


def rotation_matrix_x(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[1.0, 0.0, 0.0],
                     [0.0, c, -s],
                     [0.0, s, c]])


def rotation_matrix_y(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, 0.0, s],
                     [0.0, 1.0, 0.0],
                     [-s, 0.0, c]])


def view_matrix(camera: CameraState) -> np.ndarray:
    """Combined rotation: X first, then Y (Ry @ Rx)."""
    return rotation_matrix_y(camera.rot_y) @ rotation_matrix_x(camera.rot_x)


def project(point, camera: CameraState, viewport: Viewport) -> Tuple[float, float]:
    """
    Project a single 3D point to screen coordinates.

    Screen Y grows downward, so the rotated y component is subtracted.
    """
    rotated = view_matrix(camera) @ np.asarray(point, dtype=np.float64)
    scale = viewport.half_extent * camera.zoom
    screen_x = viewport.center_x + camera.pan_x + rotated[0] * scale
    screen_y = viewport.center_y + camera.pan_y - rotated[1] * scale
    return float(screen_x), float(screen_y)


def project_points(points, camera: CameraState, viewport: Viewport) -> np.ndarray:
    """Vectorized project() for an Nx3 array; returns Nx2 screen coordinates."""
    points = np.asarray(points, dtype=np.float64).reshape((-1, 3))
    rotated = points @ view_matrix(camera).T
    scale = viewport.half_extent * camera.zoom
    screen = np.empty((points.shape[0], 2), dtype=np.float64)
    screen[:, 0] = viewport.center_x + camera.pan_x + rotated[:, 0] * scale
    screen[:, 1] = viewport.center_y + camera.pan_y - rotated[:, 1] * scale
    return screen


def apply_wheel_event(camera: CameraState, delta_y: float, sensitivity: float = WHEEL_SENSITIVITY) -> CameraState:
    """Scroll up (negative delta_y) zooms in, scroll down zooms out."""
    camera.scale_zoom(1 + (-delta_y) * sensitivity)
    return camera
