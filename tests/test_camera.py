# tests/test_camera.py
import math

import numpy as np
import pytest

from kmseg import camera
from kmseg.camera import CameraState, Viewport


def test_defaults_match_initial_view():
    state = CameraState()
    assert state.rot_x == pytest.approx(math.radians(25))
    assert state.rot_y == pytest.approx(math.radians(-30))
    assert state.zoom == pytest.approx(1.2)
    assert (state.pan_x, state.pan_y) == (0.0, 0.0)


@pytest.mark.parametrize("matrix", [camera.rotation_matrix_x, camera.rotation_matrix_y])
@pytest.mark.parametrize("theta", [0.3, -1.2, math.pi / 2, 2.5])
def test_rotation_then_inverse_returns_original(matrix, theta):
    v = np.array([0.2, -0.7, 0.9])
    back = matrix(-theta) @ (matrix(theta) @ v)
    assert np.allclose(back, v, atol=1e-12)


def test_rotation_order_is_x_then_y():
    state = CameraState(rot_x=math.pi / 2, rot_y=math.pi / 2, zoom=1.0)
    viewport = Viewport(200, 200)
    # X first: (0,1,0) -> (0,0,1); then Y: (0,0,1) -> (1,0,0)
    sx, sy = camera.project((0.0, 1.0, 0.0), state, viewport)
    assert sx == pytest.approx(200.0)
    assert sy == pytest.approx(100.0)

    # Applying Y first would give (0,0,1) -> screen centre instead
    swapped = camera.rotation_matrix_x(math.pi / 2) @ camera.rotation_matrix_y(math.pi / 2) @ np.array([0.0, 1.0, 0.0])
    assert not np.allclose(swapped, [1.0, 0.0, 0.0])


def test_projection_scale_pan_and_inverted_y():
    state = CameraState(rot_x=0.0, rot_y=0.0, zoom=2.0, pan_x=5.0, pan_y=-3.0)
    viewport = Viewport(400, 300)  # scale = 150 * 2

    sx, sy = camera.project((0.5, 0.25, 0.9), state, viewport)

    assert sx == pytest.approx(200 + 5 + 0.5 * 300)
    assert sy == pytest.approx(150 - 3 - 0.25 * 300)


def test_project_points_matches_single_projection():
    state = CameraState(rot_x=0.4, rot_y=-1.1, zoom=0.7, pan_x=12.0, pan_y=4.0)
    viewport = Viewport(640, 480)
    points = np.random.RandomState(3).rand(20, 3)

    screen = camera.project_points(points, state, viewport)

    assert screen.shape == (20, 2)
    for point, projected in zip(points, screen):
        assert np.allclose(projected, camera.project(point, state, viewport))


def test_projection_does_not_mutate_camera():
    state = CameraState(rot_x=0.1, rot_y=0.2, zoom=1.5, pan_x=1.0, pan_y=2.0)
    before = CameraState(**vars(state))
    camera.project((0.3, 0.3, 0.3), state, Viewport(100, 100))
    assert state == before


def test_incremental_updates_and_reset():
    state = CameraState()
    state.rotate(0.5, -0.25)
    state.pan_by(10, 20)
    state.scale_zoom(2.0)
    assert state.rot_x == pytest.approx(math.radians(25) + 0.5)
    assert state.rot_y == pytest.approx(math.radians(-30) - 0.25)
    assert (state.pan_x, state.pan_y) == (10, 20)
    assert state.zoom == pytest.approx(2.4)

    state.reset()
    assert state == CameraState()


def test_wheel_scroll_up_zooms_in():
    state = CameraState(zoom=1.0)
    camera.apply_wheel_event(state, -100)
    assert state.zoom == pytest.approx(1.1)
    camera.apply_wheel_event(state, 100)
    assert state.zoom == pytest.approx(1.1 * 0.9)


@pytest.mark.parametrize("delta_y", [1000, 5000, 1e9])
def test_wheel_never_collapses_zoom(delta_y):
    state = CameraState(zoom=1.0)
    for _ in range(50):
        camera.apply_wheel_event(state, delta_y)
    assert state.zoom >= camera.MIN_ZOOM > 0


def test_zoom_is_capped():
    state = CameraState(zoom=1.0)
    for _ in range(100):
        state.scale_zoom(10.0)
    assert state.zoom == camera.MAX_ZOOM
