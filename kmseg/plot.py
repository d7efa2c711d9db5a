from PIL import Image, ImageDraw
import numpy as np
from typing import Optional, Tuple

from kmseg.camera import CameraState, Viewport, project_points
from kmseg.segmentation import quantize_colors

POINT_SIZE = 2            # side of the square drawn per color point, px
CENTROID_RADIUS = 10
CENTROID_STROKE_WIDTH = 3
BACKGROUND = (0, 0, 0)


def luminance(color) -> float:
    """Rec. 601 luma of a [0, 1] RGB color."""
    return 0.299 * color[0] + 0.587 * color[1] + 0.114 * color[2]


def contrast_stroke(color) -> Tuple[int, int, int]:
    return (0, 0, 0) if luminance(color) > 0.5 else (255, 255, 255)


def _paint_points(canvas: np.ndarray, screen: np.ndarray, colors: np.ndarray) -> None:
    h, w, _ = canvas.shape
    xs = np.floor(screen[:, 0]).astype(np.int64)
    ys = np.floor(screen[:, 1]).astype(np.int64)
    for oy in range(POINT_SIZE):
        for ox in range(POINT_SIZE):
            px, py = xs + ox, ys + oy
            inside = (px >= 0) & (px < w) & (py >= 0) & (py < h)
            canvas[py[inside], px[inside]] = colors[inside]


def render_point_cloud(
    points,
    camera: CameraState,
    size: Tuple[int, int] = (600, 600),
    centroids: Optional[np.ndarray] = None,
) -> Image.Image:
    """
    Paint the color cloud as seen through the camera.

    Every point is a small square in its own color; centroids (if given) are
    drawn on top as larger discs with a black or white outline, whichever
    contrasts with the centroid color.

    Args:
        points (np.ndarray): Nx3 color points in [0, 1]. May be empty.
        camera (CameraState): Current view.
        size (tuple): Canvas (width, height) in pixels.
        centroids (np.ndarray, optional): Kx3 centroid colors.

    Returns:
        PIL.Image.Image: RGB image of the plot.
    """
    width, height = size
    viewport = Viewport(width, height)
    canvas = np.zeros((height, width, 3), dtype=np.uint8)
    canvas[:, :] = BACKGROUND

    points = np.asarray(points, dtype=np.float64).reshape((-1, 3))
    if points.shape[0] == 0:
        return Image.fromarray(canvas)

    _paint_points(canvas, project_points(points, camera, viewport), quantize_colors(points))
    image = Image.fromarray(canvas)

    if centroids is not None and len(centroids):
        centroids = np.asarray(centroids, dtype=np.float64).reshape((-1, 3))
        draw = ImageDraw.Draw(image)
        fills = quantize_colors(centroids)
        for centroid, fill, (sx, sy) in zip(centroids, fills, project_points(centroids, camera, viewport)):
            r = CENTROID_RADIUS
            draw.ellipse(
                [sx - r, sy - r, sx + r, sy + r],
                fill=tuple(int(c) for c in fill),
                outline=contrast_stroke(centroid),
                width=CENTROID_STROKE_WIDTH,
            )
    return image
