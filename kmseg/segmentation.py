from PIL import Image
import numpy as np

from kmseg.cluster import assign_labels
from kmseg.errors import InvalidArgument


def quantize_colors(colors):
    """
    Map [0, 1] channel values to 0-255 integers, rounding halves up.

    Args:
        colors (array-like): Any array of channel values in [0, 1].

    Returns:
        np.ndarray: uint8 array of the same shape.
    """
    scaled = np.floor(np.asarray(colors, dtype=np.float64) * 255.0 + 0.5)
    return np.clip(scaled, 0, 255).astype(np.uint8)


def segment(pixels, centroids):
    """
    Recolor every pixel with the color of its nearest centroid.

    Args:
        pixels (np.ndarray): HxWx3 image data, channels in [0, 1]
        centroids (np.ndarray): Kx3 centroid colors, channels in [0, 1]

    Returns:
        np.ndarray: HxWx4 uint8 RGBA array, fully opaque, same height/width as input

    Raises:
        InvalidArgument: If centroids is empty or pixels is not HxWx3.
    """
    centroids = np.asarray(centroids, dtype=np.float64).reshape((-1, 3))
    if centroids.shape[0] == 0:
        raise InvalidArgument("Cannot segment with an empty centroid set.")

    pixels = np.asarray(pixels, dtype=np.float64)
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise InvalidArgument(f"Expected an HxWx3 pixel buffer, got shape {pixels.shape}.")
    h, w, _ = pixels.shape

    # Same nearest-centroid rule (and tie break) as the clustering assignment step
    nearest = assign_labels(pixels.reshape((-1, 3)), centroids)
    palette = quantize_colors(centroids)

    out = np.empty((h * w, 4), dtype=np.uint8)
    out[:, :3] = palette[nearest]
    out[:, 3] = 255
    return out.reshape((h, w, 4))


def segmented_image(pixels, centroids) -> Image.Image:
    # HxWx4 uint8 is read as RGBA
    return Image.fromarray(segment(pixels, centroids))
