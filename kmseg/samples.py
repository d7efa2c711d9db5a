from PIL import Image
import numpy as np

from kmseg.errors import InvalidArgument


def pixels_from_image(image: Image.Image) -> np.ndarray:
    """
    Convert a PIL image into a normalized pixel buffer.

    Args:
        image (PIL.Image.Image): Source image, any mode. Alpha is dropped.

    Returns:
        np.ndarray: HxWx3 float32 array with channels in [0, 1].
    """
    if image.mode != "RGB":
        image = image.convert("RGB")
    return np.asarray(image, dtype=np.float32) / 255.0


def extract_color_points(pixels):
    """
    Flatten an HxWx3 pixel buffer into an (H*W)x3 array of color points.

    Points come out in row-major order (row 0 left to right, then row 1, ...),
    so point i corresponds to pixel (i // W, i % W). The returned array is
    read-only.
    """
    pixels = np.asarray(pixels, dtype=np.float64)
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise InvalidArgument(f"Expected an HxWx3 pixel buffer, got shape {pixels.shape}.")

    points = pixels.reshape((-1, 3)).copy()
    points.setflags(write=False)
    return points
