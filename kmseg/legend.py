from PIL import Image, ImageDraw, ImageFont
import numpy as np
import os

from kmseg.plot import contrast_stroke
from kmseg.segmentation import quantize_colors


def _load_font(font_path, font_size):
    if font_path and os.path.isfile(font_path):
        try:
            return ImageFont.truetype(font_path, font_size)
        except OSError:
            pass  # fall through to the default font
    return ImageFont.load_default(size=font_size)


def create_legend_image(centroids, font_path=None, font_size=14, swatch_size=40, padding=10):
    """
    Creates a legend strip with one numbered swatch per centroid.

    Args:
        centroids (array-like): Kx3 centroid colors with channels in [0, 1].
        font_path (str, optional): Path to a TTF font file.
        font_size (int): Font size for the index numbers.
        swatch_size (int): Width/height of each color swatch.
        padding (int): Space around elements and between swatches.

    Returns:
        PIL.Image.Image: The legend image, or None if there are no centroids.
    """
    centroids = np.asarray(centroids, dtype=np.float64).reshape((-1, 3))
    num_colors = len(centroids)
    if num_colors == 0:
        return None

    width = (swatch_size * num_colors) + (padding * (num_colors + 1))
    height = swatch_size + (2 * padding)

    image = Image.new("RGB", (width, height), color=(255, 255, 255))
    draw = ImageDraw.Draw(image)
    font = _load_font(font_path, font_size)

    for idx, (centroid, fill) in enumerate(zip(centroids, quantize_colors(centroids))):
        x0 = padding + idx * (swatch_size + padding)
        y0 = padding
        draw.rectangle(
            [x0, y0, x0 + swatch_size, y0 + swatch_size],
            fill=tuple(int(c) for c in fill),
            outline=(0, 0, 0)
        )

        # Center the index in the swatch; bbox offsets account for glyph bearing
        text = str(idx)
        left, top, right, bottom = font.getbbox(text)
        text_x = x0 + (swatch_size - (right - left)) / 2.0 - left
        text_y = y0 + (swatch_size - (bottom - top)) / 2.0 - top
        draw.text((text_x, text_y), text, fill=contrast_stroke(centroid), font=font)

    return image
