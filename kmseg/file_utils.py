import re
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np
import typer
from PIL import Image, PngImagePlugin

from kmseg.samples import pixels_from_image

DEFAULT_MAX_WIDTH = 600  # images wider than this are downsampled on load
PNG_METADATA_PREFIX = "kmseg:"


def downsample_to_width(image: Image.Image, max_width: int = DEFAULT_MAX_WIDTH) -> Image.Image:
    """Shrink an image (keeping aspect ratio) so it is at most max_width wide. Never enlarges."""
    scale = min(1.0, max_width / image.width)
    if scale >= 1.0:
        return image
    new_size = (max(1, round(image.width * scale)), max(1, round(image.height * scale)))
    return image.resize(new_size, Image.Resampling.LANCZOS)


def load_image(input_path: Union[str, Path], max_width: int = DEFAULT_MAX_WIDTH) -> np.ndarray:
    """
    Open an image file and turn it into a normalized pixel buffer.

    Args:
        input_path (str or Path): Path to the input image file.
        max_width (int): Width bound; larger images are downsampled first.

    Returns:
        np.ndarray: HxWx3 float32 array, channels in [0, 1].

    Raises:
        FileNotFoundError: If the file does not exist.
        PIL.UnidentifiedImageError: If the file is not a readable image.
    """
    with Image.open(input_path) as image:
        rgb = image.convert("RGB")
    return pixels_from_image(downsample_to_width(rgb, max_width))


def load_image_future(
    input_path: Union[str, Path],
    max_width: int = DEFAULT_MAX_WIDTH,
    executor: Optional[Executor] = None,
) -> Future:
    """
    Start loading an image in the background.

    The returned future resolves to the same buffer load_image() returns, or
    raises its exception from result(). When no executor is given a
    single-use one is created and shut down once the load is submitted.
    """
    if executor is not None:
        return executor.submit(load_image, input_path, max_width)
    with ThreadPoolExecutor(max_workers=1) as own_executor:
        # shutdown(wait=True) on exit; the future is already resolved afterwards
        return own_executor.submit(load_image, input_path, max_width)


def _clean_metadata_key(key: str) -> str:
    key_clean = re.sub(r'\s+', '_', key)
    key_clean = re.sub(r'[^a-zA-Z0-9_.-]', '', key_clean)
    if not re.match(r'^[a-zA-Z_]', key_clean):  # Must start with letter or underscore
        key_clean = "kmseg_" + key_clean
    # PNG tEXt keywords are limited to 79 bytes, leave room for the prefix
    return key_clean[:70]


def save_png(
    image_to_save: Image.Image,
    output_path: Union[str, Path],
    command_line_invocation: Optional[str] = None,
    additional_metadata: Optional[Dict[str, str]] = None
):
    """
    Saves a PIL Image object as a PNG file, embedding kmseg metadata as tEXt chunks.
    """
    output_path = Path(output_path)
    if not output_path.parent.exists():
        output_path.parent.mkdir(parents=True, exist_ok=True)

    png_info = PngImagePlugin.PngInfo()
    png_info.add_text("Software", "kmseg")
    if command_line_invocation:
        png_info.add_text(f"{PNG_METADATA_PREFIX}command_line", command_line_invocation)

    if additional_metadata:
        for key, value in additional_metadata.items():
            png_info.add_text(f"{PNG_METADATA_PREFIX}{_clean_metadata_key(key)}", str(value))

    try:
        image_to_save.save(output_path, "PNG", pnginfo=png_info)
    except OSError as e:
        typer.secho(f"Error saving PNG to {output_path.resolve()}: {e}", fg=typer.colors.RED)
        raise


def read_png_metadata(path: Union[str, Path]) -> Dict[str, str]:
    """Return the kmseg-prefixed tEXt entries of a PNG, prefix stripped."""
    with Image.open(path) as img:
        return {
            key[len(PNG_METADATA_PREFIX):]: value
            for key, value in img.info.items()
            if isinstance(key, str) and key.startswith(PNG_METADATA_PREFIX)
        }
