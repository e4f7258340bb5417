"""Geometric transforms: center crop to an aspect ratio and bounded resize."""

from fractions import Fraction
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .exceptions import InvalidGeometryError

# Pillow's bicubic kernel uses a = -0.5, i.e. Catmull-Rom
RESAMPLE_FILTER = Image.Resampling.BICUBIC

CropBox = Tuple[int, int, int, int]


def image_ratio(image: Image.Image) -> Fraction:
    """Exact width/height ratio of an image."""
    if image.width <= 0 or image.height <= 0:
        raise InvalidGeometryError(f"Image has no pixels: {image.width}x{image.height}")
    return Fraction(image.width, image.height)


def crop_box(
    width: int, height: int, current_ratio: Fraction, target_ratio: Fraction
) -> CropBox:
    """
    Compute the centered crop rectangle as ``(x, y, width, height)``.

    A source that is too wide keeps its height and loses columns evenly on
    both sides; one that is too narrow keeps its width and loses rows.

    Raises:
        InvalidGeometryError: If the cropped side would be zero pixels.
    """
    if target_ratio < current_ratio:
        new_width = (height * target_ratio.numerator) // target_ratio.denominator
        if new_width <= 0:
            raise InvalidGeometryError(
                f"Cropping {width}x{height} to {target_ratio} leaves zero width"
            )
        return (width - new_width) // 2, 0, new_width, height

    if target_ratio > current_ratio:
        new_height = (width * target_ratio.denominator) // target_ratio.numerator
        if new_height <= 0:
            raise InvalidGeometryError(
                f"Cropping {width}x{height} to {target_ratio} leaves zero height"
            )
        return 0, (height - new_height) // 2, width, new_height

    return 0, 0, width, height


def crop_to_aspect(
    image: Image.Image, current_ratio: Fraction, target_ratio: Fraction
) -> Image.Image:
    """Center-crop ``image`` so that width/height equals ``target_ratio``."""
    if current_ratio == target_ratio:
        return image

    x, y, new_width, new_height = crop_box(
        image.width, image.height, current_ratio, target_ratio
    )
    return image.crop((x, y, x + new_width, y + new_height))


def resize_dimensions(
    width: int, height: int, max_width: int
) -> Optional[Tuple[int, int]]:
    """
    Target size for a downscale to ``max_width``, or ``None`` if none is needed.

    The height is ``max_width / width * height`` rounded half up, computed in
    integers so no float drift creeps in.
    """
    if width <= max_width:
        return None

    new_height = (2 * max_width * height + width) // (2 * width)
    if new_height <= 0:
        raise InvalidGeometryError(
            f"Resizing {width}x{height} to width {max_width} leaves zero height"
        )
    return max_width, new_height


def bounded_resize(image: Image.Image, max_width: int) -> Image.Image:
    """Downscale to exactly ``max_width`` wide; never upscale."""
    size = resize_dimensions(image.width, image.height, max_width)
    if size is None:
        return image
    if image.mode in ("P", "1"):
        # Pillow silently resizes these modes with NEAREST
        image = image.convert(_smooth_mode(image))
    return image.resize(size, RESAMPLE_FILTER)


def _smooth_mode(image: Image.Image) -> str:
    if image.mode == "1":
        return "L"
    if "transparency" in image.info or "A" in image.getbands():
        return "RGBA"
    return "RGB"


def to_rgba_array(image: Image.Image) -> np.ndarray:
    """Pixels as an ``(height, width, 4)`` uint8 array for preview renderers."""
    return np.asarray(image.convert("RGBA"), dtype=np.uint8)
