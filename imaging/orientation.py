from __future__ import annotations

import logging
from typing import Tuple

from PIL import Image, ImageOps

from imaging.layout_spec import Orientation

logger = logging.getLogger(__name__)


def apply_exif_orientation(img: Image.Image) -> Image.Image:
    """Bake the camera's EXIF orientation tag into the pixels."""
    return ImageOps.exif_transpose(img) or img


def rotate_quarter(img: Image.Image) -> Image.Image:
    """Rotate 90 degrees clockwise. Lossless, four turns give back the input."""
    return img.transpose(Image.Transpose.ROTATE_270)


def needs_rotation(size: Tuple[int, int], orientation: Orientation) -> bool:
    w, h = size
    ratio = w / h
    if orientation == Orientation.PORTRAIT:
        return ratio > 1.0
    if orientation == Orientation.LANDSCAPE:
        return ratio < 1.0
    return False


def normalize_orientation(
        img: Image.Image,
        orientation: Orientation,
) -> Tuple[Image.Image, bool]:
    """Turn `img` to the layout's orientation class.

    Returns the (possibly new) image and whether it was rotated. Square
    images are never rotated.
    """
    if not needs_rotation(img.size, orientation):
        return img, False

    logger.debug("Rotating %sx%s image to %s", img.width, img.height, orientation.value)
    return rotate_quarter(img), True
