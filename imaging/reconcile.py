from __future__ import annotations

import logging
from typing import Tuple

from PIL import Image

from imaging.errors import ReconciliationError
from imaging.geometry import (
    contain_size,
    cover_box,
    pad_dimensions,
    ratio_of,
    ratios_match,
)
from imaging.layout_spec import FitPolicy, LayoutSpec

logger = logging.getLogger(__name__)


def _check_size(img: Image.Image) -> None:
    if img.width <= 0 or img.height <= 0:
        raise ReconciliationError(
            "Invalid image dimensions",
            details={"size": list(img.size)},
        )


def pad_to_ratio(
        img: Image.Image,
        ratio: Tuple[int, int],
        background_color: Tuple[int, int, int],
) -> Image.Image:
    """Extend `img` with background borders until it has `ratio`. Never crops."""
    _check_size(img)
    num, den = ratio
    if ratios_match(ratio_of(img.size), num / den):
        return img

    new_w, new_h, pad_x, pad_y = pad_dimensions(img.width, img.height, ratio)
    padded = Image.new("RGB", (new_w, new_h), background_color)
    padded.paste(img, (pad_x, pad_y))

    logger.debug(
        "Padded %sx%s -> %sx%s (left=%s, top=%s)",
        img.width, img.height, new_w, new_h, pad_x, pad_y,
    )
    return padded


def cover_crop(img: Image.Image, ratio: Tuple[int, int]) -> Image.Image:
    """Cut the centered region of `img` that has `ratio`. Never pads."""
    _check_size(img)
    box = cover_box(img.width, img.height, ratio)
    if box == (0, 0, img.width, img.height):
        return img
    return img.crop(box)


def fit_exact(
        img: Image.Image,
        target_size: Tuple[int, int],
        background_color: Tuple[int, int, int],
) -> Image.Image:
    """Resize `img` to fit within `target_size` and return exactly that size.

    Any leftover from differing aspect ratios (including one-pixel rounding
    drift) is letterboxed/pillarboxed with `background_color`.
    """
    _check_size(img)
    if img.size == tuple(target_size):
        return img

    target_w, target_h = target_size
    new_w, new_h = contain_size(img.size, target_size)

    resized = img.resize((new_w, new_h), resample=Image.Resampling.LANCZOS)
    if resized.size == (target_w, target_h):
        return resized

    canvas = Image.new("RGB", (target_w, target_h), background_color)
    x = (target_w - new_w) // 2
    y = (target_h - new_h) // 2
    canvas.paste(resized, (x, y))
    return canvas


def cover_fit(img: Image.Image, target_size: Tuple[int, int]) -> Image.Image:
    """Scale to fill `target_size` completely, cutting the centered overflow."""
    cropped = cover_crop(img, target_size)
    if cropped.size == tuple(target_size):
        return cropped
    return cropped.resize(tuple(target_size), resample=Image.Resampling.LANCZOS)


def reconcile(
        img: Image.Image,
        layout: LayoutSpec,
        background_color: Tuple[int, int, int],
) -> Image.Image:
    """Turn a normalized image into one slot's exact pixel size."""
    if layout.fit == FitPolicy.PAD:
        padded = pad_to_ratio(img, layout.ratio, background_color)
        result = fit_exact(padded, layout.slot_size, background_color)
    elif layout.fit == FitPolicy.CROP:
        result = cover_fit(img, layout.slot_size)
    else:
        raise ReconciliationError(f"Unsupported fit policy: {layout.fit}")

    if result.size != tuple(layout.slot_size):
        raise ReconciliationError(
            f"Reconciled image must be exactly {layout.slot_size[0]}x{layout.slot_size[1]}",
            details={"size": list(result.size)},
        )
    return result
