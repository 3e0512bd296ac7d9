"""Pure layout math: ratios, padding, cover crops and stacking gaps.

Everything here works on plain integers so the pixel pipeline and the slot
planner agree on the exact same numbers.
"""
from __future__ import annotations

import math
from typing import TYPE_CHECKING, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from imaging.layout_spec import LayoutSpec

RATIO_TOLERANCE = 0.01


def round_half_up(value: float) -> int:
    # Built-in round() is banker's rounding; print offsets round .5 upwards.
    return int(math.floor(value + 0.5))


def target_ratio(layout: "LayoutSpec") -> Tuple[int, int]:
    return layout.ratio


def ratio_of(size: Tuple[int, int]) -> float:
    w, h = size
    if w <= 0 or h <= 0:
        raise ValueError(f"Invalid dimensions {w}x{h}")
    return w / h


def ratios_match(r1: float, r2: float, tolerance: float = RATIO_TOLERANCE) -> bool:
    return abs(r1 - r2) <= tolerance


def pad_dimensions(w: int, h: int, ratio: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """Return (new_w, new_h, pad_x, pad_y) reaching `ratio` by growing one side.

    `pad_x`/`pad_y` are the leading (left/top) pads. The trailing side gets
    whatever is left over, so an odd remainder lands right/bottom.
    """
    if w <= 0 or h <= 0:
        raise ValueError(f"Invalid dimensions {w}x{h}")
    num, den = ratio
    current = w / h
    target = num / den

    new_w, new_h = w, h
    if current > target:
        new_h = max(h, round_half_up(w * den / num))
    else:
        new_w = max(w, round_half_up(h * num / den))

    pad_x = (new_w - w) // 2
    pad_y = (new_h - h) // 2
    return new_w, new_h, pad_x, pad_y


def cover_box(w: int, h: int, ratio: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """Centered (left, top, right, bottom) crop of a w x h image with `ratio`."""
    if w <= 0 or h <= 0:
        raise ValueError(f"Invalid dimensions {w}x{h}")
    num, den = ratio
    if w / h > num / den:
        crop_w = min(w, max(1, round_half_up(h * num / den)))
        left = (w - crop_w) // 2
        return left, 0, left + crop_w, h

    crop_h = min(h, max(1, round_half_up(w * den / num)))
    top = (h - crop_h) // 2
    return 0, top, w, top + crop_h


def contain_size(size: Tuple[int, int], box: Tuple[int, int]) -> Tuple[int, int]:
    """Largest size with the aspect of `size` that fits inside `box`."""
    src_w, src_h = size
    box_w, box_h = box
    scale = min(box_w / src_w, box_h / src_h)
    new_w = min(box_w, max(1, round_half_up(src_w * scale)))
    new_h = min(box_h, max(1, round_half_up(src_h * scale)))
    return new_w, new_h


def center_offset(outer: int, inner: int) -> int:
    return round_half_up((outer - inner) / 2)


def stack_gap(canvas_height: int, slot_height: int, slot_count: int) -> int:
    """Vertical gap used above, between and below stacked slots.

    Never negative. Clamped so the last slot never overflows the canvas.
    """
    free = canvas_height - slot_height * slot_count
    gap = max(1, round_half_up(free / (slot_count + 1)))
    if gap * (slot_count + 1) + slot_height * slot_count > canvas_height:
        gap = max(0, free // (slot_count + 1))
    return gap
