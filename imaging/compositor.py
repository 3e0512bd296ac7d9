from __future__ import annotations

from typing import Tuple

from PIL import Image

from imaging.errors import ReconciliationError
from imaging.slot_planner import CompositionPlan


def compose(
        *,
        plan: CompositionPlan,
        image: Image.Image,
        background_color: Tuple[int, int, int],
) -> Image.Image:
    """Paste `image` into every slot of `plan` on a fresh canvas.

    No scaling happens here; the image must already have the slot size.
    """
    canvas = Image.new("RGB", plan.canvas_size, background_color)

    for slot in plan.slots:
        if image.size != (slot.width, slot.height):
            raise ReconciliationError(
                f"Image must be exactly {slot.width}x{slot.height} for slot at "
                f"({slot.left}, {slot.top})",
                details={"size": list(image.size)},
            )
        canvas.paste(image, (slot.left, slot.top))

    return canvas
