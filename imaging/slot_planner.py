from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Tuple

from imaging.errors import PlanningOverflowError
from imaging.geometry import center_offset, stack_gap
from imaging.layout_spec import LayoutSpec


@dataclass(frozen=True)
class SlotRect:
    top: int
    left: int
    width: int
    height: int

    @property
    def bottom(self) -> int:
        return self.top + self.height

    @property
    def right(self) -> int:
        return self.left + self.width

    def overlaps(self, other: "SlotRect") -> bool:
        return not (
                self.right <= other.left
                or other.right <= self.left
                or self.bottom <= other.top
                or other.bottom <= self.top
        )


@dataclass(frozen=True)
class CompositionPlan:
    canvas_size: Tuple[int, int]
    slots: Tuple[SlotRect, ...]
    gap: int = 0


def _check_plan(plan: CompositionPlan) -> None:
    canvas_w, canvas_h = plan.canvas_size
    for slot in plan.slots:
        if slot.left < 0 or slot.top < 0 or slot.right > canvas_w or slot.bottom > canvas_h:
            raise PlanningOverflowError(
                f"Slot {slot} exceeds canvas {canvas_w}x{canvas_h}",
                details={"slot": asdict(slot), "canvas": [canvas_w, canvas_h]},
            )

    for i, first in enumerate(plan.slots):
        for second in plan.slots[i + 1:]:
            if first.overlaps(second):
                raise PlanningOverflowError(f"Slots {first} and {second} overlap")


def _plan_single(layout: LayoutSpec) -> CompositionPlan:
    canvas_w, canvas_h = layout.canvas_size
    slot_w, slot_h = layout.slot_size

    if slot_w > canvas_w - 2 * layout.margin or slot_h > canvas_h - 2 * layout.margin:
        raise PlanningOverflowError(
            f"Slot {slot_w}x{slot_h} does not fit inside a {layout.margin}px margin"
        )

    slot = SlotRect(
        top=center_offset(canvas_h, slot_h),
        left=center_offset(canvas_w, slot_w),
        width=slot_w,
        height=slot_h,
    )
    return CompositionPlan(canvas_size=layout.canvas_size, slots=(slot,))


def _plan_stacked(layout: LayoutSpec) -> CompositionPlan:
    canvas_w, canvas_h = layout.canvas_size
    slot_w, slot_h = layout.slot_size

    gap = stack_gap(canvas_h, slot_h, layout.slot_count)
    left = center_offset(canvas_w, slot_w)

    slots = tuple(
        SlotRect(
            top=gap * i + slot_h * (i - 1),
            left=left,
            width=slot_w,
            height=slot_h,
        )
        for i in range(1, layout.slot_count + 1)
    )
    return CompositionPlan(canvas_size=layout.canvas_size, slots=slots, gap=gap)


def plan_slots(layout: LayoutSpec) -> CompositionPlan:
    """Compute the slot rectangles of `layout` on its canvas.

    Raises PlanningOverflowError if any rectangle leaves the canvas or two
    stacked rectangles overlap. That only happens with a broken LayoutSpec.
    """
    if layout.slot_count < 1:
        raise PlanningOverflowError(f"Layout {layout.name} has no slots")

    if layout.stacked:
        plan = _plan_stacked(layout)
    else:
        plan = _plan_single(layout)

    _check_plan(plan)
    return plan
