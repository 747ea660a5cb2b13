"""Pointer-gesture state machine for moving blocks and panning the view."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from src.logger import logger

from .render_pipeline import hit_test
from .template_model import TemplateModel, ViewState
from .transform import to_template

Point = Tuple[float, float]


class DragMode(str, Enum):
    IDLE = "idle"
    DRAGGING_FIELD = "dragging_field"
    PANNING = "panning"


@dataclass
class _Gesture:
    mode: DragMode
    start: Point
    previous: Point
    field_id: Optional[str] = None
    original_origin: Point = (0.0, 0.0)
    moved: bool = False


class DragInteractionController:
    """
    Turns screen-space pointer events into block moves or view pans.

    Pointer-down on a block selects it and arms a drag in the same gesture;
    pointer-down on empty canvas clears the selection and starts panning.
    Only one gesture is tracked at a time.
    """

    def __init__(
        self,
        template: TemplateModel,
        view: ViewState,
        on_block_moved: Optional[Callable[[str], None]] = None,
        hit_margin: Optional[float] = None,
    ) -> None:
        self.template = template
        self.view = view
        self.on_block_moved = on_block_moved
        self.hit_margin = hit_margin
        self._gesture: Optional[_Gesture] = None

    @property
    def mode(self) -> DragMode:
        return self._gesture.mode if self._gesture else DragMode.IDLE

    @property
    def dragged_field_id(self) -> Optional[str]:
        return self._gesture.field_id if self._gesture else None

    def pointer_down(self, x: float, y: float) -> DragMode:
        if self._gesture is not None:
            # Single-pointer model: a second press mid-gesture is ignored.
            return self._gesture.mode
        template_point = to_template((x, y), self.view.zoom, self.view.pan)
        field_id = hit_test(self.template, template_point, self.hit_margin)
        if field_id is not None:
            block = self.template.field_blocks[field_id]
            self.view.selected_field_id = field_id
            self._gesture = _Gesture(
                mode=DragMode.DRAGGING_FIELD,
                start=(x, y),
                previous=(x, y),
                field_id=field_id,
                original_origin=block.origin,
            )
        else:
            self.view.selected_field_id = None
            self._gesture = _Gesture(mode=DragMode.PANNING, start=(x, y), previous=(x, y))
        return self._gesture.mode

    def pointer_move(self, x: float, y: float) -> None:
        gesture = self._gesture
        if gesture is None:
            return
        if gesture.mode is DragMode.DRAGGING_FIELD:
            zoom = self.view.zoom
            dx = (x - gesture.start[0]) / zoom
            dy = (y - gesture.start[1]) / zoom
            self.template.set_origin(
                gesture.field_id,
                gesture.original_origin[0] + dx,
                gesture.original_origin[1] + dy,
            )
        else:
            self.view.pan_x += x - gesture.previous[0]
            self.view.pan_y += y - gesture.previous[1]
        gesture.previous = (x, y)
        gesture.moved = gesture.moved or (x, y) != gesture.start

    def pointer_up(self) -> None:
        gesture, self._gesture = self._gesture, None
        if gesture is None:
            return
        if gesture.mode is DragMode.DRAGGING_FIELD and gesture.moved:
            block = self.template.get_block(gesture.field_id)
            if block is not None:
                logger.debug(f"Moved {gesture.field_id} to [{block.origin_x:g},{block.origin_y:g}]")
                if self.on_block_moved:
                    self.on_block_moved(gesture.field_id)

    # Leaving the canvas ends the gesture exactly like releasing the pointer.
    pointer_leave = pointer_up

    def cancel(self) -> None:
        """Drop the current gesture without reporting a move."""
        self._gesture = None
