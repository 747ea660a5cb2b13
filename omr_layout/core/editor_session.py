"""Layout editor session: one template, its view state and its event hub."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image

from src.defaults.config import CONFIG_DEFAULTS
from src.logger import logger

from . import template_io
from .drag_controller import DragInteractionController, DragMode
from .events import TEMPLATE_CHANGED, EventHub
from .render_pipeline import Command, fit_background, render
from .template_model import BackgroundImage, TemplateModel, ViewState
from .transform import PageFit, fit_to_page


class LayoutEditorSession:
    """
    Every mutation is applied to the model first; callers then call
    `render()` to get the frame for the new state.
    """

    def __init__(
        self,
        template: Optional[TemplateModel] = None,
        events: Optional[EventHub] = None,
        config=None,
    ) -> None:
        self.config = config or CONFIG_DEFAULTS
        self.template = template or TemplateModel()
        self.view = ViewState.from_config(self.config)
        self.events = events or EventHub()
        self.background: Optional[BackgroundImage] = None
        self.template_path: Optional[Path] = None
        self.drag = self._make_drag_controller()

    @classmethod
    def from_file(cls, path: Path, events: Optional[EventHub] = None, config=None) -> "LayoutEditorSession":
        session = cls(events=events, config=config)
        session.load(path)
        return session

    def load(self, path: Path) -> None:
        """Replace the template with the one at `path` and reset the view."""
        self.drag.cancel()
        self.template = template_io.load_template(path, self.config)
        self.template_path = Path(path)
        self.view.selected_field_id = None
        self.drag = self._make_drag_controller()
        self.fit_view()

    def _make_drag_controller(self) -> DragInteractionController:
        return DragInteractionController(
            self.template,
            self.view,
            on_block_moved=self._on_block_moved,
            hit_margin=self.config.editor.hit_margin,
        )

    @property
    def canvas_size(self) -> Tuple[float, float]:
        # The canvas is sized to the page, never the page to the canvas.
        return self.template.page_dimensions

    def fit_view(self, canvas_dimensions: Optional[Tuple[float, float]] = None) -> PageFit:
        fit = fit_to_page(self.template.page_dimensions, canvas_dimensions or self.canvas_size)
        self.view.zoom = fit.zoom
        self.view.pan_x, self.view.pan_y = fit.pan
        return fit

    # Block edits ---------------------------------------------------------
    def add_block(self) -> str:
        block_id = self.template.add_field_block(self.config.editor.new_block)
        logger.info(f"Added field block {block_id}")
        return block_id

    def remove_block(self, block_id: str) -> None:
        if self.drag.dragged_field_id == block_id:
            self.drag.cancel()
        if self.template.remove_field_block(block_id):
            logger.info(f"Removed field block {block_id}")
        if self.view.selected_field_id == block_id:
            self.view.selected_field_id = None

    def remove_selected_block(self) -> None:
        if self.view.selected_field_id is not None:
            self.remove_block(self.view.selected_field_id)

    def set_origin(self, block_id: str, x: float, y: float) -> None:
        self.template.set_origin(block_id, x, y)

    def set_bubble_count(self, block_id: str, count: int) -> None:
        self.template.set_bubble_count(block_id, count)

    def set_gaps(self, block_id: str, bubbles_gap=None, labels_gap=None) -> None:
        self.template.set_gaps(block_id, bubbles_gap=bubbles_gap, labels_gap=labels_gap)

    # Pointer input -------------------------------------------------------
    def pointer_down(self, x: float, y: float) -> DragMode:
        return self.drag.pointer_down(x, y)

    def pointer_move(self, x: float, y: float) -> None:
        self.drag.pointer_move(x, y)

    def pointer_up(self) -> None:
        self.drag.pointer_up()

    def pointer_leave(self) -> None:
        self.drag.pointer_leave()

    def _on_block_moved(self, block_id: str) -> None:
        self.events.emit(TEMPLATE_CHANGED, self.template.serialize())

    # View ------------------------------------------------------------------
    def zoom_in(self) -> None:
        self.view.zoom_in()

    def zoom_out(self) -> None:
        self.view.zoom_out()

    def reset_view(self) -> None:
        self.view.reset_view()

    def toggle_grid(self) -> bool:
        self.view.show_grid = not self.view.show_grid
        return self.view.show_grid

    def toggle_coordinates(self) -> bool:
        self.view.show_coordinates = not self.view.show_coordinates
        return self.view.show_coordinates

    def toggle_background(self) -> bool:
        self.view.show_background = not self.view.show_background
        return self.view.show_background

    # Background image --------------------------------------------------------
    def set_background_image(self, image: Image.Image) -> BackgroundImage:
        scale, offset_x, offset_y = fit_background(
            image.size, self.canvas_size, self.config.editor.background_fit_ratio
        )
        self.background = BackgroundImage(image=image, scale=scale, offset_x=offset_x, offset_y=offset_y)
        self.view.show_background = True
        return self.background

    def load_background_image(self, path: Path) -> BackgroundImage:
        with Image.open(path) as image:
            background = self.set_background_image(image.convert("RGBA"))
        logger.info(f"Loaded background image {path}")
        return background

    def fit_background(self) -> None:
        if self.background is None:
            return
        scale, offset_x, offset_y = fit_background(
            self.background.size, self.canvas_size, self.config.editor.background_fit_ratio
        )
        self.background.scale = scale
        self.background.offset_x = offset_x
        self.background.offset_y = offset_y

    def adjust_background(self, scale=None, offset_x=None, offset_y=None) -> None:
        if self.background is None:
            return
        if scale is not None:
            self.background.scale = max(0.1, float(scale))
        if offset_x is not None:
            self.background.offset_x = float(offset_x)
        if offset_y is not None:
            self.background.offset_y = float(offset_y)

    def remove_background(self) -> None:
        self.background = None
        self.view.show_background = False

    # Output ----------------------------------------------------------------
    def render(self) -> List[Command]:
        return render(self.template, self.view, self.background, self.canvas_size, self.config)

    def save(self, path: Optional[Path] = None) -> dict:
        """Emit templateChanged with the serialized template; write it if a path is known."""
        target = Path(path) if path else self.template_path
        if target is not None:
            template_io.save_template(self.template, target)
            self.template_path = target
        data = self.template.serialize()
        self.events.emit(TEMPLATE_CHANGED, data)
        return data
