"""Data models for OMR answer-sheet templates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from src.defaults.config import CONFIG_DEFAULTS

DEFAULT_PAGE_DIMENSIONS: Tuple[float, float] = tuple(
    CONFIG_DEFAULTS.editor.default_page_dimensions
)
DEFAULT_BUBBLE_DIMENSIONS: Tuple[float, float] = tuple(
    CONFIG_DEFAULTS.editor.default_bubble_dimensions
)
DEFAULT_EMPTY_VALUE = CONFIG_DEFAULTS.editor.empty_value


def default_label(row_index: int) -> str:
    """Label for the zero-based row `row_index`."""
    return f"Q{row_index + 1}"


@dataclass
class FieldBlock:
    """A column of question rows sharing bubble geometry."""

    id: str
    field_type: str
    origin_x: float
    origin_y: float
    bubbles_gap: float
    labels_gap: float
    bubble_count: int
    field_labels: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.origin_x = max(0.0, float(self.origin_x))
        self.origin_y = max(0.0, float(self.origin_y))
        self.bubble_count = max(1, int(self.bubble_count))
        self.field_labels = _resize_labels(list(self.field_labels), self.bubble_count)

    @property
    def origin(self) -> Tuple[float, float]:
        return (self.origin_x, self.origin_y)


def _resize_labels(labels: List[str], count: int) -> List[str]:
    if len(labels) >= count:
        return labels[:count]
    return labels + [default_label(i) for i in range(len(labels), count)]


@dataclass
class TemplateModel:
    """Complete template definition plus the mutations the editor performs."""

    page_dimensions: Tuple[float, float] = DEFAULT_PAGE_DIMENSIONS
    bubble_dimensions: Tuple[float, float] = DEFAULT_BUBBLE_DIMENSIONS
    field_blocks: Dict[str, FieldBlock] = field(default_factory=dict)
    empty_value: str = DEFAULT_EMPTY_VALUE

    def get_block(self, block_id: str) -> Optional[FieldBlock]:
        return self.field_blocks.get(block_id)

    def add_field_block(self, defaults=None) -> str:
        """
        Append a default block to the right of the existing ones.
        `defaults` is an `editor.new_block` config section.
        Returns the id of the new block.
        """
        defaults = defaults or CONFIG_DEFAULTS.editor.new_block
        count = len(self.field_blocks)
        # A removal can leave the next Column<N+1> taken; skip ahead to a free id.
        index = count
        while f"Column{index + 1}" in self.field_blocks:
            index += 1
        block_id = f"Column{index + 1}"
        bubble_count = int(defaults.bubble_count)
        first_question = index * bubble_count
        self.field_blocks[block_id] = FieldBlock(
            id=block_id,
            field_type=defaults.field_type,
            origin_x=defaults.origin_x + index * defaults.spacing_x,
            origin_y=defaults.origin_y,
            bubbles_gap=defaults.bubbles_gap,
            labels_gap=defaults.labels_gap,
            bubble_count=bubble_count,
            field_labels=[f"Q{first_question + i + 1}" for i in range(bubble_count)],
        )
        return block_id

    def remove_field_block(self, block_id: str) -> bool:
        """Delete a block. Returns False when there was nothing to delete."""
        return self.field_blocks.pop(block_id, None) is not None

    def set_origin(self, block_id: str, x: float, y: float) -> None:
        block = self.field_blocks.get(block_id)
        if block is None:
            return
        block.origin_x = max(0.0, float(x))
        block.origin_y = max(0.0, float(y))

    def set_bubble_count(self, block_id: str, count: int) -> None:
        block = self.field_blocks.get(block_id)
        if block is None:
            return
        block.bubble_count = max(1, int(count))
        block.field_labels = _resize_labels(block.field_labels, block.bubble_count)

    def set_field_labels(self, block_id: str, labels: List[str]) -> None:
        """Replace the labels; the row count follows the new label list."""
        block = self.field_blocks.get(block_id)
        if block is None or not labels:
            return
        block.field_labels = [str(label) for label in labels]
        block.bubble_count = len(block.field_labels)

    def set_gaps(
        self,
        block_id: str,
        bubbles_gap: Optional[float] = None,
        labels_gap: Optional[float] = None,
    ) -> None:
        block = self.field_blocks.get(block_id)
        if block is None:
            return
        if bubbles_gap is not None:
            block.bubbles_gap = max(0.0, float(bubbles_gap))
        if labels_gap is not None:
            block.labels_gap = max(0.0, float(labels_gap))

    def serialize(self) -> dict:
        """Return the template in its external JSON shape."""
        return {
            "pageDimensions": list(self.page_dimensions),
            "bubbleDimensions": list(self.bubble_dimensions),
            "fieldBlocks": {
                block_id: {
                    "id": block.id,
                    "fieldType": block.field_type,
                    "origin": [block.origin_x, block.origin_y],
                    "bubblesGap": block.bubbles_gap,
                    "labelsGap": block.labels_gap,
                    "bubbleCount": block.bubble_count,
                    "fieldLabels": list(block.field_labels),
                }
                for block_id, block in self.field_blocks.items()
            },
            "emptyValue": self.empty_value,
        }


@dataclass
class BackgroundImage:
    """Reference image shown behind the layout. Not used for alignment."""

    image: object
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size  # type: ignore[attr-defined]


@dataclass
class ViewState:
    """Per-session presentation state. Never persisted."""

    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    selected_field_id: Optional[str] = None
    show_grid: bool = True
    show_coordinates: bool = False
    show_background: bool = True
    min_zoom: float = CONFIG_DEFAULTS.editor.min_zoom
    max_zoom: float = CONFIG_DEFAULTS.editor.max_zoom
    zoom_step: float = CONFIG_DEFAULTS.editor.zoom_step

    @classmethod
    def from_config(cls, config) -> "ViewState":
        editor = config.editor
        return cls(min_zoom=editor.min_zoom, max_zoom=editor.max_zoom, zoom_step=editor.zoom_step)

    @property
    def pan(self) -> Tuple[float, float]:
        return (self.pan_x, self.pan_y)

    def set_zoom(self, zoom: float) -> None:
        self.zoom = min(self.max_zoom, max(self.min_zoom, float(zoom)))

    def zoom_in(self) -> None:
        self.set_zoom(self.zoom * self.zoom_step)

    def zoom_out(self) -> None:
        self.set_zoom(self.zoom / self.zoom_step)

    def reset_view(self) -> None:
        self.zoom = 1.0
        self.pan_x = 0.0
        self.pan_y = 0.0
