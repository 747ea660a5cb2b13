"""
Turn a template plus view state into an ordered list of drawing commands.

Commands are expressed in view space (canvas pixels) and listed back to front.
The Qt canvas replays them with QPainter; `rasterize` replays them onto a
Pillow image for previews and exports.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from PIL import Image, ImageDraw, ImageFont

from src.constants.layout import (
    BACKGROUND_IMAGE_ALPHA,
    BLOCK_BORDER_COLOR,
    BLOCK_BORDER_SELECTED_COLOR,
    BLOCK_BORDER_SELECTED_WIDTH,
    BLOCK_BORDER_WIDTH,
    BLOCK_FILL_COLOR,
    BLOCK_FILL_SELECTED_COLOR,
    BUBBLE_FILL_COLOR,
    BUBBLE_LINE_WIDTH,
    BUBBLE_OUTLINE_COLOR,
    CAPTION_COLOR,
    CAPTION_FONT_SIZE,
    CAPTION_OFFSET,
    CAPTION_SELECTED_COLOR,
    COORDINATES_COLOR,
    COORDINATES_FONT_SIZE,
    CORNER_DOT_RADIUS,
    CORNER_LINE_WIDTH,
    GRID_COLOR,
    GRID_DASH,
    GRID_LINE_WIDTH,
    GUIDE_BLOCK_COLOR,
    GUIDE_BUBBLE_FILL_COLOR,
    GUIDE_CAPTION_FONT_SIZE,
    GUIDE_LABEL_COLOR,
    GUIDE_LABEL_FONT_SIZE,
    GUIDE_LABEL_OFFSET,
    GUIDE_ROW_EMPHASIS,
    OPTION_LETTERS,
    OVERLAY_GLOW_COLOR,
    OVERLAY_GLOW_PADDING,
    OVERLAY_GLOW_WIDTH,
    OVERLAY_INNER_INSET,
    OVERLAY_INNER_WIDTH,
    OVERLAY_MAIN_DASH,
    OVERLAY_MAIN_WIDTH,
    PAGE_BORDER_COLOR,
    PAGE_BORDER_WIDTH,
    PAGE_FILL_COLOR,
    QUALITY_COLORS,
    QUALITY_GLYPHS,
    ROW_LABEL_COLOR,
    ROW_LABEL_FONT_SIZE,
    ROW_LABEL_OFFSET,
    STATUS_DISC_INSET,
    STATUS_DISC_RADIUS,
    STATUS_GLYPH_COLOR,
)
from src.defaults.config import CONFIG_DEFAULTS

from .template_model import BackgroundImage, FieldBlock, TemplateModel, ViewState
from .transform import (
    OverlayBox,
    overlay_box,
    template_length_to_overlay,
    template_to_overlay,
    to_view,
)

Color = Tuple[int, int, int, int]
Point = Tuple[float, float]


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: Optional[Color] = None
    outline: Optional[Color] = None
    line_width: float = 1
    dash: Optional[Tuple[int, int]] = None


@dataclass(frozen=True)
class Circle:
    cx: float
    cy: float
    radius: float
    fill: Optional[Color] = None
    outline: Optional[Color] = None
    line_width: float = 1


@dataclass(frozen=True)
class Line:
    x0: float
    y0: float
    x1: float
    y1: float
    color: Color
    line_width: float = 1
    dash: Optional[Tuple[int, int]] = None


@dataclass(frozen=True)
class Polyline:
    points: Tuple[Point, ...]
    color: Color
    line_width: float = 1


@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    color: Color
    size: int
    # "left", "right" or "center", relative to x; y is the baseline.
    align: str = "left"


@dataclass(frozen=True)
class ImageLayer:
    image: Image.Image
    x: float
    y: float
    width: float
    height: float
    alpha: float = 1.0


Command = Union[Rect, Circle, Line, Polyline, Text, ImageLayer]


# Geometry ----------------------------------------------------------------
def options_per_row() -> int:
    return int(CONFIG_DEFAULTS.editor.options_per_row)


def block_size(block: FieldBlock, bubble_dimensions: Point) -> Point:
    """Width and height of the bubble grid of a block, in template units."""
    bubble_w, bubble_h = bubble_dimensions
    columns = options_per_row()
    width = bubble_w * columns + block.bubbles_gap * (columns - 1)
    height = block.bubble_count * (bubble_h + block.labels_gap) - block.labels_gap
    return (width, height)


def block_bounds(block: FieldBlock, bubble_dimensions: Point, margin: float = 0.0) -> Tuple[float, float, float, float]:
    """(x, y, width, height) of a block, grown by `margin` on every side."""
    width, height = block_size(block, bubble_dimensions)
    return (
        block.origin_x - margin,
        block.origin_y - margin,
        width + 2 * margin,
        height + 2 * margin,
    )


def bubble_positions(block: FieldBlock, bubble_dimensions: Point) -> Iterable[Tuple[int, int, float, float]]:
    """Yield (row, column, x, y) of every bubble's top-left corner."""
    bubble_w, bubble_h = bubble_dimensions
    for row in range(block.bubble_count):
        y = block.origin_y + row * (bubble_h + block.labels_gap)
        for column in range(options_per_row()):
            x = block.origin_x + column * (bubble_w + block.bubbles_gap)
            yield row, column, x, y


def hit_test(template: TemplateModel, point: Point, margin: float | None = None) -> Optional[str]:
    """
    Return the id of the block under a template-space point.
    Overlapping blocks resolve to the first one in insertion order.
    """
    if margin is None:
        margin = CONFIG_DEFAULTS.editor.hit_margin
    px, py = point
    for block_id, block in template.field_blocks.items():
        x, y, width, height = block_bounds(block, template.bubble_dimensions, margin)
        if x <= px <= x + width and y <= py <= y + height:
            return block_id
    return None


def fit_background(image_size: Point, canvas_size: Point, ratio: float | None = None) -> Tuple[float, float, float]:
    """Scale and offset that center an image at `ratio` of the canvas."""
    if ratio is None:
        ratio = CONFIG_DEFAULTS.editor.background_fit_ratio
    image_w, image_h = image_size
    canvas_w, canvas_h = canvas_size
    scale = min(canvas_w / image_w, canvas_h / image_h) * ratio
    return (
        scale,
        (canvas_w - image_w * scale) / 2,
        (canvas_h - image_h * scale) / 2,
    )


# Editor canvas -----------------------------------------------------------
def _grid_commands(view: ViewState, canvas_size: Point, grid_size: float) -> List[Command]:
    width, height = canvas_size
    commands: List[Command] = []
    # Spacing stays fixed in view space; only the phase follows the pan.
    x = view.pan_x % grid_size
    while x < width:
        commands.append(Line(x, 0, x, height, GRID_COLOR, GRID_LINE_WIDTH, GRID_DASH))
        x += grid_size
    y = view.pan_y % grid_size
    while y < height:
        commands.append(Line(0, y, width, y, GRID_COLOR, GRID_LINE_WIDTH, GRID_DASH))
        y += grid_size
    return commands


def _block_commands(
    template: TemplateModel, block_id: str, block: FieldBlock, view: ViewState, margin: float
) -> List[Command]:
    zoom, pan = view.zoom, view.pan
    selected = view.selected_field_id == block_id
    commands: List[Command] = []

    bx, by, bw, bh = block_bounds(block, template.bubble_dimensions, margin)
    left, top = to_view((bx, by), zoom, pan)
    commands.append(
        Rect(
            left,
            top,
            bw * zoom,
            bh * zoom,
            fill=BLOCK_FILL_SELECTED_COLOR if selected else BLOCK_FILL_COLOR,
            outline=BLOCK_BORDER_SELECTED_COLOR if selected else BLOCK_BORDER_COLOR,
            line_width=BLOCK_BORDER_SELECTED_WIDTH if selected else BLOCK_BORDER_WIDTH,
        )
    )

    bubble_w, bubble_h = template.bubble_dimensions
    for row, column, x, y in bubble_positions(block, template.bubble_dimensions):
        cx, cy = to_view((x + bubble_w / 2, y + bubble_h / 2), zoom, pan)
        commands.append(
            Circle(
                cx,
                cy,
                bubble_w / 2 * zoom,
                fill=BUBBLE_FILL_COLOR,
                outline=BUBBLE_OUTLINE_COLOR,
                line_width=BUBBLE_LINE_WIDTH,
            )
        )
        if column == 0:
            label = block.field_labels[row] if row < len(block.field_labels) else f"Q{row + 1}"
            lx, ly = to_view((x, y + bubble_h / 2), zoom, pan)
            commands.append(
                Text(lx - ROW_LABEL_OFFSET, ly + 4, label, ROW_LABEL_COLOR, ROW_LABEL_FONT_SIZE, "right")
            )

    width, height = block_size(block, template.bubble_dimensions)
    cx, cy = to_view((block.origin_x + width / 2, block.origin_y), zoom, pan)
    commands.append(
        Text(
            cx,
            cy - CAPTION_OFFSET,
            block_id,
            CAPTION_SELECTED_COLOR if selected else CAPTION_COLOR,
            CAPTION_FONT_SIZE,
            "center",
        )
    )
    if view.show_coordinates:
        dx, dy = to_view((block.origin_x, block.origin_y + height), zoom, pan)
        commands.append(
            Text(
                dx,
                dy + 10,
                f"[{block.origin_x:g},{block.origin_y:g}]",
                COORDINATES_COLOR,
                COORDINATES_FONT_SIZE,
            )
        )
    return commands


def render(
    template: TemplateModel,
    view: ViewState,
    background: Optional[BackgroundImage] = None,
    canvas_size: Optional[Point] = None,
    config=None,
) -> List[Command]:
    """Drawing commands for one editor frame, back to front."""
    editor = (config or CONFIG_DEFAULTS).editor
    if canvas_size is None:
        canvas_size = template.page_dimensions
    zoom, pan = view.zoom, view.pan
    page_w, page_h = template.page_dimensions
    left, top = to_view((0, 0), zoom, pan)

    commands: List[Command] = [
        Rect(
            left,
            top,
            page_w * zoom,
            page_h * zoom,
            fill=PAGE_FILL_COLOR,
            outline=PAGE_BORDER_COLOR,
            line_width=PAGE_BORDER_WIDTH,
        )
    ]
    if background is not None and view.show_background:
        image_w, image_h = background.size
        commands.append(
            ImageLayer(
                background.image,
                background.offset_x,
                background.offset_y,
                image_w * background.scale,
                image_h * background.scale,
                alpha=BACKGROUND_IMAGE_ALPHA,
            )
        )
    if view.show_grid:
        commands.extend(_grid_commands(view, canvas_size, float(editor.grid_size)))
    for block_id, block in template.field_blocks.items():
        commands.extend(_block_commands(template, block_id, block, view, float(editor.hit_margin)))
    return commands


# Camera overlay ----------------------------------------------------------
def _row_emphasis(row_number: int) -> Tuple[Color, float]:
    for last_row, color, width in GUIDE_ROW_EMPHASIS:
        if last_row is None or row_number <= last_row:
            return color, width
    raise ValueError(f"No guide emphasis for row {row_number}")


def _frame_commands(box: OverlayBox, quality: str, size: float) -> List[Command]:
    main_color, inner_color = QUALITY_COLORS[quality]
    pad = OVERLAY_GLOW_PADDING
    inset = OVERLAY_INNER_INSET
    commands: List[Command] = [
        Rect(box.x - pad, box.y - pad, box.width + 2 * pad, box.height + 2 * pad,
             outline=OVERLAY_GLOW_COLOR, line_width=OVERLAY_GLOW_WIDTH),
        Rect(box.x, box.y, box.width, box.height,
             outline=main_color, line_width=OVERLAY_MAIN_WIDTH, dash=OVERLAY_MAIN_DASH),
        Rect(box.x + inset, box.y + inset, box.width - 2 * inset, box.height - 2 * inset,
             outline=inner_color, line_width=OVERLAY_INNER_WIDTH),
    ]
    (x0, y0), (x1, _), (_, y1), _ = box.corners()
    arms = (
        ((x0, y0 + size), (x0, y0), (x0 + size, y0)),
        ((x1 - size, y0), (x1, y0), (x1, y0 + size)),
        ((x0, y1 - size), (x0, y1), (x0 + size, y1)),
        ((x1 - size, y1), (x1, y1), (x1, y1 - size)),
    )
    for arm in arms:
        commands.append(Polyline(arm, main_color, CORNER_LINE_WIDTH))
        corner = arm[1]
        commands.append(Circle(corner[0], corner[1], CORNER_DOT_RADIUS, fill=main_color))
    return commands


def _guide_commands(template: TemplateModel, block_id: str, block: FieldBlock, box: OverlayBox) -> List[Command]:
    page = template.page_dimensions
    commands: List[Command] = []
    x, y = template_to_overlay(block.origin, page, box)
    width, height = template_length_to_overlay(block_size(block, template.bubble_dimensions), page, box)
    bubble_w, bubble_h = template_length_to_overlay(template.bubble_dimensions, page, box)

    commands.append(Rect(x, y, width, height, outline=GUIDE_BLOCK_COLOR, line_width=1))
    commands.append(Text(x + width / 2, y - 15, block_id, GUIDE_BLOCK_COLOR, GUIDE_CAPTION_FONT_SIZE, "center"))

    template_bubble_w, template_bubble_h = template.bubble_dimensions
    for row, column, bx, by in bubble_positions(block, template.bubble_dimensions):
        cx, cy = template_to_overlay((bx + template_bubble_w / 2, by + template_bubble_h / 2), page, box)
        left, top = cx - bubble_w / 2, cy - bubble_h / 2
        if column == 0:
            label = block.field_labels[row]
            commands.append(Text(x - GUIDE_LABEL_OFFSET, cy + 3, label, GUIDE_LABEL_COLOR, GUIDE_LABEL_FONT_SIZE, "right"))
        if row == 0:
            commands.append(
                Rect(left, top, bubble_w, bubble_h, fill=GUIDE_BUBBLE_FILL_COLOR, outline=GUIDE_BLOCK_COLOR, line_width=2)
            )
            commands.append(
                Text(cx, cy + 3, OPTION_LETTERS[column % len(OPTION_LETTERS)], GUIDE_LABEL_COLOR, GUIDE_LABEL_FONT_SIZE, "center")
            )
            continue
        color, line_width = _row_emphasis(row + 1)
        commands.append(Rect(left, top, bubble_w, bubble_h, outline=color, line_width=line_width))
    return commands


def render_overlay(template: TemplateModel, video_size: Point, quality: str, config=None) -> List[Command]:
    """
    Drawing commands for the camera alignment overlay in frame pixels.
    The box uses the same `config.overlay.scale` as the alignment classifier.
    """
    if quality not in QUALITY_COLORS:
        raise ValueError(f"Unknown alignment quality: {quality}")
    overlay = (config or CONFIG_DEFAULTS).overlay
    box = overlay_box(template.page_dimensions, video_size, overlay.scale)
    commands = _frame_commands(box, quality, float(overlay.corner_size))
    for block_id, block in template.field_blocks.items():
        commands.extend(_guide_commands(template, block_id, block, box))

    main_color, _ = QUALITY_COLORS[quality]
    cx, cy = video_size[0] - STATUS_DISC_INSET, STATUS_DISC_INSET
    commands.append(Circle(cx, cy, STATUS_DISC_RADIUS, fill=main_color))
    commands.append(Text(cx, cy + 5, QUALITY_GLYPHS[quality], STATUS_GLYPH_COLOR, 12, "center"))
    return commands


# Rasterizer --------------------------------------------------------------
def _dash_segments(x0: float, y0: float, x1: float, y1: float, dash: Sequence[int]) -> Iterable[Tuple[float, float, float, float]]:
    length = ((x1 - x0) ** 2 + (y1 - y0) ** 2) ** 0.5
    if length == 0:
        return
    on, off = dash
    ux, uy = (x1 - x0) / length, (y1 - y0) / length
    start = 0.0
    while start < length:
        end = min(start + on, length)
        yield (x0 + ux * start, y0 + uy * start, x0 + ux * end, y0 + uy * end)
        start += on + off


def _draw_line(draw: ImageDraw.ImageDraw, x0, y0, x1, y1, color, width, dash) -> None:
    width = max(1, int(round(width)))
    if dash:
        for segment in _dash_segments(x0, y0, x1, y1, dash):
            draw.line(segment, fill=color, width=width)
    else:
        draw.line((x0, y0, x1, y1), fill=color, width=width)


def _font(size: int) -> ImageFont.FreeTypeFont:
    return ImageFont.load_default(size=size)


def _draw_command(image: Image.Image, command: Command) -> Image.Image:
    if isinstance(command, ImageLayer):
        layer = command.image.convert("RGBA").resize(
            (max(1, int(round(command.width))), max(1, int(round(command.height))))
        )
        if command.alpha < 1:
            alpha = layer.getchannel("A").point(lambda a: int(a * command.alpha))
            layer.putalpha(alpha)
        canvas = Image.new("RGBA", image.size, (0, 0, 0, 0))
        canvas.paste(layer, (int(round(command.x)), int(round(command.y))))
        return Image.alpha_composite(image, canvas)

    # Draw translucent shapes on their own layer so alpha blends correctly.
    overlay = Image.new("RGBA", image.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    if isinstance(command, Rect):
        x0, y0 = command.x, command.y
        x1, y1 = command.x + command.width, command.y + command.height
        if command.fill is not None:
            draw.rectangle([x0, y0, x1, y1], fill=command.fill)
        if command.outline is not None:
            for sx0, sy0, sx1, sy1 in ((x0, y0, x1, y0), (x1, y0, x1, y1), (x1, y1, x0, y1), (x0, y1, x0, y0)):
                _draw_line(draw, sx0, sy0, sx1, sy1, command.outline, command.line_width, command.dash)
    elif isinstance(command, Circle):
        bbox = [
            command.cx - command.radius,
            command.cy - command.radius,
            command.cx + command.radius,
            command.cy + command.radius,
        ]
        draw.ellipse(
            bbox,
            fill=command.fill,
            outline=command.outline,
            width=max(1, int(round(command.line_width))),
        )
    elif isinstance(command, Line):
        _draw_line(draw, command.x0, command.y0, command.x1, command.y1, command.color, command.line_width, command.dash)
    elif isinstance(command, Polyline):
        draw.line(list(command.points), fill=command.color, width=max(1, int(round(command.line_width))))
    elif isinstance(command, Text):
        font = _font(command.size)
        bbox_text = draw.textbbox((0, 0), command.text, font=font)
        text_w, text_h = bbox_text[2] - bbox_text[0], bbox_text[3] - bbox_text[1]
        x = command.x
        if command.align == "right":
            x -= text_w
        elif command.align == "center":
            x -= text_w / 2
        draw.text((x, command.y - text_h), command.text, fill=command.color, font=font)
    return Image.alpha_composite(image, overlay)


def rasterize(commands: Iterable[Command], size: Point, base: Optional[Image.Image] = None) -> Image.Image:
    """Replay drawing commands onto an RGBA image of `size` (or over `base`)."""
    if base is not None:
        image = base.convert("RGBA")
    else:
        image = Image.new("RGBA", (int(round(size[0])), int(round(size[1]))), (0, 0, 0, 0))
    for command in commands:
        image = _draw_command(image, command)
    return image
