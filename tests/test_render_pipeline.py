import pytest
from PIL import Image

from omr_layout.core.render_pipeline import (
    Circle,
    ImageLayer,
    Line,
    Rect,
    Text,
    block_bounds,
    fit_background,
    hit_test,
    rasterize,
    render,
    render_overlay,
)
from omr_layout.core.template_model import BackgroundImage
from src.constants.layout import (
    BACKGROUND_IMAGE_ALPHA,
    BLOCK_BORDER_SELECTED_COLOR,
    BLOCK_BORDER_SELECTED_WIDTH,
    BLOCK_BORDER_WIDTH,
    GUIDE_ROW_EMPHASIS,
    OVERLAY_MAIN_DASH,
    PAGE_FILL_COLOR,
    QUALITY_COLORS,
    QUALITY_GLYPHS,
)


def test_page_is_drawn_first(one_block_template, view):
    commands = render(one_block_template, view)
    page = commands[0]
    assert isinstance(page, Rect)
    assert page.fill == PAGE_FILL_COLOR
    assert (page.width, page.height) == (707, 484)


def test_grid_toggle(one_block_template, view):
    with_grid = [c for c in render(one_block_template, view) if isinstance(c, Line)]
    assert len(with_grid) == 36 + 25

    view.show_grid = False
    assert not [c for c in render(one_block_template, view) if isinstance(c, Line)]


def test_grid_spacing_does_not_follow_zoom(one_block_template, view):
    view.set_zoom(2.0)
    lines = [c for c in render(one_block_template, view) if isinstance(c, Line)]
    assert len(lines) == 36 + 25


def test_block_commands(one_block_template, view):
    view.show_grid = False
    commands = render(one_block_template, view)
    circles = [c for c in commands if isinstance(c, Circle)]
    texts = [c for c in commands if isinstance(c, Text)]
    assert len(circles) == 4 * 20
    assert circles[0].radius == 7.5
    # One label per row plus the caption.
    assert len(texts) == 21
    assert texts[-1].text == "Column1"
    assert texts[-1].align == "center"


def test_selected_block_is_highlighted(one_block_template, view):
    view.show_grid = False
    block_rect = render(one_block_template, view)[1]
    assert block_rect.line_width == BLOCK_BORDER_WIDTH

    view.selected_field_id = "Column1"
    block_rect = render(one_block_template, view)[1]
    assert block_rect.line_width == BLOCK_BORDER_SELECTED_WIDTH
    assert block_rect.outline == BLOCK_BORDER_SELECTED_COLOR


def test_coordinates_debug_text(one_block_template, view):
    view.show_coordinates = True
    texts = [c.text for c in render(one_block_template, view) if isinstance(c, Text)]
    assert "[100,50]" in texts


def test_background_layer(one_block_template, view):
    image = Image.new("RGBA", (100, 50), (0, 0, 0, 255))
    background = BackgroundImage(image=image, scale=2.0, offset_x=5, offset_y=6)
    commands = render(one_block_template, view, background)
    layer = commands[1]
    assert isinstance(layer, ImageLayer)
    assert (layer.width, layer.height) == (200, 100)
    assert layer.alpha == BACKGROUND_IMAGE_ALPHA

    view.show_background = False
    assert not [c for c in render(one_block_template, view, background) if isinstance(c, ImageLayer)]


def test_block_bounds(one_block_template):
    block = one_block_template.field_blocks["Column1"]
    x, y, width, height = block_bounds(block, (15, 10))
    assert (x, y) == (100, 50)
    assert width == pytest.approx(4 * 15 + 3 * 21)
    assert height == pytest.approx(20 * (10 + 22.7) - 22.7)


def test_hit_test_uses_margin(one_block_template):
    assert hit_test(one_block_template, (95, 45)) == "Column1"
    assert hit_test(one_block_template, (89, 45)) is None
    assert hit_test(one_block_template, (600, 400)) is None


def test_hit_test_overlap_resolves_to_first_block(template):
    template.add_field_block()
    template.add_field_block()
    template.set_origin("Column2", 100, 50)
    for _ in range(3):
        assert hit_test(template, (120, 60)) == "Column1"


def test_fit_background_centers_image():
    scale, offset_x, offset_y = fit_background((1000, 500), (707, 484))
    assert scale == pytest.approx(0.707 * 0.8)
    assert offset_x == pytest.approx((707 - 1000 * scale) / 2)
    assert offset_y == pytest.approx((484 - 500 * scale) / 2)


@pytest.mark.parametrize("quality", ["good", "warning", "poor"])
def test_overlay_frame_uses_quality_palette(one_block_template, quality):
    commands = render_overlay(one_block_template, (1280, 720), quality)
    main_border = commands[1]
    assert main_border.dash == OVERLAY_MAIN_DASH
    assert main_border.outline == QUALITY_COLORS[quality][0]
    assert commands[-1].text == QUALITY_GLYPHS[quality]
    assert (commands[-2].cx, commands[-2].cy) == (1250, 30)


def test_overlay_rejects_unknown_quality(one_block_template):
    with pytest.raises(ValueError):
        render_overlay(one_block_template, (1280, 720), "great")


def test_overlay_row_emphasis(one_block_template):
    commands = render_overlay(one_block_template, (1280, 720), "good")
    outlines = [c.outline for c in commands if isinstance(c, Rect)]
    strong, medium, faint = (color for _, color, _ in GUIDE_ROW_EMPHASIS)
    assert outlines.count(strong) == 4 * 4
    assert outlines.count(medium) == 5 * 4
    assert outlines.count(faint) == 10 * 4
    letters = [c.text for c in commands if isinstance(c, Text) and c.text in "ABCD"]
    assert letters == ["A", "B", "C", "D"]


def test_rasterize_editor_frame(one_block_template, view):
    image = rasterize(render(one_block_template, view), (707, 484))
    assert image.size == (707, 484)
    assert image.mode == "RGBA"
    assert image.getpixel((690, 470)) == (255, 255, 255, 255)


def test_rasterize_over_base_image(one_block_template):
    base = Image.new("RGB", (640, 360), (0, 0, 0))
    image = rasterize(render_overlay(one_block_template, (640, 360), "poor"), (640, 360), base)
    assert image.size == (640, 360)
    # Status disc sits in the top-right corner.
    assert image.getpixel((610, 30))[:3] != (0, 0, 0)


def test_text_uses_sized_default_font():
    from PIL import ImageFont

    from omr_layout.core.render_pipeline import _font

    font = _font(18)
    assert isinstance(font, ImageFont.FreeTypeFont)
    assert font.size == 18
