"""Drawing constants shared by the editor canvas and the camera overlay."""

# Colors are RGBA tuples so they can be handed to Pillow and Qt unchanged.
PAGE_FILL_COLOR = (255, 255, 255, 255)
PAGE_BORDER_COLOR = (209, 213, 219, 255)
PAGE_BORDER_WIDTH = 2

GRID_COLOR = (229, 231, 235, 255)
GRID_LINE_WIDTH = 1
GRID_DASH = (5, 5)

BACKGROUND_IMAGE_ALPHA = 0.7

BLOCK_FILL_COLOR = (59, 130, 246, 102)
BLOCK_FILL_SELECTED_COLOR = (59, 130, 246, 153)
BLOCK_BORDER_COLOR = (79, 70, 229, 255)
BLOCK_BORDER_SELECTED_COLOR = (59, 130, 246, 255)
BLOCK_BORDER_WIDTH = 3
BLOCK_BORDER_SELECTED_WIDTH = 4

BUBBLE_FILL_COLOR = (255, 255, 255, 255)
BUBBLE_OUTLINE_COLOR = (31, 41, 55, 255)
BUBBLE_LINE_WIDTH = 2

ROW_LABEL_COLOR = (31, 41, 55, 255)
ROW_LABEL_FONT_SIZE = 12
ROW_LABEL_OFFSET = 15
CAPTION_COLOR = (75, 85, 99, 255)
CAPTION_SELECTED_COLOR = (30, 64, 175, 255)
CAPTION_FONT_SIZE = 11
CAPTION_OFFSET = 15
COORDINATES_COLOR = (255, 0, 0, 255)
COORDINATES_FONT_SIZE = 8

# Alignment quality palette: (main, inner) per quality.
QUALITY_COLORS = {
    "good": ((16, 185, 129, 255), (52, 211, 153, 255)),
    "warning": ((245, 158, 11, 255), (251, 191, 36, 255)),
    "poor": ((239, 68, 68, 255), (248, 113, 113, 255)),
}
QUALITY_GLYPHS = {"good": "✓", "warning": "!", "poor": "✗"}

OVERLAY_GLOW_COLOR = (16, 185, 129, 77)
OVERLAY_GLOW_WIDTH = 8
OVERLAY_GLOW_PADDING = 4
OVERLAY_MAIN_WIDTH = 6
OVERLAY_MAIN_DASH = (15, 8)
OVERLAY_INNER_WIDTH = 2
OVERLAY_INNER_INSET = 2
CORNER_LINE_WIDTH = 5
CORNER_DOT_RADIUS = 6

GUIDE_BLOCK_COLOR = (59, 130, 246, 255)
GUIDE_BUBBLE_FILL_COLOR = (59, 130, 246, 51)
GUIDE_LABEL_COLOR = (30, 64, 175, 255)
GUIDE_CAPTION_FONT_SIZE = 12
GUIDE_LABEL_FONT_SIZE = 10
GUIDE_LABEL_OFFSET = 10
# (last 1-based row number, color, line width) for rows after the first.
GUIDE_ROW_EMPHASIS = (
    (5, (96, 165, 250, 255), 1.5),
    (10, (147, 197, 253, 255), 1.0),
    (None, (219, 234, 254, 255), 0.8),
)

STATUS_DISC_RADIUS = 12
STATUS_DISC_INSET = 30
STATUS_GLYPH_COLOR = (255, 255, 255, 255)

OPTION_LETTERS = ("A", "B", "C", "D")

# Canny/contour preprocessing for the alignment heuristic.
ALIGNMENT_BLUR_KERNEL = (5, 5)
ALIGNMENT_CANNY_THRESHOLDS = (50, 150)
ALIGNMENT_DILATE_KERNEL = (3, 3)
ALIGNMENT_POLY_EPSILON = 0.02
