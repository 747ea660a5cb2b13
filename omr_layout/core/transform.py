"""
Mapping between template space, view space and video space.

Template space is the page in template units. View space is the editor canvas
with zoom and pan applied: ``view = template * zoom + pan``. Video space is
camera-frame pixels, into which the page is projected through an
aspect-ratio-fit overlay box.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from src.defaults.config import CONFIG_DEFAULTS

Point = Tuple[float, float]


@dataclass(frozen=True)
class OverlayBox:
    """Screen rectangle the page is projected into."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def corners(self) -> Tuple[Point, Point, Point, Point]:
        """Top-left, top-right, bottom-right, bottom-left."""
        return (
            (self.x, self.y),
            (self.right, self.y),
            (self.right, self.bottom),
            (self.x, self.bottom),
        )


@dataclass(frozen=True)
class PageFit:
    zoom: float
    pan: Point
    matches: bool


def _check_zoom(zoom: float) -> None:
    if not zoom > 0:
        raise ValueError(f"zoom must be positive, got {zoom}")


def to_view(point: Point, zoom: float, pan: Point) -> Point:
    _check_zoom(zoom)
    return (point[0] * zoom + pan[0], point[1] * zoom + pan[1])


def to_template(point: Point, zoom: float, pan: Point) -> Point:
    _check_zoom(zoom)
    return ((point[0] - pan[0]) / zoom, (point[1] - pan[1]) / zoom)


def fit_to_page(page_dimensions: Point, canvas_dimensions: Point) -> PageFit:
    """
    Presentation used when a template is opened: always 1:1.
    `matches` tells the caller whether the canvas already has the page size;
    if not, the caller resizes the canvas rather than the page being rescaled.
    """
    matches = (
        float(page_dimensions[0]) == float(canvas_dimensions[0])
        and float(page_dimensions[1]) == float(canvas_dimensions[1])
    )
    return PageFit(zoom=1.0, pan=(0.0, 0.0), matches=matches)


def overlay_box(page_dimensions: Point, video_dimensions: Point, scale: float | None = None) -> OverlayBox:
    """Fit the page inside the video frame, centered, at `scale` of the frame."""
    if scale is None:
        scale = CONFIG_DEFAULTS.overlay.scale
    page_w, page_h = float(page_dimensions[0]), float(page_dimensions[1])
    video_w, video_h = float(video_dimensions[0]), float(video_dimensions[1])
    if page_w <= 0 or page_h <= 0 or video_w <= 0 or video_h <= 0:
        raise ValueError("page and video dimensions must be positive")
    template_aspect = page_w / page_h
    video_aspect = video_w / video_h
    margin = (1.0 - scale) / 2

    if template_aspect > video_aspect:
        # Wider than the frame: fit to width.
        width = video_w * scale
        height = width / template_aspect
        x = video_w * margin
        y = (video_h - height) / 2
    else:
        height = video_h * scale
        width = height * template_aspect
        x = (video_w - width) / 2
        y = video_h * margin
    return OverlayBox(x=x, y=y, width=width, height=height)


def template_to_overlay(point: Point, page_dimensions: Point, box: OverlayBox) -> Point:
    """Project a template-space point by its relative position on the page."""
    return (
        box.x + box.width * point[0] / float(page_dimensions[0]),
        box.y + box.height * point[1] / float(page_dimensions[1]),
    )


def template_length_to_overlay(length: Point, page_dimensions: Point, box: OverlayBox) -> Point:
    return (
        box.width * length[0] / float(page_dimensions[0]),
        box.height * length[1] / float(page_dimensions[1]),
    )


def video_to_overlay(point: Point, video_dimensions: Point, box: OverlayBox) -> Point:
    """Map a frame-pixel point into the overlay box's coordinates."""
    return (
        box.x + box.width * point[0] / float(video_dimensions[0]),
        box.y + box.height * point[1] / float(video_dimensions[1]),
    )
