"""Classify how well a live frame matches the expected sheet silhouette."""

from __future__ import annotations

import time
from enum import Enum
from typing import Callable, Optional, Tuple

import cv2
import numpy as np

from src.constants.layout import (
    ALIGNMENT_BLUR_KERNEL,
    ALIGNMENT_CANNY_THRESHOLDS,
    ALIGNMENT_DILATE_KERNEL,
    ALIGNMENT_POLY_EPSILON,
)
from src.defaults.config import CONFIG_DEFAULTS
from src.logger import logger

from .transform import OverlayBox, overlay_box


class AlignmentQuality(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    POOR = "poor"


def find_sheet_quad(frame: np.ndarray) -> Optional[np.ndarray]:
    """Largest four-cornered contour in the frame, as a (4, 2) int array."""
    gray = frame if frame.ndim == 2 else cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    blurred = cv2.GaussianBlur(gray, ALIGNMENT_BLUR_KERNEL, 0)
    edges = cv2.Canny(blurred, *ALIGNMENT_CANNY_THRESHOLDS)
    edges = cv2.dilate(edges, np.ones(ALIGNMENT_DILATE_KERNEL, np.uint8), iterations=1)
    contours, _hierarchy = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    best, best_area = None, 0.0
    for contour in contours:
        perimeter = cv2.arcLength(contour, True)
        approx = cv2.approxPolyDP(contour, ALIGNMENT_POLY_EPSILON * perimeter, True)
        if len(approx) != 4 or not cv2.isContourConvex(approx):
            continue
        area = cv2.contourArea(approx)
        if area > best_area:
            best, best_area = approx.reshape(4, 2), area
    return best


def quad_overlap(quad: np.ndarray, box: OverlayBox, frame_shape: Tuple[int, int]) -> Tuple[float, float]:
    """IoU between the quad and the box, and the share of the box it covers."""
    height, width = frame_shape[:2]
    quad_mask = np.zeros((height, width), np.uint8)
    cv2.fillConvexPoly(quad_mask, quad.astype(np.int32), 255)
    box_mask = np.zeros((height, width), np.uint8)
    cv2.rectangle(
        box_mask,
        (int(round(box.x)), int(round(box.y))),
        (int(round(box.right)), int(round(box.bottom))),
        255,
        thickness=-1,
    )
    intersection = np.count_nonzero(cv2.bitwise_and(quad_mask, box_mask))
    union = np.count_nonzero(cv2.bitwise_or(quad_mask, box_mask))
    box_area = np.count_nonzero(box_mask)
    if union == 0 or box_area == 0:
        return 0.0, 0.0
    return intersection / union, intersection / box_area


def classify_frame(frame: np.ndarray, page_dimensions: Tuple[float, float], config=None) -> AlignmentQuality:
    """Compare the detected sheet outline with the overlay box for this frame."""
    config = config or CONFIG_DEFAULTS
    thresholds = config.alignment
    height, width = frame.shape[:2]
    quad = find_sheet_quad(frame)
    if quad is None:
        return AlignmentQuality.POOR
    box = overlay_box(page_dimensions, (width, height), config.overlay.scale)
    iou, coverage = quad_overlap(quad, box, frame.shape)
    if iou >= thresholds.good_iou and coverage >= thresholds.min_coverage:
        return AlignmentQuality.GOOD
    if iou >= thresholds.warning_iou:
        return AlignmentQuality.WARNING
    return AlignmentQuality.POOR


class AlignmentEstimator:
    """
    Re-classifies the camera framing on a fixed cadence while the stream is
    active. The current quality gates capture and colors the overlay.
    """

    def __init__(
        self,
        page_dimensions: Tuple[float, float],
        interval: Optional[float] = None,
        classifier: Callable[[np.ndarray, Tuple[float, float]], AlignmentQuality] = classify_frame,
        clock: Callable[[], float] = time.monotonic,
        on_change: Optional[Callable[[AlignmentQuality], None]] = None,
    ) -> None:
        self.page_dimensions = page_dimensions
        self.interval = float(
            CONFIG_DEFAULTS.alignment.interval_seconds if interval is None else interval
        )
        self.classifier = classifier
        self.clock = clock
        self.on_change = on_change
        self._quality = AlignmentQuality.POOR
        self._active = False
        self._last_evaluated: Optional[float] = None

    @property
    def quality(self) -> AlignmentQuality:
        return self._quality

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        self._active = True
        self._last_evaluated = None

    def stop(self) -> None:
        self._active = False
        self._last_evaluated = None
        self._set_quality(AlignmentQuality.POOR)

    def tick(self, frame: Optional[np.ndarray], now: Optional[float] = None) -> AlignmentQuality:
        """Evaluate `frame` if the interval has elapsed; otherwise keep the last result."""
        if not self._active or frame is None:
            return self._quality
        now = self.clock() if now is None else now
        if self._last_evaluated is not None and now - self._last_evaluated < self.interval:
            return self._quality
        self._last_evaluated = now
        self._set_quality(self.classifier(frame, self.page_dimensions))
        return self._quality

    def _set_quality(self, quality: AlignmentQuality) -> None:
        if quality == self._quality:
            return
        logger.debug(f"Alignment quality {self._quality.value} -> {quality.value}")
        self._quality = quality
        if self.on_change:
            self.on_change(quality)
