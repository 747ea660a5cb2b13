"""Live camera view with the template alignment overlay."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import cv2
import numpy as np
from PySide6.QtCore import QRectF, Qt, QThread, QTimer, Signal
from PySide6.QtGui import QImage, QPainter
from PySide6.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from omr_layout.core.alignment import AlignmentQuality
from omr_layout.core.capture import CaptureController, ImageArtifact
from omr_layout.core.errors import CameraError, CaptureError
from omr_layout.core.events import CAMERA_ERROR
from omr_layout.core.render_pipeline import render_overlay
from omr_layout.core.template_model import TemplateModel
from omr_layout.gui.painter import paint_commands

FRAME_INTERVAL_MS = 33

QUALITY_MESSAGES = {
    AlignmentQuality.GOOD: "Perfect alignment - ready to capture",
    AlignmentQuality.WARNING: "Adjust position slightly",
    AlignmentQuality.POOR: "Align the sheet with the template overlay",
}


class CaptureWorker(QThread):
    """Worker thread that encodes one still so the preview keeps running."""

    captured = Signal(object)
    failed = Signal(str)

    def __init__(self, controller: CaptureController, parent=None) -> None:
        super().__init__(parent)
        self.controller = controller

    def run(self) -> None:
        try:
            self.captured.emit(self.controller.capture_frame())
        except CaptureError as exc:
            self.failed.emit(exc.message)


class OverlayView(QWidget):
    """Paints the latest frame and the overlay commands on top of it."""

    def __init__(self, template: TemplateModel, config, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.template = template
        self.config = config
        self.frame: Optional[np.ndarray] = None
        self.quality = AlignmentQuality.POOR
        self.setMinimumSize(640, 360)

    def set_frame(self, frame: Optional[np.ndarray], quality: AlignmentQuality) -> None:
        self.frame = frame
        self.quality = quality
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        try:
            painter.fillRect(self.rect(), Qt.black)
            if self.frame is None:
                return
            height, width = self.frame.shape[:2]
            rgb = cv2.cvtColor(self.frame, cv2.COLOR_BGR2RGB)
            image = QImage(rgb.data, width, height, 3 * width, QImage.Format_RGB888)
            # Scale the frame into the widget; the overlay is drawn in frame pixels.
            scale = min(self.width() / width, self.height() / height)
            painter.translate((self.width() - width * scale) / 2, (self.height() - height * scale) / 2)
            painter.scale(scale, scale)
            painter.drawImage(QRectF(0, 0, width, height), image)
            paint_commands(painter, render_overlay(self.template, (width, height), self.quality.value, self.config))
        finally:
            painter.end()


class CameraOverlayWindow(QMainWindow):
    """Capture window: opens the camera on show and releases it on close."""

    def __init__(
        self,
        template: TemplateModel,
        controller: Optional[CaptureController] = None,
        output_dir: Optional[Path] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Capture OMR Sheet")
        self.template = template
        self.controller = controller or CaptureController(template.page_dimensions)
        self.output_dir = output_dir
        self.capture_worker: Optional[CaptureWorker] = None
        self.controller.events.subscribe(CAMERA_ERROR, self._on_camera_error)

        self.timer = QTimer(self)
        self.timer.setInterval(FRAME_INTERVAL_MS)
        self.timer.timeout.connect(self._on_tick)

        self._build_ui()

    def _build_ui(self) -> None:
        self.view = OverlayView(self.template, self.controller.config)
        self.status_label = QLabel(QUALITY_MESSAGES[AlignmentQuality.POOR])
        self.error_label = QLabel("")
        self.error_label.setStyleSheet("color: #ef4444;")
        self.capture_button = QPushButton("Capture")
        self.capture_button.setEnabled(False)
        self.capture_button.clicked.connect(self._capture)
        self.retry_button = QPushButton("Try Again")
        self.retry_button.setVisible(False)
        self.retry_button.clicked.connect(self.start_camera)

        buttons = QHBoxLayout()
        buttons.addWidget(self.status_label)
        buttons.addStretch(1)
        buttons.addWidget(self.retry_button)
        buttons.addWidget(self.capture_button)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.addWidget(self.view, 1)
        layout.addWidget(self.error_label)
        layout.addLayout(buttons)
        self.setCentralWidget(central)

    def showEvent(self, event):
        super().showEvent(event)
        if not self.controller.is_open:
            self.start_camera()

    def closeEvent(self, event):
        self.stop_camera()
        super().closeEvent(event)

    def start_camera(self) -> None:
        self.error_label.setText("")
        self.retry_button.setVisible(False)
        try:
            self.controller.open()
        except CameraError:
            # Reported through the cameraError event.
            return
        self.timer.start()

    def stop_camera(self) -> None:
        self.timer.stop()
        self.controller.close()
        # A capture still encoding is discarded by the controller; let its thread finish.
        if self.capture_worker is not None:
            self.capture_worker.wait()
            self.capture_worker = None
        self.view.set_frame(None, AlignmentQuality.POOR)

    def _on_tick(self) -> None:
        frame = self.controller.poll()
        quality = self.controller.alignment_quality
        self.view.set_frame(frame, quality)
        self.status_label.setText(QUALITY_MESSAGES[quality])
        busy = self.capture_worker is not None and self.capture_worker.isRunning()
        self.capture_button.setEnabled(quality is AlignmentQuality.GOOD and not busy)

    def _capture(self) -> None:
        if self.capture_worker is not None and self.capture_worker.isRunning():
            return
        self.capture_button.setEnabled(False)
        self.capture_worker = CaptureWorker(self.controller, self)
        # Queued signal: the artifact is handled on the GUI thread.
        self.capture_worker.captured.connect(self._on_capture_completed)
        self.capture_worker.failed.connect(self.error_label.setText)
        self.capture_worker.start()

    def _on_capture_completed(self, artifact: ImageArtifact) -> None:
        output_dir = self.output_dir
        if output_dir is None:
            directory = QFileDialog.getExistingDirectory(self, "Save Capture To")
            if not directory:
                return
            output_dir = Path(directory)
        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / artifact.filename).write_bytes(artifact.data)
        self.status_label.setText(f"Saved {artifact.filename}")

    def _on_camera_error(self, _kind) -> None:
        error = self.controller.last_error
        self.error_label.setText(error.message if error else "Camera access denied or not available")
        self.retry_button.setVisible(True)
        self.capture_button.setEnabled(False)
