"""Visual layout editor window."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from PySide6.QtCore import QSize, Qt
from PySide6.QtGui import QAction, QPainter
from PySide6.QtWidgets import (
    QDoubleSpinBox,
    QFileDialog,
    QFormLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QSpinBox,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from omr_layout.core.editor_session import LayoutEditorSession
from omr_layout.core.errors import InvalidTemplate
from omr_layout.core.events import TEMPLATE_CHANGED
from omr_layout.gui.painter import paint_commands


class LayoutCanvas(QWidget):
    """Canvas sized to the page; forwards pointer events to the session."""

    def __init__(self, session: LayoutEditorSession, on_change, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.session = session
        self.on_change = on_change
        self.setMouseTracking(False)
        self.sync_size()

    def sync_size(self) -> None:
        width, height = self.session.canvas_size
        self.setFixedSize(QSize(int(width), int(height)))

    def paintEvent(self, event):
        painter = QPainter(self)
        try:
            paint_commands(painter, self.session.render())
        finally:
            painter.end()

    def mousePressEvent(self, event):
        if event.button() != Qt.LeftButton:
            return super().mousePressEvent(event)
        pos = event.position()
        self.session.pointer_down(pos.x(), pos.y())
        self.on_change()
        self.update()

    def mouseMoveEvent(self, event):
        pos = event.position()
        self.session.pointer_move(pos.x(), pos.y())
        self.update()

    def mouseReleaseEvent(self, event):
        self.session.pointer_up()
        self.on_change()
        self.update()

    def leaveEvent(self, event):
        self.session.pointer_leave()
        self.update()
        super().leaveEvent(event)


class LayoutEditorWindow(QMainWindow):
    """Main window for the layout editor."""

    def __init__(self, session: Optional[LayoutEditorSession] = None, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.session = session or LayoutEditorSession()
        self.session.events.subscribe(TEMPLATE_CHANGED, lambda _data: self._populate_block_form())
        self._build_ui()
        self._setup_menu()
        self._refresh()

    # UI setup helpers -----------------------------------------------------
    def _build_ui(self) -> None:
        self.canvas = LayoutCanvas(self.session, self._populate_block_form, self)
        scroll = QScrollArea()
        scroll.setWidget(self.canvas)

        self.block_id_label = QLabel("-")
        self.bubble_count_input = QSpinBox()
        self.bubble_count_input.setRange(1, 200)
        self.bubbles_gap_input = QDoubleSpinBox()
        self.bubbles_gap_input.setRange(0, 1000)
        self.labels_gap_input = QDoubleSpinBox()
        self.labels_gap_input.setRange(0, 1000)
        self.origin_label = QLabel("-")

        apply_button = QPushButton("Apply Block Changes")
        apply_button.clicked.connect(self._apply_block_changes)
        add_button = QPushButton("Add Field Block")
        add_button.clicked.connect(self._add_block)
        delete_button = QPushButton("Delete Selected Block")
        delete_button.clicked.connect(self._delete_selected_block)

        self.bg_scale_input = QDoubleSpinBox()
        self.bg_scale_input.setRange(0.1, 3.0)
        self.bg_scale_input.setSingleStep(0.1)
        self.bg_offset_x_input = QSpinBox()
        self.bg_offset_x_input.setRange(-200, 200)
        self.bg_offset_y_input = QSpinBox()
        self.bg_offset_y_input.setRange(-200, 200)
        for spin in (self.bg_scale_input, self.bg_offset_x_input, self.bg_offset_y_input):
            spin.valueChanged.connect(self._apply_background_changes)
        fit_bg_button = QPushButton("Reset Image Fit")
        fit_bg_button.clicked.connect(self._fit_background)

        form = QWidget()
        layout = QFormLayout(form)
        layout.addRow(add_button)
        layout.addRow("Block ID", self.block_id_label)
        layout.addRow("Origin", self.origin_label)
        layout.addRow("Questions", self.bubble_count_input)
        layout.addRow("Bubbles Gap", self.bubbles_gap_input)
        layout.addRow("Labels Gap", self.labels_gap_input)
        layout.addRow(apply_button)
        layout.addRow(delete_button)
        layout.addRow(QLabel("Background Image"))
        layout.addRow("Scale", self.bg_scale_input)
        layout.addRow("Position X", self.bg_offset_x_input)
        layout.addRow("Position Y", self.bg_offset_y_input)
        layout.addRow(fit_bg_button)

        splitter = QSplitter(self)
        splitter.addWidget(scroll)
        splitter.addWidget(form)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 1)

        central = QWidget()
        main_layout = QVBoxLayout(central)
        main_layout.addWidget(splitter)
        main_layout.addWidget(QLabel("Drag fields to adjust positions. Drag empty space to pan."))
        self.setCentralWidget(central)

    def _setup_menu(self) -> None:
        file_menu = self.menuBar().addMenu("File")
        for text, slot in (
            ("Open Template", self._open_template_dialog),
            ("Save", self._save_template),
            ("Save As", self._save_template_as),
            (None, None),
            ("Load Background Image", self._load_background_image),
            ("Remove Background Image", self._remove_background),
        ):
            if text is None:
                file_menu.addSeparator()
                continue
            action = QAction(text, self)
            action.triggered.connect(slot)
            file_menu.addAction(action)

        edit_menu = self.menuBar().addMenu("Edit")
        add_block_action = QAction("Add Block", self)
        add_block_action.triggered.connect(self._add_block)
        delete_block_action = QAction("Delete Block", self)
        delete_block_action.triggered.connect(self._delete_selected_block)
        edit_menu.addAction(add_block_action)
        edit_menu.addAction(delete_block_action)

        view_menu = self.menuBar().addMenu("View")
        for text, slot, shortcut in (
            ("Zoom In", self.session.zoom_in, "Ctrl++"),
            ("Zoom Out", self.session.zoom_out, "Ctrl+-"),
            ("Reset View", self.session.reset_view, "Ctrl+0"),
            ("Toggle Grid", self.session.toggle_grid, None),
            ("Toggle Coordinates", self.session.toggle_coordinates, None),
            ("Toggle Background Image", self.session.toggle_background, None),
        ):
            action = QAction(text, self)
            if shortcut:
                action.setShortcut(shortcut)
            action.triggered.connect(lambda _checked=False, fn=slot: self._run_and_refresh(fn))
            view_menu.addAction(action)

    # Model/canvas sync ------------------------------------------------------
    def _run_and_refresh(self, fn) -> None:
        fn()
        self.canvas.update()

    def _refresh(self) -> None:
        path = self.session.template_path
        self.setWindowTitle(f"OMR Layout Editor - {path}" if path else "OMR Layout Editor")
        self.session.fit_view()
        self.canvas.sync_size()
        self._populate_block_form()
        self._populate_background_form()
        self.canvas.update()

    def _selected_block(self):
        block_id = self.session.view.selected_field_id
        return self.session.template.get_block(block_id) if block_id else None

    def _populate_block_form(self) -> None:
        block = self._selected_block()
        if not block:
            self.block_id_label.setText("-")
            self.origin_label.setText("-")
            return
        self.block_id_label.setText(block.id)
        self.origin_label.setText(f"[{block.origin_x:.1f}, {block.origin_y:.1f}]")
        self.bubble_count_input.setValue(block.bubble_count)
        self.bubbles_gap_input.setValue(block.bubbles_gap)
        self.labels_gap_input.setValue(block.labels_gap)

    def _populate_background_form(self) -> None:
        background = self.session.background
        for spin in (self.bg_scale_input, self.bg_offset_x_input, self.bg_offset_y_input):
            spin.blockSignals(True)
        if background:
            self.bg_scale_input.setValue(background.scale)
            self.bg_offset_x_input.setValue(int(background.offset_x))
            self.bg_offset_y_input.setValue(int(background.offset_y))
        for spin in (self.bg_scale_input, self.bg_offset_x_input, self.bg_offset_y_input):
            spin.blockSignals(False)

    # Slots ---------------------------------------------------------------
    def _add_block(self) -> None:
        block_id = self.session.add_block()
        self.session.view.selected_field_id = block_id
        self._populate_block_form()
        self.canvas.update()

    def _delete_selected_block(self) -> None:
        self.session.remove_selected_block()
        self._populate_block_form()
        self.canvas.update()

    def _apply_block_changes(self) -> None:
        block = self._selected_block()
        if not block:
            return
        self.session.set_bubble_count(block.id, self.bubble_count_input.value())
        self.session.set_gaps(
            block.id,
            bubbles_gap=self.bubbles_gap_input.value(),
            labels_gap=self.labels_gap_input.value(),
        )
        self._populate_block_form()
        self.canvas.update()

    def _apply_background_changes(self) -> None:
        self.session.adjust_background(
            scale=self.bg_scale_input.value(),
            offset_x=self.bg_offset_x_input.value(),
            offset_y=self.bg_offset_y_input.value(),
        )
        self.canvas.update()

    def _fit_background(self) -> None:
        self.session.fit_background()
        self._populate_background_form()
        self.canvas.update()

    # Template load/save ---------------------------------------------------
    def load_template(self, path: Path) -> bool:
        """Load a template and display it. Returns False if it could not be read."""
        try:
            self.session.load(path)
        except InvalidTemplate as exc:
            QMessageBox.warning(self, "Error", f"Failed to load template: {exc.message}")
            return False
        except OSError as exc:
            QMessageBox.warning(self, "Error", f"Failed to load template: {exc}")
            return False
        self._refresh()
        return True

    def _open_template_dialog(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(self, "Open Template", "", "Template JSON (*.json)")
        if file_path:
            self.load_template(Path(file_path))

    def _save_template(self) -> None:
        if not self.session.template_path:
            self._save_template_as()
            return
        self.session.save()
        QMessageBox.information(self, "Template Saved", "Template saved successfully.")

    def _save_template_as(self) -> None:
        file_path, _ = QFileDialog.getSaveFileName(self, "Save Template As", "template.json", "Template JSON (*.json)")
        if file_path:
            self.session.template_path = Path(file_path)
            self._save_template()

    # Background image ----------------------------------------------------
    def _load_background_image(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Load Background Image", "", "Images (*.png *.jpg *.jpeg *.bmp)"
        )
        if not file_path:
            return
        try:
            self.session.load_background_image(Path(file_path))
        except OSError as exc:
            QMessageBox.warning(self, "Error", f"Failed to load image: {exc}")
            return
        self._populate_background_form()
        self.canvas.update()

    def _remove_background(self) -> None:
        self.session.remove_background()
        self.canvas.update()
