"""Qt application entry point."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from PySide6.QtWidgets import QApplication

from omr_layout.core import template_io
from omr_layout.core.capture import CaptureController
from omr_layout.core.editor_session import LayoutEditorSession
from omr_layout.core.errors import InvalidTemplate
from omr_layout.core.template_model import TemplateModel
from omr_layout.gui.camera_overlay import CameraOverlayWindow
from omr_layout.gui.layout_editor import LayoutEditorWindow
from src.defaults.config import CONFIG_DEFAULTS
from src.logger import logger


def _load_or_empty(template_path: Optional[Path], config) -> TemplateModel:
    if not template_path:
        return TemplateModel()
    try:
        return template_io.load_template(template_path, config)
    except (InvalidTemplate, OSError) as exc:
        logger.error(f"Could not load {template_path}:", exc)
        return TemplateModel()


def main(
    template_path: Optional[Path] = None,
    camera: bool = False,
    output_dir: Optional[Path] = None,
    config=None,
) -> int:
    config = config or CONFIG_DEFAULTS
    app = QApplication.instance() or QApplication(sys.argv)
    if camera:
        template = _load_or_empty(template_path, config)
        controller = CaptureController(template.page_dimensions, config=config)
        window = CameraOverlayWindow(template, controller=controller, output_dir=output_dir)
    else:
        window = LayoutEditorWindow(LayoutEditorSession(config=config))
        if template_path:
            window.load_template(Path(template_path))
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
