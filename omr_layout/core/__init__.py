"""Core models and utilities shared by the layout editor and the camera overlay."""

__all__ = [
    "alignment",
    "capture",
    "drag_controller",
    "editor_session",
    "errors",
    "events",
    "render_pipeline",
    "template_io",
    "template_model",
    "transform",
]
