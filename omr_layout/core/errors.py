"""Error taxonomy for the layout editor and camera capture."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    PERMISSION_DENIED = "PermissionDenied"
    DEVICE_NOT_FOUND = "DeviceNotFound"
    DEVICE_NOT_SUPPORTED = "DeviceNotSupported"
    INSECURE_CONTEXT = "InsecureContext"
    INVALID_TEMPLATE = "InvalidTemplate"
    CAPTURE_IN_PROGRESS = "CaptureInProgress"
    CAPTURE_NOT_READY = "CaptureNotReady"
    CAPTURE_DISCARDED = "CaptureDiscarded"


class OmrLayoutError(Exception):
    """Base class; every error is local and recoverable."""

    kind: ErrorKind
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidTemplate(OmrLayoutError):
    kind = ErrorKind.INVALID_TEMPLATE
    default_message = "Template is missing page or bubble dimensions"


class CameraError(OmrLayoutError):
    """Raised when the camera session cannot be opened."""


class PermissionDenied(CameraError):
    kind = ErrorKind.PERMISSION_DENIED
    default_message = "Camera permission denied. Please allow camera access and try again."


class DeviceNotFound(CameraError):
    kind = ErrorKind.DEVICE_NOT_FOUND
    default_message = "No camera found. Please connect a camera and try again."


class DeviceNotSupported(CameraError):
    kind = ErrorKind.DEVICE_NOT_SUPPORTED
    default_message = "Camera not supported on this system."


class InsecureContext(CameraError):
    kind = ErrorKind.INSECURE_CONTEXT
    default_message = "Camera access requires HTTPS or localhost."


class CaptureError(OmrLayoutError):
    """Raised when a still capture is rejected or dropped."""


class CaptureInProgress(CaptureError):
    kind = ErrorKind.CAPTURE_IN_PROGRESS
    default_message = "A capture is already in progress."


class CaptureNotReady(CaptureError):
    kind = ErrorKind.CAPTURE_NOT_READY
    default_message = "Align the sheet with the overlay before capturing."


class CaptureDiscarded(CaptureError):
    kind = ErrorKind.CAPTURE_DISCARDED
    default_message = "Camera was closed while capturing; the image was discarded."
