"""Camera session ownership and still-frame capture."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import urlparse

import cv2
import numpy as np

from src.defaults.config import CONFIG_DEFAULTS
from src.logger import logger

from .alignment import AlignmentEstimator, AlignmentQuality, classify_frame
from .errors import (
    CameraError,
    CaptureDiscarded,
    CaptureInProgress,
    CaptureNotReady,
    DeviceNotFound,
    DeviceNotSupported,
    InsecureContext,
    PermissionDenied,
)
from .events import CAMERA_ERROR, CAPTURE_COMPLETED, EventHub

REAR_CAMERA = "environment"


@dataclass(frozen=True)
class ImageArtifact:
    """Encoded still image handed to the processing boundary."""

    filename: str
    data: bytes
    mime_type: str = "image/jpeg"


class SessionState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    OPEN = "open"
    FAILED = "failed"
    CLOSED = "closed"


def capture_filename(moment: Optional[datetime] = None) -> str:
    """omr_capture_<UTC ISO-8601 with ':' and '.' replaced by '-'>.jpg"""
    moment = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
    return "omr_capture_" + iso.replace(":", "-").replace(".", "-") + ".jpg"


def is_secure_origin(origin: str, secure_hosts=None) -> bool:
    """Camera access needs https, or a local host over any scheme."""
    if secure_hosts is None:
        secure_hosts = CONFIG_DEFAULTS.camera.secure_hosts
    parsed = urlparse(origin)
    if parsed.scheme == "https":
        return True
    return (parsed.hostname or "") in set(secure_hosts)


class CameraDeviceHandle:
    """An acquired camera stream. Subclasses wrap a concrete device."""

    def read(self) -> Optional[np.ndarray]:
        raise NotImplementedError

    def release(self) -> None:
        raise NotImplementedError

    @property
    def frame_size(self) -> Tuple[int, int]:
        raise NotImplementedError


class OpenCVDeviceHandle(CameraDeviceHandle):
    def __init__(self, capture: cv2.VideoCapture, index: int) -> None:
        self.capture = capture
        self.index = index

    def read(self) -> Optional[np.ndarray]:
        ok, frame = self.capture.read()
        return frame if ok else None

    def release(self) -> None:
        self.capture.release()

    @property
    def frame_size(self) -> Tuple[int, int]:
        return (
            int(self.capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self.capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )


class OpenCVCameraBackend:
    """Negotiates devices through cv2.VideoCapture."""

    def __init__(self, config=None) -> None:
        self.config = config or CONFIG_DEFAULTS

    def acquire(self, facing: Optional[str], width: int, height: int) -> CameraDeviceHandle:
        camera = self.config.camera
        index = camera.rear_device_index if facing == REAR_CAMERA else camera.fallback_device_index
        try:
            capture = cv2.VideoCapture(int(index))
        except cv2.error as exc:
            raise DeviceNotSupported(f"Camera {index} is not supported: {exc}") from exc
        if not capture.isOpened():
            capture.release()
            raise DeviceNotFound(f"No camera at index {index}")
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        # An opened device that yields no frame is what the OS does when access is refused.
        ok, _frame = capture.read()
        if not ok:
            capture.release()
            raise PermissionDenied()
        return OpenCVDeviceHandle(capture, int(index))


class CaptureController:
    """
    Owns the camera device for one capture session.

    Acquisition and release are serialized by a single lock; the handle is
    never read while it is being released. Use as a context manager to
    guarantee release on every exit path.
    """

    def __init__(
        self,
        page_dimensions: Tuple[float, float],
        backend=None,
        events: Optional[EventHub] = None,
        estimator: Optional[AlignmentEstimator] = None,
        origin: Optional[str] = None,
        config=None,
    ) -> None:
        self.config = config or CONFIG_DEFAULTS
        self.backend = backend or OpenCVCameraBackend(self.config)
        self.events = events or EventHub()
        self.estimator = estimator or AlignmentEstimator(
            page_dimensions,
            interval=self.config.alignment.interval_seconds,
            classifier=lambda frame, page: classify_frame(frame, page, self.config),
        )
        self.origin = origin or self.config.camera.origin
        self.state = SessionState.IDLE
        self.last_error: Optional[CameraError] = None
        self.last_artifact: Optional[ImageArtifact] = None
        self._handle: Optional[CameraDeviceHandle] = None
        self._lock = threading.RLock()
        self._session_id = 0
        self._capture_in_flight = False

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    @property
    def alignment_quality(self) -> AlignmentQuality:
        return self.estimator.quality

    @property
    def capture_in_flight(self) -> bool:
        return self._capture_in_flight

    def __enter__(self) -> "CaptureController":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> CameraDeviceHandle:
        with self._lock:
            if self._handle is not None:
                self._close_locked()
            self.state = SessionState.PENDING
            self.last_error = None
            try:
                if not is_secure_origin(self.origin, self.config.camera.secure_hosts):
                    raise InsecureContext()
                handle = self._negotiate()
            except CameraError as exc:
                self.state = SessionState.FAILED
                self.last_error = exc
                logger.error(f"Camera error ({exc.kind.value}):", exc.message)
                self.events.emit(CAMERA_ERROR, exc.kind)
                raise
            self._handle = handle
            self._session_id += 1
            self.state = SessionState.OPEN
            self.estimator.start()
            logger.info(f"Camera session {self._session_id} opened")
            return handle

    def _negotiate(self) -> CameraDeviceHandle:
        camera = self.config.camera
        width, height = int(camera.preferred_width), int(camera.preferred_height)
        try:
            return self._acquire(REAR_CAMERA, width, height)
        except CameraError as exc:
            logger.info("Back camera not available, trying any camera:", exc.message)
        return self._acquire(None, width, height)

    def _acquire(self, facing: Optional[str], width: int, height: int) -> CameraDeviceHandle:
        try:
            return self.backend.acquire(facing, width, height)
        except CameraError:
            raise
        except Exception as exc:  # backend-specific failures
            raise DeviceNotSupported(str(exc)) from exc

    def close(self) -> None:
        with self._lock:
            self._close_locked()

    def _close_locked(self) -> None:
        self.estimator.stop()
        handle, self._handle = self._handle, None
        if handle is None:
            return
        # Invalidate any capture started under the old session.
        self._session_id += 1
        try:
            handle.release()
        finally:
            self.state = SessionState.CLOSED
            logger.info("Camera session closed")

    def read_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._handle is None:
                return None
            return self._handle.read()

    def poll(self, now: Optional[float] = None) -> Optional[np.ndarray]:
        """Read the next frame and let the estimator re-classify it."""
        frame = self.read_frame()
        self.estimator.tick(frame, now)
        return frame

    def capture_frame(self, moment: Optional[datetime] = None) -> ImageArtifact:
        with self._lock:
            if self._capture_in_flight:
                raise CaptureInProgress()
            if self.estimator.quality is not AlignmentQuality.GOOD:
                raise CaptureNotReady()
            self._capture_in_flight = True
        try:
            with self._lock:
                if self._handle is None:
                    raise CaptureDiscarded("Camera is not open.")
                session = self._session_id
                frame = self._handle.read()
            if frame is None:
                raise CaptureDiscarded("No frame available from the camera.")
            ok, buffer = cv2.imencode(
                ".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, int(self.config.camera.jpeg_quality)]
            )
            if not ok:
                raise CaptureDiscarded("Failed to encode the captured frame.")
            with self._lock:
                if session != self._session_id:
                    logger.warning("Camera closed during capture; discarding image")
                    raise CaptureDiscarded()
            artifact = ImageArtifact(filename=capture_filename(moment), data=buffer.tobytes())
            self.last_artifact = artifact
            logger.info(f"Captured {artifact.filename} ({len(artifact.data)} bytes)")
            self.events.emit(CAPTURE_COMPLETED, artifact)
            return artifact
        finally:
            self._capture_in_flight = False
