import re
from datetime import datetime, timezone

import numpy as np
import pytest

from omr_layout.core import capture as capture_module
from omr_layout.core.alignment import AlignmentEstimator, AlignmentQuality
from omr_layout.core.capture import (
    CameraDeviceHandle,
    CaptureController,
    SessionState,
    capture_filename,
    is_secure_origin,
)
from omr_layout.core.errors import (
    CaptureDiscarded,
    CaptureInProgress,
    CaptureNotReady,
    DeviceNotFound,
    DeviceNotSupported,
    ErrorKind,
    InsecureContext,
    PermissionDenied,
)
from omr_layout.core.events import CAMERA_ERROR, CAPTURE_COMPLETED

PAGE = (707, 484)
FILENAME_PATTERN = re.compile(r"^omr_capture_\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z\.jpg$")


class FakeHandle(CameraDeviceHandle):
    def __init__(self, on_read=None):
        self.frame = np.full((48, 64, 3), 200, np.uint8)
        self.on_read = on_read
        self.released = 0

    def read(self):
        if self.on_read:
            self.on_read()
        return self.frame

    def release(self):
        self.released += 1

    @property
    def frame_size(self):
        return (64, 48)


class FakeBackend:
    """Returns a handle or raises, per requested facing mode."""

    def __init__(self, **outcomes):
        self.outcomes = outcomes
        self.calls = []
        self.handles = []

    def acquire(self, facing, width, height):
        self.calls.append(facing)
        outcome = self.outcomes.get(facing or "any")
        if isinstance(outcome, Exception):
            raise outcome
        handle = outcome or FakeHandle()
        self.handles.append(handle)
        return handle


def _estimator(quality=AlignmentQuality.GOOD):
    return AlignmentEstimator(PAGE, interval=0.0, classifier=lambda frame, page: quality)


def _controller(backend=None, quality=AlignmentQuality.GOOD, **kwargs):
    return CaptureController(
        PAGE, backend=backend or FakeBackend(), estimator=_estimator(quality), **kwargs
    )


def test_capture_filename_format():
    moment = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
    assert capture_filename(moment) == "omr_capture_2024-01-02T03-04-05-678Z.jpg"
    assert FILENAME_PATTERN.match(capture_filename())


@pytest.mark.parametrize(
    "origin, secure",
    [
        ("https://omr.example.org", True),
        ("http://localhost:8080", True),
        ("http://127.0.0.1", True),
        ("http://omr.example.org", False),
    ],
)
def test_secure_origin(origin, secure):
    assert is_secure_origin(origin) is secure


def test_insecure_origin_never_touches_backend():
    backend = FakeBackend()
    controller = _controller(backend, origin="http://omr.example.org")
    errors = []
    controller.events.subscribe(CAMERA_ERROR, errors.append)
    with pytest.raises(InsecureContext):
        controller.open()
    assert backend.calls == []
    assert errors == [ErrorKind.INSECURE_CONTEXT]
    assert controller.state is SessionState.FAILED
    assert not controller.is_open


def test_falls_back_to_any_camera():
    backend = FakeBackend(environment=DeviceNotFound())
    controller = _controller(backend)
    controller.open()
    assert backend.calls == ["environment", None]
    assert controller.is_open
    assert controller.state is SessionState.OPEN


def test_open_reports_error_kind():
    backend = FakeBackend(environment=DeviceNotFound(), any=PermissionDenied())
    controller = _controller(backend)
    errors = []
    controller.events.subscribe(CAMERA_ERROR, errors.append)
    with pytest.raises(PermissionDenied):
        controller.open()
    assert errors == [ErrorKind.PERMISSION_DENIED]
    assert controller.last_error.message.startswith("Camera permission denied")


def test_unexpected_backend_failure_is_not_supported():
    backend = FakeBackend(environment=RuntimeError("boom"), any=RuntimeError("boom"))
    with pytest.raises(DeviceNotSupported):
        _controller(backend).open()


def test_reopen_releases_previous_handle():
    backend = FakeBackend()
    controller = _controller(backend)
    controller.open()
    controller.open()
    assert backend.handles[0].released == 1
    assert backend.handles[1].released == 0


def test_capture_requires_good_alignment():
    controller = _controller(quality=AlignmentQuality.WARNING)
    controller.open()
    controller.poll(now=0.0)
    with pytest.raises(CaptureNotReady):
        controller.capture_frame()
    assert not controller.capture_in_flight


def test_capture_produces_jpeg_artifact():
    controller = _controller()
    completed = []
    controller.events.subscribe(CAPTURE_COMPLETED, completed.append)
    controller.open()
    controller.poll(now=0.0)
    assert controller.alignment_quality is AlignmentQuality.GOOD

    artifact = controller.capture_frame()
    assert FILENAME_PATTERN.match(artifact.filename)
    assert artifact.mime_type == "image/jpeg"
    assert artifact.data[:2] == b"\xff\xd8"
    assert completed == [artifact]
    assert not controller.capture_in_flight


def test_only_one_capture_in_flight():
    backend = FakeBackend()
    controller = _controller(backend)
    rejected = []

    def capture_again():
        try:
            controller.capture_frame()
        except CaptureInProgress:
            rejected.append(True)

    controller.open()
    controller.poll(now=0.0)
    backend.handles[0].on_read = capture_again

    controller.capture_frame()
    assert rejected == [True]


def test_close_during_encode_discards_capture(monkeypatch):
    controller = _controller()
    controller.open()
    controller.poll(now=0.0)
    handle = controller._handle
    completed = []
    controller.events.subscribe(CAPTURE_COMPLETED, completed.append)
    real_imencode = capture_module.cv2.imencode

    def closing_imencode(*args, **kwargs):
        controller.close()
        return real_imencode(*args, **kwargs)

    monkeypatch.setattr(capture_module.cv2, "imencode", closing_imencode)
    with pytest.raises(CaptureDiscarded):
        controller.capture_frame()
    assert completed == []
    assert handle.released == 1
    assert controller.last_artifact is None
    assert not controller.capture_in_flight


def test_capture_without_session_is_rejected():
    controller = _controller()
    with pytest.raises(CaptureNotReady):
        controller.capture_frame()


def test_close_is_idempotent():
    backend = FakeBackend()
    controller = _controller(backend)
    controller.open()
    controller.close()
    controller.close()
    assert backend.handles[0].released == 1
    assert controller.state is SessionState.CLOSED
    assert controller.alignment_quality is AlignmentQuality.POOR


def test_context_manager_releases_on_error():
    backend = FakeBackend()
    controller = _controller(backend)
    with pytest.raises(RuntimeError):
        with controller:
            raise RuntimeError("window closed")
    assert backend.handles[0].released == 1
    assert not controller.is_open
