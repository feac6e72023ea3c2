"""Shared pytest fixtures for the frame playback test suite."""

from __future__ import annotations

import os
import threading
import time
from typing import Callable, List, Optional

import numpy as np
import pytest
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt5 import QtWidgets

from frame_playback.core.exceptions import NoLoadError, ReadFailError
from frame_playback.core.playback_controller import PlaybackController
from frame_playback.core.result import success
from frame_playback.core.settings_manager import PlaybackSettings
from frame_playback.core.streaming_buffer import StreamingBuffer
from frame_playback.models.recording import FrameGeometry, RecordingInfo


def frame_values(index: int, geometry: FrameGeometry) -> np.ndarray:
    """Deterministic content of frame ``index`` written by ``make_recording``."""
    base = np.arange(geometry.pixel_count, dtype=np.uint32) + index * 100
    return base.astype(np.uint16).reshape(geometry.shape)


@pytest.fixture(scope="session")
def qt_application() -> QtWidgets.QApplication:
    """Provide a QApplication instance configured for offscreen rendering."""
    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
        created = True
    else:
        created = False

    yield app

    if created:
        app.quit()


@pytest.fixture
def geometry() -> FrameGeometry:
    """4x4 frames of 2-byte pixels, stride 32 bytes."""
    return FrameGeometry(height=4, width=4)


@pytest.fixture
def make_recording(tmp_path, geometry) -> Callable[..., str]:
    """Factory writing a headerless uint16 recording to disk."""

    def _factory(n_frames: int = 10, extra_bytes: int = 0, name: str = "recording.raw",
                 frame_geometry: Optional[FrameGeometry] = None) -> str:
        frame_geometry = frame_geometry or geometry
        path = tmp_path / name
        with open(path, "wb") as f:
            for i in range(n_frames):
                f.write(frame_values(i, frame_geometry).astype("<u2").tobytes())
            f.write(b"\x00" * extra_bytes)
        return str(path)

    return _factory


@pytest.fixture
def recording_path(make_recording) -> str:
    return make_recording(10)


@pytest.fixture
def make_mask_file(tmp_path) -> Callable[..., str]:
    """Factory writing float32 mask values after ``offset`` bytes of padding."""

    def _factory(values, offset: int = 0, name: str = "mask.bin") -> str:
        path = tmp_path / name
        with open(path, "wb") as f:
            f.write(b"\xff" * offset)
            f.write(np.asarray(values, dtype="<f4").tobytes())
        return str(path)

    return _factory


class GatedRecording:
    """In-memory stand-in for Recording whose reads can be held open.

    Every access (read or close) is timestamped so tests can check when the
    worker touched it.
    """

    def __init__(self, geometry: FrameGeometry, frame_count: int = 10, fail_on: tuple = ()):
        self.info = RecordingInfo("gated.raw", geometry, geometry.stride * frame_count, frame_count)
        self.gate = threading.Event()
        self.gate.set()
        self.entered = threading.Event()
        self.reads: List[int] = []
        self.access_times: List[float] = []
        self.closed = False
        self.fail_on = fail_on

    def read_frame(self, index: int) -> np.ndarray:
        self.access_times.append(time.monotonic())
        self.reads.append(index)
        self.entered.set()
        self.gate.wait(5.0)
        if index in self.fail_on:
            raise ReadFailError(self.info.file_path, index)
        if self.closed:
            raise NoLoadError("read_frame")
        return frame_values(index, self.info.geometry)

    def close(self):
        self.access_times.append(time.monotonic())
        self.closed = True


@pytest.fixture
def gated_recording(geometry) -> GatedRecording:
    return GatedRecording(geometry)


@pytest.fixture
def make_gated_recording(geometry) -> Callable[..., GatedRecording]:
    return lambda **kwargs: GatedRecording(geometry, **kwargs)


@pytest.fixture
def expected_frame(geometry) -> Callable[[int], np.ndarray]:
    return lambda index: frame_values(index, geometry)


@pytest.fixture
def gated_opener(gated_recording):
    """Opener returning the shared GatedRecording regardless of path."""
    return lambda path, geometry: success(gated_recording)


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll ``predicate`` until it is true or ``timeout`` seconds pass."""

    def _wait(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.005) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait


@pytest.fixture
def playback_settings() -> PlaybackSettings:
    return PlaybackSettings(frame_height=4, frame_width=4, tick_interval_ms=5, use_dark_mask=False)


@pytest.fixture
def controller(qt_application, playback_settings) -> PlaybackController:
    """Controller using real StreamingBuffers; closed after the test."""
    instance = PlaybackController(playback_settings)
    yield instance
    instance.close()


@pytest.fixture
def drive(wait_until) -> Callable[..., bool]:
    """Pump controller events until ``predicate`` holds."""

    def _drive(controller: PlaybackController, predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
        def _step() -> bool:
            controller.process_events()
            return predicate()

        return wait_until(_step, timeout)

    return _drive


@pytest.fixture
def loaded_controller(controller, recording_path, drive) -> PlaybackController:
    """Controller with the 10-frame recording loaded and frame 0 shown."""
    controller.load_file(recording_path)
    assert drive(controller, lambda: controller.current_frame is not None and controller.pending_index is None)
    return controller


def buffer_factory_with(opener) -> Callable[..., StreamingBuffer]:
    """Build a controller buffer factory that opens recordings with ``opener``."""

    def _factory(file_path, geometry, on_event=None):
        return StreamingBuffer(file_path, geometry, opener=opener, on_event=on_event)

    return _factory


@pytest.fixture
def gated_controller(qt_application, playback_settings, gated_opener) -> PlaybackController:
    instance = PlaybackController(playback_settings, buffer_factory=buffer_factory_with(gated_opener))
    yield instance
    instance.close()
