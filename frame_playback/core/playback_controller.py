"""Transport state machine driving the streaming buffer from a Qt timer."""

from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np
from PyQt5 import QtCore

from ..models.events import BufferEvent, EventKind
from ..models.recording import FrameGeometry, RecordingInfo
from ..models.status import Status
from ..models.transport import Direction, DisplayScale, RunState, TransportState
from .settings_manager import PlaybackSettings
from .streaming_buffer import StreamingBuffer

BufferFactory = Callable[..., StreamingBuffer]


class PlaybackController(QtCore.QObject):
    """Translate play/pause/step/seek intent into buffer requests.

    The controller never blocks. It posts requests to the buffer and reacts to
    the events the worker publishes, either on each timer tick or when the
    worker wakes the Qt event loop.
    """

    frame_ready = QtCore.pyqtSignal(int)
    status_changed = QtCore.pyqtSignal(str)
    load_finished = QtCore.pyqtSignal(object)
    mask_loaded = QtCore.pyqtSignal(object)
    playback_state_changed = QtCore.pyqtSignal(bool)
    display_scale_changed = QtCore.pyqtSignal(float, float)

    # Emitted from the worker thread, delivered on the controller's thread
    _buffer_event = QtCore.pyqtSignal()

    def __init__(self, settings: Optional[PlaybackSettings] = None,
                 buffer_factory: BufferFactory = StreamingBuffer,
                 parent: Optional[QtCore.QObject] = None):
        super().__init__(parent)
        self.settings = settings or PlaybackSettings()
        self._buffer_factory = buffer_factory

        self.buffer: Optional[StreamingBuffer] = None
        self.info: Optional[RecordingInfo] = None
        self.transport = TransportState()
        self.display_scale = DisplayScale()

        self.current_index = 0
        self.last_rendered_index = -1
        self.last_status = Status.NO_LOAD
        self.status_text = ""

        self._awaiting: Optional[int] = None
        self._awaiting_id = -1
        self._frame: Optional[np.ndarray] = None
        self._use_mask = False

        self.render_timer = QtCore.QTimer(self)
        self.render_timer.setInterval(self.settings.tick_interval_ms)
        self.render_timer.timeout.connect(self.tick)

        self._buffer_event.connect(self.process_events, QtCore.Qt.QueuedConnection)

    # Properties

    @property
    def is_loaded(self) -> bool:
        return self.buffer is not None and self.info is not None

    @property
    def is_playing(self) -> bool:
        return self.transport.is_playing

    @property
    def frame_count(self) -> int:
        return self.info.frame_count if self.info else 0

    @property
    def current_frame(self) -> Optional[np.ndarray]:
        """Most recently published frame, owned by the controller."""
        return self._frame

    @property
    def floor(self) -> float:
        return self.display_scale.floor

    @property
    def ceiling(self) -> float:
        return self.display_scale.ceiling

    @property
    def use_mask(self) -> bool:
        return self._use_mask

    @property
    def pending_index(self) -> Optional[int]:
        """Index of the outstanding fetch, if any."""
        return self._awaiting

    @property
    def target_index(self) -> int:
        """Frame the display is heading to: the outstanding fetch, else the shown one."""
        return self._awaiting if self._awaiting is not None else self.current_index

    @property
    def is_sequential(self) -> bool:
        """Whether the last displayed frame followed on from the one before."""
        return self.current_index - self.last_rendered_index == self.transport.step

    # Loading

    def load_file(self, file_path: str, geometry: Optional[FrameGeometry] = None) -> None:
        """Tear down any open recording and start loading ``file_path``."""
        self._teardown_buffer()
        self._reset_state()

        geometry = geometry or self.settings.geometry
        logging.info(f"Loading recording {file_path} as {geometry.height}x{geometry.width}")
        self._set_status("Loading file...")

        self.buffer = self._buffer_factory(file_path, geometry, on_event=self._on_buffer_event)
        self.buffer.start()

    def load_mask(self, file_path: str, element_count: int, byte_offset: int = 0) -> bool:
        """Queue a dark mask load on the worker."""
        if self.buffer is None:
            self._report(Status.NO_LOAD)
            return False

        self._set_status("Loading dark mask...")
        self.buffer.load_mask(file_path, element_count, byte_offset)
        return True

    def set_use_mask(self, enabled: bool) -> bool:
        """Turn dark subtraction on or off for subsequent frames."""
        enabled = bool(enabled)
        if enabled and (self.buffer is None or not self.buffer.has_mask):
            self._use_mask = False
            self._report(Status.NO_MASK)
            return False

        if enabled == self._use_mask:
            return True

        self._use_mask = enabled
        if self.buffer is not None:
            self.buffer.set_mask_enabled(enabled)
        logging.info(f"Dark subtraction {'enabled' if enabled else 'disabled'}")

        if self.is_loaded and not self.is_playing:
            self._request(self.target_index)
        return True

    def close(self) -> None:
        """Stop the timer and release the recording.

        The worker is given ``settings.stop_timeout_s`` to finish. If it is
        still inside a read after that, the buffer is dropped anyway and the
        worker closes the recording itself once the read returns.
        """
        self._set_running(RunState.PAUSED)
        self._teardown_buffer()
        self.info = None
        self.transport.reset()
        self._awaiting = None

    # Transport

    def play(self) -> None:
        if not self.is_loaded:
            self._report(Status.NO_LOAD)
            return
        self._set_running(RunState.PLAYING)

    def pause(self) -> None:
        self._set_running(RunState.PAUSED)

    def play_pause(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def set_direction(self, direction: Direction) -> None:
        self.transport.direction = direction

    def set_interval(self, interval: int) -> int:
        """Set frames skipped per tick; capped at the configured maximum."""
        if interval < 1:
            raise ValueError(f"Interval must be at least 1, got {interval}")
        self.transport.interval = min(int(interval), self.settings.max_interval)
        return self.transport.interval

    def step(self, direction: Direction) -> Optional[int]:
        """Pause and move one frame in ``direction`` from the frame being shown or fetched."""
        self.pause()
        self.transport.direction = direction
        if not self.is_loaded:
            self._report(Status.NO_LOAD)
            return None
        return self.seek(self.target_index + direction.sign)

    def fast_forward(self) -> None:
        self._accelerate(Direction.FORWARD)

    def fast_rewind(self) -> None:
        self._accelerate(Direction.BACKWARD)

    def _accelerate(self, direction: Direction) -> None:
        if self.is_playing and self.transport.direction is direction:
            self.set_interval(self.transport.interval * 2)
        else:
            self.transport.direction = direction
            self.transport.interval = 1
            self.play()
        logging.debug(f"Transport {direction.name.lower()} x{self.transport.interval}")

    def seek(self, index: int) -> Optional[int]:
        """Request frame ``index`` clamped to the recording; returns the clamped index."""
        if not self.is_loaded:
            self._report(Status.NO_LOAD)
            return None

        index = self._clamp(index)
        self._request(index)
        return index

    @QtCore.pyqtSlot()
    def tick(self) -> None:
        """Periodic timer callback: apply finished work, then advance if playing."""
        self.process_events()

        if not self.is_loaded or not self.is_playing:
            return
        if self._awaiting is not None:
            # previous fetch still in flight
            return

        target = self.current_index + self.transport.step
        next_index = self._clamp(target)
        if next_index == self.current_index:
            self.pause()
            return

        self._request(next_index)

        at_end = self.transport.direction is Direction.FORWARD and next_index >= self.info.last_index
        at_start = self.transport.direction is Direction.BACKWARD and next_index <= 0
        if at_end or at_start:
            logging.info(f"Playback reached frame {next_index}, pausing")
            self.pause()

    # Display scale

    def set_floor(self, value: float) -> None:
        self.display_scale.set_floor(value)
        self.display_scale_changed.emit(self.display_scale.floor, self.display_scale.ceiling)

    def set_ceiling(self, value: float) -> None:
        self.display_scale.set_ceiling(value)
        self.display_scale_changed.emit(self.display_scale.floor, self.display_scale.ceiling)

    def rescale_range(self) -> None:
        self.display_scale.reset()
        self.display_scale_changed.emit(self.display_scale.floor, self.display_scale.ceiling)

    # Buffer events

    @QtCore.pyqtSlot()
    def process_events(self) -> int:
        """Apply every event the worker has published; returns how many."""
        if self.buffer is None:
            return 0

        events = self.buffer.poll()
        for event in events:
            if event.kind is EventKind.LOADED:
                self._handle_loaded(event)
            elif event.kind is EventKind.MASK:
                self._handle_mask(event)
            else:
                self._handle_frame(event)

            if self.buffer is None:
                break
        return len(events)

    def _on_buffer_event(self, kind: EventKind) -> None:
        # worker thread: only wake the event loop
        self._buffer_event.emit()

    def _handle_loaded(self, event: BufferEvent) -> None:
        self.last_status = event.status
        if not event.ok:
            self._set_status(event.status.message)
            self.load_finished.emit(event.status)
            self._teardown_buffer()
            return

        self.info = event.info
        logging.info(f"Loaded {self.info}")
        self._set_status(event.status.message)
        self.render_timer.start()
        self.load_finished.emit(event.status)
        self.seek(0)

    def _handle_mask(self, event: BufferEvent) -> None:
        self.last_status = event.status
        if event.ok:
            self._set_status("Dark mask loaded.")
            if not self._use_mask and self.settings.use_dark_mask:
                self.set_use_mask(True)
            elif self._use_mask and not self.is_playing and self.is_loaded:
                self._request(self.target_index)
        else:
            if self.buffer is None or not self.buffer.has_mask:
                self._use_mask = False
                if self.buffer is not None:
                    self.buffer.set_mask_enabled(False)
            self._set_status(event.status.message)
        self.mask_loaded.emit(event.status)

    def _handle_frame(self, event: BufferEvent) -> None:
        if self._awaiting is None or event.request_id != self._awaiting_id:
            logging.debug(f"Discarding stale frame {event.index} (request {event.request_id})")
            return
        self._awaiting = None

        if not event.ok:
            logging.error(f"Frame {event.index} failed with {event.status.name}, pausing playback")
            self._report(event.status)
            self.pause()
            return

        self.last_status = Status.SUCCESS
        self.last_rendered_index = self.current_index
        self.current_index = event.index
        self._frame = event.frame
        self._set_status(f"Frame: {event.index + 1} / {self.frame_count}")
        self.frame_ready.emit(event.index)

    # Helpers

    def _request(self, index: int) -> None:
        self._awaiting = index
        self._awaiting_id = self.buffer.request(index)

    def _clamp(self, index: int) -> int:
        return max(0, min(int(index), self.info.last_index))

    def _set_running(self, running: RunState) -> None:
        if self.transport.running is running:
            return
        self.transport.running = running
        self.playback_state_changed.emit(running is RunState.PLAYING)

    def _report(self, status: Status) -> None:
        self.last_status = status
        self._set_status(status.message)

    def _set_status(self, text: str) -> None:
        if text == self.status_text:
            return
        self.status_text = text
        self.status_changed.emit(text)

    def _reset_state(self) -> None:
        self._set_running(RunState.PAUSED)
        self.info = None
        self.transport.reset()
        self.current_index = 0
        self.last_rendered_index = -1
        self.last_status = Status.NO_LOAD
        self._awaiting = None
        self._awaiting_id = -1
        self._frame = None
        self._use_mask = False

    def _teardown_buffer(self) -> None:
        self.render_timer.stop()
        if self.buffer is None:
            return

        buffer, self.buffer = self.buffer, None
        if not buffer.stop(self.settings.stop_timeout_s):
            # the worker still owns the recording and closes it when its read returns
            logging.error(f"Streaming buffer for {buffer.file_path} still running after stop")
