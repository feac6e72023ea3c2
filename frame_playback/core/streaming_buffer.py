"""Just-in-time frame buffer backed by a single background worker.

Only one decoded frame exists at a time. The worker owns it while decoding and
hands it over inside a ``BufferEvent``; whoever polls the event owns the array.
Requests are coalesced so the worker only ever decodes the newest index.
"""

import logging
import threading
from collections import deque
from typing import Callable, Deque, List, Optional, Tuple

from ..models.events import BufferEvent, EventKind
from ..models.recording import FrameGeometry, RecordingInfo
from ..models.status import Status
from .dark_mask import DarkMask, apply_dark_mask
from .frame_store import Recording, open_recording, read_mask
from .result import Result, safe_call

Opener = Callable[[str, FrameGeometry], Result]
MaskJob = Tuple[str, int, int]


class StreamingBuffer:
    """Services asynchronous "fetch frame N" requests for one recording."""

    def __init__(self, file_path: str, geometry: FrameGeometry,
                 opener: Opener = open_recording,
                 on_event: Optional[Callable[[EventKind], None]] = None,
                 name: str = "frame-buffer"):
        self.file_path = file_path
        self.geometry = geometry
        self.name = name
        self.info: Optional[RecordingInfo] = None
        self.decode_count = 0

        self._opener = opener
        self._on_event = on_event
        self._condition = threading.Condition()
        self._thread: Optional[threading.Thread] = None

        # Worker-owned; opened, read and closed only on the worker thread
        self._recording: Optional[Recording] = None

        # Guarded by _condition
        self._pending_index: Optional[int] = None
        self._pending_id = -1
        self._next_id = 0
        self._pending_mask: Optional[MaskJob] = None
        self._events: Deque[BufferEvent] = deque()
        self._frame_event: Optional[BufferEvent] = None
        self._busy = False
        self._active_index = -1
        self._active_id = -1
        self._stopping = False
        self._mask: Optional[DarkMask] = None
        self._mask_enabled = False

    # Lifecycle

    def start(self) -> None:
        """Spawn the worker, which opens the recording and reports LOADED."""
        if self._thread is not None:
            raise RuntimeError(f"{self.name} already started")

        self._thread = threading.Thread(target=self._run, name=self.name)
        self._thread.start()
        logging.debug(f"{self.name} started for {self.file_path}")

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Shut the worker down and wait for it to release the recording.

        Safe to call at any time and more than once. A decode in flight is
        allowed to finish but its result is discarded.

        Returns:
            True if the worker has terminated
        """
        with self._condition:
            self._stopping = True
            self._pending_index = None
            self._pending_mask = None
            self._condition.notify_all()

        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True

        thread.join(timeout)
        if thread.is_alive():
            logging.warning(f"{self.name} did not stop within {timeout}s")
            return False

        logging.debug(f"{self.name} stopped")
        return True

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_stopped(self) -> bool:
        with self._condition:
            return self._stopping

    def __enter__(self) -> 'StreamingBuffer':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    # Requests from the consumer side, never block on I/O

    def request(self, index: int) -> int:
        """
        Ask for frame ``index``.

        Replaces any request not yet started and supersedes the one being
        decoded, even when it is for the same index.

        Returns:
            Id carried by the FRAME event that answers this request, or -1
            once the buffer has stopped
        """
        with self._condition:
            if self._stopping:
                logging.debug(f"{self.name} ignoring request for frame {index} after stop")
                return -1
            if self._pending_index is not None:
                logging.debug(f"Request for frame {self._pending_index} superseded by {index}")
            self._next_id += 1
            self._pending_index = index
            self._pending_id = self._next_id
            self._condition.notify_all()
            return self._pending_id

    def load_mask(self, file_path: str, element_count: int, byte_offset: int = 0) -> None:
        """Queue a dark mask load; reported as a MASK event."""
        with self._condition:
            if self._stopping:
                return
            self._pending_mask = (file_path, element_count, byte_offset)
            self._condition.notify_all()

    def set_mask_enabled(self, enabled: bool) -> None:
        with self._condition:
            self._mask_enabled = bool(enabled)

    @property
    def mask_enabled(self) -> bool:
        with self._condition:
            return self._mask_enabled

    @property
    def has_mask(self) -> bool:
        with self._condition:
            return self._mask is not None

    @property
    def mask(self) -> Optional[DarkMask]:
        with self._condition:
            return self._mask

    @property
    def is_idle(self) -> bool:
        """True when nothing is queued or being decoded."""
        with self._condition:
            return not self._busy and self._pending_index is None and self._pending_mask is None

    def poll(self) -> List[BufferEvent]:
        """Take every published event without blocking.

        Control events come first, then the frame slot if it is full.
        """
        with self._condition:
            events = list(self._events)
            self._events.clear()
            if self._frame_event is not None:
                events.append(self._frame_event)
                self._frame_event = None
            return events

    def wait_for_event(self, timeout: Optional[float] = None) -> bool:
        """Block until an event is published or the buffer stops."""
        with self._condition:
            return self._condition.wait_for(
                lambda: bool(self._events) or self._frame_event is not None or self._stopping,
                timeout
            ) and (bool(self._events) or self._frame_event is not None)

    # Worker

    def _run(self) -> None:
        try:
            if not self._open():
                return

            while True:
                job = self._next_job()
                if job is None:
                    break

                kind, payload = job
                if kind is EventKind.MASK:
                    event = self._load_mask(*payload)
                else:
                    event = self._decode(*payload)
                self._publish(event)
        except Exception:
            logging.exception(f"{self.name} worker failed")
            with self._condition:
                self._busy = False
            self._publish(BufferEvent.frame_ready(self._active_index, Status.READ_FAIL,
                                                 request_id=self._active_id))
        finally:
            if self._recording is not None:
                self._recording.close()
                self._recording = None

    def _open(self) -> bool:
        result = self._opener(self.file_path, self.geometry)
        if result.is_error():
            logging.error(f"Could not load {self.file_path}: {result.error}")
            self._publish(BufferEvent.loaded(result.status))
            return False

        self._recording = result.unwrap()
        self.info = self._recording.info
        self._publish(BufferEvent.loaded(Status.SUCCESS, self.info))
        return True

    def _next_job(self) -> Optional[Tuple[EventKind, object]]:
        with self._condition:
            while not self._stopping and self._pending_mask is None and self._pending_index is None:
                self._condition.wait()

            if self._stopping:
                return None

            self._busy = True
            if self._pending_mask is not None:
                job = (EventKind.MASK, self._pending_mask)
                self._pending_mask = None
            else:
                job = (EventKind.FRAME, (self._pending_index, self._pending_id))
                self._active_index = self._pending_index
                self._active_id = self._pending_id
                self._pending_index = None
            return job

    def _decode(self, index: int, request_id: int) -> BufferEvent:
        if self._recording is None:
            return BufferEvent.frame_ready(index, Status.NO_LOAD, request_id=request_id)

        with self._condition:
            mask = self._mask if self._mask_enabled else None

        self.decode_count += 1
        result = safe_call(self._recording.read_frame, index)
        if mask is not None:
            result = result.map(lambda frame: apply_dark_mask(frame, mask))

        if result.is_error():
            logging.error(f"Frame {index} failed: {result.error}")
            return BufferEvent.frame_ready(index, result.status, request_id=request_id)

        return BufferEvent.frame_ready(index, Status.SUCCESS, result.unwrap(), request_id)

    def _load_mask(self, file_path: str, element_count: int, byte_offset: int) -> BufferEvent:
        result = read_mask(file_path, element_count, byte_offset).map(
            lambda values: DarkMask.from_array(values, self.geometry, file_path)
        )

        if result.is_error():
            logging.warning(f"Dark mask not loaded: {result.error}")
            return BufferEvent.mask(result.status)

        with self._condition:
            self._mask = result.unwrap()
        return BufferEvent.mask(Status.SUCCESS)

    def _publish(self, event: BufferEvent) -> None:
        with self._condition:
            self._busy = False
            if self._stopping:
                logging.debug(f"{self.name} discarding {event.kind.value} event after stop")
                return

            if event.kind is EventKind.FRAME:
                if self._pending_index is not None:
                    # superseded while decoding
                    logging.debug(f"Dropping frame {event.index}, frame {self._pending_index} is wanted")
                    return
                if self._frame_event is not None:
                    logging.debug(f"Replacing unconsumed frame {self._frame_event.index} with {event.index}")
                self._frame_event = event
            else:
                self._events.append(event)
            self._condition.notify_all()

        callback = self._on_event
        if callback is not None:
            try:
                callback(event.kind)
            except Exception as e:
                logging.error(f"Error in buffer event callback: {e}")
