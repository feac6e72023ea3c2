"""Messages published by the streaming buffer worker."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from .recording import RecordingInfo
from .status import Status


class EventKind(Enum):
    LOADED = "loaded"
    MASK = "mask"
    FRAME = "frame"


@dataclass
class BufferEvent:
    """A completed worker job.

    FRAME events own their ``frame`` array; whoever takes the event out of the
    buffer becomes its only holder. ``request_id`` names the request the frame
    answers, so two requests for the same index can be told apart.
    """

    kind: EventKind
    status: Status
    index: int = -1
    frame: Optional[np.ndarray] = None
    info: Optional[RecordingInfo] = None
    request_id: int = -1

    @property
    def ok(self) -> bool:
        return self.status is Status.SUCCESS

    @classmethod
    def loaded(cls, status: Status, info: Optional[RecordingInfo] = None) -> 'BufferEvent':
        return cls(EventKind.LOADED, status, info=info)

    @classmethod
    def mask(cls, status: Status) -> 'BufferEvent':
        return cls(EventKind.MASK, status)

    @classmethod
    def frame_ready(cls, index: int, status: Status,
                    frame: Optional[np.ndarray] = None, request_id: int = -1) -> 'BufferEvent':
        return cls(EventKind.FRAME, status, index=index, frame=frame, request_id=request_id)
