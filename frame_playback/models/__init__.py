"""Data models for frame playback."""

from .status import Status, STATUS_MESSAGES
from .recording import FrameGeometry, RecordingInfo, MAX_SAMPLE_VALUE
from .transport import Direction, RunState, TransportState, DisplayScale
from .events import BufferEvent, EventKind

__all__ = [
    "Status",
    "STATUS_MESSAGES",
    "FrameGeometry",
    "RecordingInfo",
    "MAX_SAMPLE_VALUE",
    "Direction",
    "RunState",
    "TransportState",
    "DisplayScale",
    "BufferEvent",
    "EventKind"
]
