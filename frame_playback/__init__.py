"""
Frame Playback - just-in-time playback of raw camera recordings

Streams fixed-size uint16 frames from disk one at a time, with optional
dark-frame subtraction, behind a play/pause/seek transport.
"""

__version__ = "1.0.0"

from .core.streaming_buffer import StreamingBuffer
from .core.playback_controller import PlaybackController
from .core.settings_manager import SettingsManager
from .models.status import Status

__all__ = [
    "StreamingBuffer",
    "PlaybackController",
    "SettingsManager",
    "Status"
]
