"""Core playback logic: frame store, dark mask, streaming buffer, controller."""

from .frame_store import Recording, open_recording, read_mask
from .dark_mask import DarkMask, apply_dark_mask
from .streaming_buffer import StreamingBuffer
from .playback_controller import PlaybackController
from .settings_manager import SettingsManager, PlaybackSettings

__all__ = [
    "Recording",
    "open_recording",
    "read_mask",
    "DarkMask",
    "apply_dark_mask",
    "StreamingBuffer",
    "PlaybackController",
    "SettingsManager",
    "PlaybackSettings"
]
