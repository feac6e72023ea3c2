"""Settings and configuration management for frame playback."""

import json
import os
import logging
from typing import List
from dataclasses import dataclass, asdict, field, fields

from ..models.recording import FrameGeometry, DEFAULT_PIXEL_SIZE

# Constants
DEFAULT_SETTINGS_FILE = "frame_playback_settings.json"
MAX_RECENT_FILES = 10


@dataclass
class PlaybackSettings:
    """Playback settings data structure."""

    # Recording geometry, not stored in the file itself
    frame_height: int = 480
    frame_width: int = 640
    pixel_size: int = DEFAULT_PIXEL_SIZE

    # Transport
    tick_interval_ms: int = 25
    max_interval: int = 64
    stop_timeout_s: float = 5.0

    # Dark mask: subtract automatically once a mask has loaded
    use_dark_mask: bool = True
    mask_byte_offset: int = 0

    # Recent recordings
    recent_files: List[str] = field(default_factory=list)

    @property
    def geometry(self) -> FrameGeometry:
        return FrameGeometry(self.frame_height, self.frame_width, self.pixel_size)


SETTING_NAMES = frozenset(f.name for f in fields(PlaybackSettings))


class SettingsManager:
    """Manages playback settings persisted as JSON."""

    def __init__(self, settings_file: str = DEFAULT_SETTINGS_FILE):
        self.settings_file = settings_file
        self.settings = PlaybackSettings()
        self._load_settings()

    def _load_settings(self):
        """Load settings from file, keeping defaults for anything unusable."""
        try:
            if os.path.exists(self.settings_file):
                with open(self.settings_file, 'r') as f:
                    data = json.load(f)

                if not isinstance(data, dict):
                    raise ValueError(f"expected a JSON object, got {type(data).__name__}")

                for key, value in data.items():
                    if key in SETTING_NAMES:
                        setattr(self.settings, key, value)
                    else:
                        logging.debug(f"Ignoring unknown setting: {key}")

                logging.info(f"Settings loaded from {self.settings_file}")
            else:
                logging.info("No settings file found, using defaults")

        except (OSError, ValueError, TypeError, AttributeError) as e:
            logging.warning(f"Could not load settings from {self.settings_file}: {e}")
            self.settings = PlaybackSettings()

    def save_settings(self):
        """Save current settings to file."""
        try:
            self.settings.recent_files = [
                f for f in self.settings.recent_files
                if os.path.exists(f)
            ]

            with open(self.settings_file, 'w') as f:
                json.dump(asdict(self.settings), f, indent=2)

            logging.info(f"Settings saved to {self.settings_file}")

        except OSError as e:
            logging.warning(f"Could not save settings to {self.settings_file}: {e}")

    def add_recent_file(self, file_path: str):
        """Add a recording to the recent files list."""
        if not file_path or not os.path.exists(file_path):
            return

        if file_path in self.settings.recent_files:
            self.settings.recent_files.remove(file_path)

        self.settings.recent_files.insert(0, file_path)
        self.settings.recent_files = self.settings.recent_files[:MAX_RECENT_FILES]

        self.save_settings()

    def validate_settings(self) -> List[str]:
        """Validate current settings and return list of issues."""
        issues = list(self.settings.geometry.validate())

        if self.settings.pixel_size != DEFAULT_PIXEL_SIZE:
            issues.append(f"Pixel size must be {DEFAULT_PIXEL_SIZE} bytes")

        if self.settings.tick_interval_ms < 1:
            issues.append("Tick interval must be at least 1 ms")

        if self.settings.max_interval < 1:
            issues.append("Max interval must be at least 1")

        if self.settings.stop_timeout_s <= 0:
            issues.append("Stop timeout must be positive")

        if self.settings.mask_byte_offset < 0:
            issues.append("Mask byte offset cannot be negative")

        return issues
