"""Status codes reported by the playback subsystem."""

from enum import Enum


class Status(Enum):
    """Outcome of a load, mask or frame operation."""

    SUCCESS = "success"
    NO_LOAD = "no_load"
    NO_DATA = "no_data"
    NO_FILE = "no_file"
    READ_FAIL = "read_fail"
    NO_MASK = "no_mask"

    @property
    def is_success(self) -> bool:
        return self is Status.SUCCESS

    @property
    def message(self) -> str:
        """User-facing status label text."""
        return STATUS_MESSAGES[self]


STATUS_MESSAGES = {
    Status.SUCCESS: "Finished loading file.",
    Status.NO_LOAD: "Error: No file loaded. Load a recording before playback.",
    Status.NO_DATA: "Error: File contains no complete frames for this geometry.",
    Status.NO_FILE: "Error: File does not exist or could not be opened.",
    Status.READ_FAIL: "Error: Failed to read frame data from file.",
    Status.NO_MASK: "Error: Dark mask could not be read from file.",
}
