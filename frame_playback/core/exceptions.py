"""Custom exception hierarchy for frame playback."""

from typing import List, Optional

from ..models.status import Status


class PlaybackError(Exception):
    """Base exception for all frame playback errors."""

    status = Status.READ_FAIL

    def __init__(self, message: str, details: Optional[str] = None, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            result += f"\nDetails: {self.details}"
        if self.cause:
            result += f"\nCaused by: {self.cause}"
        return result


# Recording errors
class RecordingError(PlaybackError):
    """Base class for recording file errors."""
    pass


class NoFileError(RecordingError):
    """Recording path does not exist or cannot be opened."""

    status = Status.NO_FILE

    def __init__(self, file_path: str, cause: Optional[Exception] = None):
        super().__init__(
            f"File not found: {file_path}",
            "Check that the recording path exists",
            cause
        )
        self.file_path = file_path


class NoDataError(RecordingError):
    """File is empty or not a whole number of frames."""

    status = Status.NO_DATA

    def __init__(self, file_path: str, file_size: int, stride: int):
        super().__init__(
            f"No complete frames in: {file_path}",
            f"File size: {file_size} bytes, frame stride: {stride} bytes"
        )
        self.file_path = file_path
        self.file_size = file_size
        self.stride = stride


class InvalidGeometryError(RecordingError):
    """Frame geometry cannot describe any frame."""

    status = Status.NO_DATA

    def __init__(self, geometry_errors: List[str]):
        super().__init__(
            "Invalid frame geometry",
            f"Errors: {'; '.join(geometry_errors)}"
        )
        self.geometry_errors = geometry_errors


class ReadFailError(RecordingError):
    """Seek or read failed on an open recording."""

    status = Status.READ_FAIL

    def __init__(self, file_path: str, frame_index: Optional[int] = None, cause: Optional[Exception] = None):
        details = f"Frame index: {frame_index}" if frame_index is not None else None
        super().__init__(
            f"Failed to read from: {file_path}",
            details,
            cause
        )
        self.file_path = file_path
        self.frame_index = frame_index


class NoLoadError(RecordingError):
    """Frame operation attempted when no recording is open."""

    status = Status.NO_LOAD

    def __init__(self, operation: str):
        super().__init__(
            f"Cannot perform '{operation}': no recording loaded",
            "Load a recording before attempting this operation"
        )
        self.operation = operation


# Mask errors
class NoMaskError(PlaybackError):
    """Dark mask region is unreadable or absent."""

    status = Status.NO_MASK

    def __init__(self, file_path: Optional[str], reason: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Failed to load dark mask: {file_path}",
            f"Reason: {reason}",
            cause
        )
        self.file_path = file_path
        self.reason = reason


def status_of(exc: BaseException) -> Status:
    """Map any exception to the status vocabulary."""
    if isinstance(exc, PlaybackError):
        return exc.status
    return Status.READ_FAIL
