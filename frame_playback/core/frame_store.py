"""Random access to headerless fixed-size frame recordings."""

import logging
import os
from typing import BinaryIO, Optional

import numpy as np

from ..models.recording import FrameGeometry, RecordingInfo
from .exceptions import (
    InvalidGeometryError, NoDataError, NoFileError, NoLoadError, NoMaskError,
    PlaybackError, ReadFailError
)
from .result import Result, safe_call

# Samples and mask values are stored little-endian
FRAME_DTYPE = np.dtype('<u2')
MASK_DTYPE = np.dtype('<f4')


class Recording:
    """An open recording file.

    Not thread-safe; a Recording is used by exactly one worker thread.
    """

    def __init__(self, file_path: str, geometry: FrameGeometry):
        geometry_errors = geometry.validate()
        if geometry_errors:
            raise InvalidGeometryError(geometry_errors)
        if geometry.pixel_size != FRAME_DTYPE.itemsize:
            raise InvalidGeometryError(
                [f"Pixel size {geometry.pixel_size} is not supported, expected {FRAME_DTYPE.itemsize}"]
            )

        if not file_path or not os.path.isfile(file_path):
            raise NoFileError(file_path)

        try:
            self.info = RecordingInfo.from_file(file_path, geometry)
        except OSError as e:
            raise ReadFailError(file_path, cause=e) from e

        if self.info.file_size == 0 or self.info.file_size % geometry.stride != 0:
            raise NoDataError(file_path, self.info.file_size, geometry.stride)

        try:
            self._fp: Optional[BinaryIO] = open(file_path, 'rb')
        except FileNotFoundError as e:
            raise NoFileError(file_path, cause=e) from e
        except OSError as e:
            raise ReadFailError(file_path, cause=e) from e

        logging.info(f"Recording opened: {self.info} ({self.info.get_file_size_string()})")

    @property
    def geometry(self) -> FrameGeometry:
        return self.info.geometry

    @property
    def frame_count(self) -> int:
        return self.info.frame_count

    @property
    def is_open(self) -> bool:
        return self._fp is not None

    def read_frame(self, index: int) -> np.ndarray:
        """Read frame ``index`` into a new (height, width) uint16 array."""
        if self._fp is None:
            raise NoLoadError("read_frame")

        stride = self.geometry.stride
        try:
            self._fp.seek(index * stride)
            data = self._fp.read(stride)
        except (OSError, ValueError) as e:
            raise ReadFailError(self.info.file_path, index, e) from e

        if len(data) != stride:
            raise ReadFailError(self.info.file_path, index,
                                EOFError(f"short read: {len(data)} of {stride} bytes"))

        # frombuffer views immutable bytes; copy into an owned, writable array
        frame = np.frombuffer(data, dtype=FRAME_DTYPE).astype(np.uint16)
        return frame.reshape(self.geometry.shape)

    def close(self):
        """Close the file handle. Safe to call more than once."""
        if self._fp is not None:
            self._fp.close()
            self._fp = None
            logging.debug(f"Recording closed: {self.info.file_path}")

    def __enter__(self) -> 'Recording':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"Recording({self.info!r}, {state})"


def open_recording(file_path: str, geometry: FrameGeometry) -> Result[Recording, PlaybackError]:
    """Open and validate a recording."""
    return safe_call(Recording, file_path, geometry)


def _read_mask_values(file_path: str, element_count: int, byte_offset: int) -> np.ndarray:
    if element_count <= 0:
        raise NoMaskError(file_path, f"element count must be positive, got {element_count}")
    if byte_offset < 0:
        raise NoMaskError(file_path, f"negative byte offset {byte_offset}")
    if not file_path or not os.path.isfile(file_path):
        raise NoMaskError(file_path, "file does not exist")

    n_bytes = element_count * MASK_DTYPE.itemsize
    try:
        file_size = os.path.getsize(file_path)
        if byte_offset + n_bytes > file_size:
            raise NoMaskError(
                file_path,
                f"region {byte_offset}+{n_bytes} bytes exceeds file size {file_size}"
            )
        with open(file_path, 'rb') as f:
            f.seek(byte_offset)
            data = f.read(n_bytes)
    except OSError as e:
        raise NoMaskError(file_path, "read failed", e) from e

    if len(data) != n_bytes:
        raise NoMaskError(file_path, f"short read: {len(data)} of {n_bytes} bytes")

    return np.frombuffer(data, dtype=MASK_DTYPE).astype(np.float32)


def read_mask(file_path: str, element_count: int, byte_offset: int = 0) -> Result[np.ndarray, PlaybackError]:
    """Read ``element_count`` float32 values starting at ``byte_offset``."""
    return safe_call(_read_mask_values, file_path, element_count, byte_offset)
