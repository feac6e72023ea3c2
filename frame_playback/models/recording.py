"""Recording geometry and metadata models."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import os
from datetime import datetime

# Raw recordings are headerless little-endian uint16 samples
DEFAULT_PIXEL_SIZE = 2
MAX_SAMPLE_VALUE = (1 << 16) - 1


@dataclass(frozen=True)
class FrameGeometry:
    """Fixed frame dimensions supplied by configuration."""

    height: int
    width: int
    pixel_size: int = DEFAULT_PIXEL_SIZE

    def validate(self) -> List[str]:
        """Validate geometry and return a list of problems."""
        errors = []

        if self.height <= 0:
            errors.append("Frame height must be positive")
        if self.width <= 0:
            errors.append("Frame width must be positive")
        if self.pixel_size <= 0:
            errors.append("Pixel size must be positive")

        return errors

    @property
    def pixel_count(self) -> int:
        return self.height * self.width

    @property
    def stride(self) -> int:
        """Byte size of one frame record."""
        return self.height * self.width * self.pixel_size

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)


@dataclass(frozen=True)
class RecordingInfo:
    """Immutable description of an opened recording."""

    file_path: str
    geometry: FrameGeometry
    file_size: int
    frame_count: int
    modification_date: Optional[datetime] = field(default=None, compare=False)

    @classmethod
    def from_file(cls, file_path: str, geometry: FrameGeometry) -> 'RecordingInfo':
        """Build info from the file's size on disk."""
        stat = os.stat(file_path)

        return cls(
            file_path=file_path,
            geometry=geometry,
            file_size=stat.st_size,
            frame_count=stat.st_size // geometry.stride,
            modification_date=datetime.fromtimestamp(stat.st_mtime),
        )

    @property
    def filename(self) -> str:
        return os.path.basename(self.file_path)

    @property
    def last_index(self) -> int:
        return max(0, self.frame_count - 1)

    def get_file_size_string(self) -> str:
        """Get formatted file size string."""
        size_mb = self.file_size / (1024 * 1024)
        if size_mb < 1:
            return f"{size_mb * 1024:.1f} KB"
        elif size_mb < 1024:
            return f"{size_mb:.1f} MB"
        else:
            return f"{size_mb / 1024:.1f} GB"

    def __repr__(self) -> str:
        return (f"RecordingInfo('{self.filename}', "
                f"{self.geometry.height}x{self.geometry.width}, "
                f"{self.frame_count} frames)")
