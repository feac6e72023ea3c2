"""Dark-frame subtraction."""

from dataclasses import dataclass
import logging

import numpy as np

from ..models.recording import FrameGeometry, MAX_SAMPLE_VALUE
from .exceptions import NoMaskError


@dataclass(frozen=True, eq=False)
class DarkMask:
    """Read-only per-pixel dark reference, shaped like a frame."""

    values: np.ndarray
    source: str = ""

    @classmethod
    def from_array(cls, values: np.ndarray, geometry: FrameGeometry, source: str = "") -> 'DarkMask':
        """Validate size against ``geometry`` and freeze a frame-shaped copy."""
        values = np.asarray(values, dtype=np.float32)
        if values.size != geometry.pixel_count:
            raise NoMaskError(
                source or None,
                f"mask has {values.size} elements, frame has {geometry.pixel_count} pixels"
            )

        frozen = values.reshape(geometry.shape).copy()
        frozen[~np.isfinite(frozen)] = 0.0
        frozen.setflags(write=False)
        logging.info(f"Dark mask loaded ({values.size} elements, mean {float(frozen.mean()):.2f})")
        return cls(frozen, source)

    @property
    def shape(self):
        return self.values.shape


def apply_dark_mask(frame: np.ndarray, mask: DarkMask) -> np.ndarray:
    """
    Subtract ``mask`` from ``frame`` and clamp to the sample range.

    Args:
        frame: Raw uint16 frame
        mask: Dark mask with the same shape as the frame

    Returns:
        New uint16 array; ``frame`` is left untouched
    """
    if frame.shape != mask.shape:
        raise NoMaskError(mask.source or None,
                          f"mask shape {mask.shape} does not match frame shape {frame.shape}")

    corrected = frame.astype(np.float32) - mask.values
    np.clip(corrected, 0, MAX_SAMPLE_VALUE, out=corrected)
    return corrected.astype(np.uint16)
