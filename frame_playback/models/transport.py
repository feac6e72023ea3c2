"""Transport and display-scale state for the playback controller."""

from dataclasses import dataclass
from enum import Enum

from .recording import MAX_SAMPLE_VALUE


class Direction(Enum):
    FORWARD = 1
    BACKWARD = -1

    @property
    def sign(self) -> int:
        return self.value


class RunState(Enum):
    PAUSED = "paused"
    PLAYING = "playing"


@dataclass
class TransportState:
    """Direction, run state and frames skipped per tick."""

    direction: Direction = Direction.FORWARD
    running: RunState = RunState.PAUSED
    interval: int = 1

    def __post_init__(self):
        if self.interval < 1:
            raise ValueError("Transport interval must be at least 1")

    @property
    def is_playing(self) -> bool:
        return self.running is RunState.PLAYING

    @property
    def step(self) -> int:
        """Signed frame offset applied on each tick."""
        return self.direction.sign * self.interval

    def reset(self) -> None:
        """Return to forward, paused, interval 1."""
        self.direction = Direction.FORWARD
        self.running = RunState.PAUSED
        self.interval = 1


@dataclass
class DisplayScale:
    """Floor and ceiling used to map raw samples to visible intensity."""

    floor: float = 0.0
    ceiling: float = float(MAX_SAMPLE_VALUE)

    def __post_init__(self):
        self._order()

    def _order(self) -> None:
        if self.floor > self.ceiling:
            self.floor, self.ceiling = self.ceiling, self.floor

    def set_floor(self, value: float) -> None:
        self.floor = float(value)
        self._order()

    def set_ceiling(self, value: float) -> None:
        self.ceiling = float(value)
        self._order()

    def reset(self) -> None:
        self.floor = 0.0
        self.ceiling = float(MAX_SAMPLE_VALUE)
