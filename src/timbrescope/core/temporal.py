"""
Cross-frame state: onset detection and rolling stability windows.

Both classes assume frames arrive in timestamp order within one session
and must be reset at every session boundary.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import numpy as np

logger = logging.getLogger(__name__)


class OnsetState(Enum):
    SILENT = "silent"
    RISING = "rising"
    SUSTAIN = "sustain"


@dataclass(frozen=True)
class OnsetEvent:
    """A completed attack: when the rise started and how long it took."""

    time: float        # seconds, start of the rise
    rise_time: float   # seconds from rise start to reaching the sound threshold


class OnsetDetector:
    """
    Three-state level tracker: silent -> rising -> sustain.

    Args:
        silence_db: Level separating silence from a starting note.
        sound_db: Level at which the note counts as established.
    """

    def __init__(self, silence_db: float = -50.0, sound_db: float = -35.0):
        self.silence_db = silence_db
        self.sound_db = sound_db
        self.reset()

    def reset(self) -> None:
        self.state = OnsetState.SILENT
        self._rise_start: Optional[float] = None
        self._events: List[OnsetEvent] = []

    @property
    def events(self) -> List[OnsetEvent]:
        """Onset log for the session, oldest first (a copy)."""
        return list(self._events)

    @property
    def last_onset(self) -> Optional[OnsetEvent]:
        return self._events[-1] if self._events else None

    def update(self, level_db: float, now: float) -> Optional[OnsetEvent]:
        """
        Feed one frame's RMS level.

        A level at or below ``silence_db`` counts as silence; a note starts
        only once the level exceeds it.

        Returns:
            The OnsetEvent completed by this frame, if any.
        """
        if level_db <= self.silence_db:
            self.state = OnsetState.SILENT
            self._rise_start = None
            return None

        if self.state is OnsetState.SILENT:
            self.state = OnsetState.RISING
            self._rise_start = now

        if self.state is OnsetState.RISING and level_db >= self.sound_db:
            event = OnsetEvent(time=self._rise_start, rise_time=now - self._rise_start)
            self._events.append(event)
            self.state = OnsetState.SUSTAIN
            logger.debug("onset at %.3fs (rise %.1f ms)", event.time, event.rise_time * 1000)
            return event
        return None

    def time_since_onset(self, now: float) -> Optional[float]:
        last = self.last_onset
        if last is None:
            return None
        return now - last.time


class RollingWindow:
    """Fixed-capacity FIFO of recent values with population statistics."""

    def __init__(self, capacity: int = 30):
        self._values: deque = deque(maxlen=self._check(capacity))

    @staticmethod
    def _check(capacity: int) -> int:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        return int(capacity)

    @property
    def capacity(self) -> int:
        return self._values.maxlen

    def __len__(self) -> int:
        return len(self._values)

    def resize(self, capacity: int) -> None:
        """Change capacity, keeping the most recent values."""
        self._values = deque(self._values, maxlen=self._check(capacity))

    def push(self, value: Optional[float]) -> None:
        if value is None:
            return
        self._values.append(float(value))

    def reset(self) -> None:
        self._values.clear()

    def mean(self) -> float:
        if not self._values:
            return 0.0
        return float(np.mean(self._values))

    def std(self) -> float:
        if len(self._values) < 2:
            return 0.0
        return float(np.std(self._values))


def pitch_stability_cents(window: RollingWindow, current_f0: Optional[float]) -> Optional[float]:
    """Rolling pitch deviation expressed in cents above the window mean."""
    mean = window.mean()
    if current_f0 is None or mean <= 0:
        return None
    return float(1200.0 * np.log2((mean + window.std()) / mean))
