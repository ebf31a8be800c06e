"""Time-domain capture frame."""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class Frame:
    """
    One analysis frame delivered by the capture layer.

    The sample buffer is made read-only on construction; the pipeline only
    borrows it.
    """

    samples: np.ndarray
    sample_rate: int
    timestamp: float                 # seconds
    sequence: Optional[int] = None   # capture-side counter, used for drop detection

    def __post_init__(self):
        samples = np.array(self.samples, dtype=np.float64)
        if samples.ndim != 1:
            raise ValueError(f"Frame samples must be 1-D, got shape {samples.shape}")
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def duration(self) -> float:
        """Frame length in seconds."""
        return len(self.samples) / self.sample_rate
