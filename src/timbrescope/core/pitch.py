"""
Fundamental frequency estimation (YIN).

The estimator computes the cumulative-mean-normalised difference function
(CMNDF) of one frame, takes the first dip below an absolute threshold,
refines it with parabolic interpolation and gates the result to the
instrument's range.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class F0Estimate:
    """
    Pitch estimate for one frame.

    ``frequency`` is None when no pitch was accepted. ``out_of_range`` marks
    a strongly periodic frame whose pitch fell outside the valid range, which
    is different from a frame with no periodicity at all.
    """

    frequency: Optional[float]
    confidence: float
    out_of_range: bool = False

    @property
    def voiced(self) -> bool:
        return self.frequency is not None


def cmndf(samples: np.ndarray) -> np.ndarray:
    """
    Cumulative-mean-normalised difference over lags ``0 .. N/2 - 1``.

    Difference values are direct squared-difference sums over the first
    half of the frame. ``cmndf[0]`` is defined as 1.
    """
    x = np.asarray(samples, dtype=np.float64)
    half = len(x) // 2
    head = x[:half]
    diff = np.empty(half)
    diff[0] = 0.0
    for tau in range(1, half):
        d = head - x[tau:tau + half]
        diff[tau] = np.dot(d, d)

    out = np.ones(half)
    running = np.cumsum(diff[1:])
    lags = np.arange(1, half)
    # A zero running sum means an all-constant frame: no periodic structure
    np.divide(diff[1:] * lags, running, out=out[1:], where=running > 0)
    return out


def parabolic_offset(prev: float, centre: float, nxt: float) -> float:
    """Sub-sample offset of the vertex of the parabola through three points."""
    denom = 2.0 * (2.0 * centre - nxt - prev)
    if denom == 0.0:
        return 0.0
    return (nxt - prev) / denom


class PitchEstimator:
    """
    YIN pitch estimator with confidence scoring.

    Args:
        threshold: Absolute CMNDF threshold for accepting a lag.
        fmin: Lowest accepted frequency (Hz).
        fmax: Highest accepted frequency (Hz).
        out_of_range_scale: Confidence multiplier for a pitch rejected by
            the range gate.
    """

    def __init__(
        self,
        threshold: float = 0.15,
        fmin: float = 180.0,
        fmax: float = 4800.0,
        out_of_range_scale: float = 0.3,
    ):
        self.threshold = threshold
        self.fmin = fmin
        self.fmax = fmax
        self.out_of_range_scale = out_of_range_scale

    def estimate(self, samples: np.ndarray, sample_rate: int) -> F0Estimate:
        """Estimate f0 of one time-domain frame."""
        curve = cmndf(samples)
        half = len(curve)
        if half < 4:
            return F0Estimate(frequency=None, confidence=0.0)

        tau = self._first_dip(curve)
        if tau is None:
            best = float(np.min(curve[2:]))
            return F0Estimate(frequency=None, confidence=max(0.0, 1.0 - best))

        confidence = float(np.clip(1.0 - curve[tau], 0.0, 1.0))
        refined = float(tau)
        if 0 < tau < half - 1:
            refined += parabolic_offset(curve[tau - 1], curve[tau], curve[tau + 1])
        if refined <= 0:
            refined = float(tau)
        frequency = sample_rate / refined

        if not self.fmin <= frequency <= self.fmax:
            return F0Estimate(
                frequency=None,
                confidence=confidence * self.out_of_range_scale,
                out_of_range=True,
            )
        return F0Estimate(frequency=frequency, confidence=confidence)

    def _first_dip(self, curve: np.ndarray) -> Optional[int]:
        """Index of the local minimum following the first sub-threshold lag."""
        half = len(curve)
        below = np.flatnonzero(curve[2:] < self.threshold)
        if len(below) == 0:
            return None
        tau = int(below[0]) + 2
        while tau + 1 < half and curve[tau + 1] < curve[tau]:
            tau += 1
        return tau
