"""Harmonic partial extraction."""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from timbrescope.core.spectrum import Spectrum


@dataclass(frozen=True)
class PartialSet:
    """
    Peak magnitudes of harmonics 1..n (linear scale), in harmonic order.

    Built only from a voiced frame; carries the f0 it was built from so
    that downstream descriptors can locate each partial in the spectrum.
    """

    f0: float
    magnitudes: Tuple[float, ...]
    bins: Tuple[int, ...]   # centre bin of each harmonic's search window

    def __len__(self) -> int:
        return len(self.magnitudes)

    def as_array(self) -> np.ndarray:
        return np.asarray(self.magnitudes, dtype=np.float64)

    @property
    def total(self) -> float:
        return float(sum(self.magnitudes))


def search_radius(f0: float, bin_width: float, divisor: float, minimum: int) -> int:
    """Half-width (bins) of the window searched around each harmonic."""
    return max(minimum, int(math.ceil(f0 / bin_width / divisor)))


def extract_partials(
    f0: Optional[float],
    spectrum: Spectrum,
    max_harmonics: int = 20,
) -> Optional[PartialSet]:
    """
    Locate the spectral peak of each harmonic of ``f0``.

    Harmonic ``h`` is searched in a window of +/- half the fundamental's
    width in bins (at least 2 bins) around ``h * f0``, which tolerates
    slight inharmonicity and mistuning. Extraction stops at Nyquist.

    Returns:
        A PartialSet, or None if ``f0`` is None or fewer than two partials
        fall below Nyquist.
    """
    if f0 is None or f0 <= 0:
        return None

    mag = spectrum.magnitudes
    last_bin = spectrum.n_bins - 1
    radius = search_radius(f0, spectrum.bin_width, 2.0, 2)

    peaks = []
    centres = []
    for h in range(1, max_harmonics + 1):
        target = h * f0
        if target >= spectrum.nyquist:
            break
        centre = spectrum.freq_to_bin(target)
        lo = max(0, centre - radius)
        hi = min(last_bin, centre + radius)
        peaks.append(float(mag[lo:hi + 1].max()))
        centres.append(centre)

    if len(peaks) < 2:
        return None
    return PartialSet(f0=float(f0), magnitudes=tuple(peaks), bins=tuple(centres))
