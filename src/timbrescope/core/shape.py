"""
Spectral shape descriptors.

Pure functions of a :class:`Spectrum`, except spectral flux which needs the
previous frame and is tracked by :class:`SpectralFluxTracker`. The DC bin
is excluded throughout. Every function returns None when the spectrum
carries no energy for it to describe.
"""

from typing import Optional, Tuple

import numpy as np
from scipy import stats

from timbrescope.core.spectrum import FLOOR_AMPLITUDE, Spectrum


def _weighted(spectrum: Spectrum) -> Tuple[np.ndarray, np.ndarray]:
    return spectrum.frequencies[1:], spectrum.magnitudes[1:]


def spectral_centroid(spectrum: Spectrum) -> Optional[float]:
    """Magnitude-weighted mean frequency (Hz)."""
    freqs, mag = _weighted(spectrum)
    total = mag.sum()
    if total <= 0:
        return None
    return float(np.dot(freqs, mag) / total)


def spectral_spread(spectrum: Spectrum, centroid: Optional[float] = None) -> Optional[float]:
    """Magnitude-weighted standard deviation around the centroid (Hz)."""
    if centroid is None:
        centroid = spectral_centroid(spectrum)
        if centroid is None:
            return None
    freqs, mag = _weighted(spectrum)
    total = mag.sum()
    if total <= 0:
        return None
    return float(np.sqrt(np.dot((freqs - centroid) ** 2, mag) / total))


def spectral_slope(
    spectrum: Spectrum,
    band: Tuple[float, float] = (100.0, 10000.0),
) -> Optional[float]:
    """Least-squares slope of dB level against frequency (dB/Hz) within ``band``."""
    freqs = spectrum.frequencies
    mask = (freqs >= band[0]) & (freqs <= band[1])
    mask[0] = False
    if mask.sum() < 2:
        return None
    fit = stats.linregress(freqs[mask], spectrum.db[mask])
    return float(fit.slope)


def spectral_flatness(spectrum: Spectrum) -> Optional[float]:
    """Geometric over arithmetic mean of linear magnitude, capped at 1."""
    mag = np.maximum(spectrum.magnitudes[1:], FLOOR_AMPLITUDE)
    if len(mag) == 0:
        return None
    arith = mag.mean()
    return float(min(1.0, stats.gmean(mag) / arith))


def spectral_rolloff(spectrum: Spectrum, fraction: float = 0.85) -> Optional[float]:
    """
    Frequency of the lowest bin below which ``fraction`` of the energy lies.

    Falls back to Nyquist when rounding keeps the cumulative sum short of
    the target.
    """
    power = spectrum.power[1:]
    total = power.sum()
    if total <= 0:
        return None
    cumulative = np.cumsum(power)
    hits = np.flatnonzero(cumulative >= fraction * total)
    if len(hits) == 0:
        return spectrum.nyquist
    return float(spectrum.frequencies[hits[0] + 1])


class SpectralFluxTracker:
    """
    RMS difference in dB between consecutive spectra.

    The first call after construction or :meth:`reset` returns 0 and only
    stores the spectrum.
    """

    def __init__(self):
        self._previous: Optional[np.ndarray] = None

    def reset(self) -> None:
        self._previous = None

    def update(self, spectrum: Spectrum) -> float:
        current = np.array(spectrum.db, dtype=np.float64)
        previous = self._previous
        self._previous = current
        if previous is None or len(previous) != len(current):
            return 0.0
        return float(np.sqrt(np.mean((current - previous) ** 2)))
