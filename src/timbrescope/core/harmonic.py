"""
Harmonic structure descriptors.

All descriptors take the frame's :class:`PartialSet` (None when the frame
is unvoiced) and return None whenever their own precondition fails.
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from scipy import stats

from timbrescope.core.partials import PartialSet, search_radius
from timbrescope.core.spectrum import Spectrum


@dataclass(frozen=True)
class Tristimulus:
    """Share of partial amplitude in the fundamental, partials 2-4 and 5+."""

    t1: float
    t2: float
    t3: float


@dataclass(frozen=True)
class HarmonicEnergy:
    """Spectral energy split into harmonic windows and the remainder."""

    harmonic: float
    total: float

    @property
    def noise(self) -> float:
        return self.total - self.harmonic


def tristimulus(partials: Optional[PartialSet]) -> Optional[Tristimulus]:
    if partials is None:
        return None
    amps = partials.as_array()
    total = amps.sum()
    if total <= 0:
        return None
    return Tristimulus(
        t1=float(amps[0] / total),
        t2=float(amps[1:4].sum() / total),
        t3=float(amps[4:].sum() / total),
    )


def odd_even_ratio(partials: Optional[PartialSet]) -> Optional[float]:
    """sqrt of odd-harmonic power over even-harmonic power (needs 3+ partials)."""
    if partials is None or len(partials) < 3:
        return None
    power = partials.as_array() ** 2
    odd = power[0::2].sum()    # harmonics 1, 3, 5, ...
    even = power[1::2].sum()
    if even <= 0:
        return None
    return float(np.sqrt(odd / even))


def harmonic_energy(partials: PartialSet, spectrum: Spectrum) -> HarmonicEnergy:
    """
    Sum spectral power inside narrow windows around each partial.

    Windows are a quarter of the fundamental's width in bins (at least one
    bin) so adjacent harmonics never overlap.
    """
    power = spectrum.power
    last_bin = spectrum.n_bins - 1
    radius = search_radius(partials.f0, spectrum.bin_width, 4.0, 1)

    in_window = np.zeros(spectrum.n_bins, dtype=bool)
    for centre in partials.bins:
        lo = max(1, centre - radius)
        hi = min(last_bin, centre + radius)
        in_window[lo:hi + 1] = True
    in_window[0] = False

    return HarmonicEnergy(
        harmonic=float(power[in_window].sum()),
        total=float(power[1:].sum()),
    )


def harmonic_to_noise_ratio(
    energy: Optional[HarmonicEnergy],
    ceiling_db: float = 40.0,
) -> Optional[float]:
    """10*log10(harmonic / noise) in dB; ``ceiling_db`` when there is no noise."""
    if energy is None:
        return None
    if energy.noise <= 0:
        return ceiling_db
    if energy.harmonic <= 0:
        return None
    return float(10.0 * np.log10(energy.harmonic / energy.noise))


def aperiodicity(energy: Optional[HarmonicEnergy]) -> Optional[float]:
    """Fraction of spectral energy outside the harmonic windows."""
    if energy is None or energy.total <= 0:
        return None
    return float(np.clip(energy.noise / energy.total, 0.0, 1.0))


def harmonic_slope(partials: Optional[PartialSet]) -> Optional[float]:
    """Regression slope of partial level (dB) against harmonic number."""
    if partials is None:
        return None
    amps = partials.as_array()
    index = np.arange(1, len(amps) + 1)
    keep = amps > 0
    if keep.sum() < 2:
        return None
    fit = stats.linregress(index[keep], 20.0 * np.log10(amps[keep]))
    return float(fit.slope)


def spectral_irregularity(partials: Optional[PartialSet]) -> Optional[float]:
    """Sum of amplitude jumps between neighbouring partials over total amplitude."""
    if partials is None:
        return None
    amps = partials.as_array()
    total = amps.sum()
    if total <= 0:
        return None
    return float(np.abs(np.diff(amps)).sum() / total)


def partial_levels(partials: Optional[PartialSet], count: int = 8) -> List[Optional[float]]:
    """dB level of harmonics 1..count; None where missing or silent."""
    levels: List[Optional[float]] = [None] * count
    if partials is None:
        return levels
    for i, amp in enumerate(partials.magnitudes[:count]):
        if amp > 0:
            levels[i] = float(20.0 * np.log10(amp))
    return levels
