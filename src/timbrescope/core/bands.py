"""Fixed-band energy descriptors."""

from typing import Dict, Mapping, Optional, Tuple

import numpy as np

from timbrescope.core.spectrum import Spectrum

_EPS = 1e-10


def band_levels(
    spectrum: Spectrum,
    bands: Mapping[str, Tuple[float, float]],
    floor_db: float = -60.0,
) -> Dict[str, float]:
    """
    RMS level of each band relative to the whole-spectrum RMS, in dB.

    Levels are clamped at ``floor_db``, which is also reported for a band
    with no bins or a spectrum with no energy.
    """
    power = spectrum.power
    last_bin = spectrum.n_bins - 1
    total_rms = float(np.sqrt(power[1:].mean())) if spectrum.n_bins > 1 else 0.0

    levels = {}
    for name, (low, high) in bands.items():
        lo = max(1, spectrum.freq_to_bin(low))
        hi = min(last_bin, spectrum.freq_to_bin(high))
        if hi < lo or total_rms <= 0:
            levels[name] = floor_db
            continue
        band_rms = float(np.sqrt(power[lo:hi + 1].mean()))
        levels[name] = max(floor_db, float(20.0 * np.log10(band_rms / total_rms + _EPS)))
    return levels


def low_frequency_ratio(spectrum: Spectrum, cutoff_hz: float = 100.0) -> Optional[float]:
    """Share of spectral energy below ``cutoff_hz`` (DC excluded)."""
    power = spectrum.power[1:]
    total = power.sum()
    if total <= 0:
        return None
    below = spectrum.frequencies[1:] < cutoff_hz
    return float(power[below].sum() / total)
