"""
Engine configuration.

Every empirically tuned threshold lives here so the engine can be driven
with synthetic signals in tests and retuned for other instruments.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


def _default_bands() -> Dict[str, Tuple[float, float]]:
    # Dünnwald violin quality bands (Hz)
    return {
        "richness": (190.0, 650.0),
        "nasality": (650.0, 1300.0),
        "brilliance": (1300.0, 4200.0),
        "harshness": (4200.0, 6400.0),
    }


def is_power_of_two(n: int) -> bool:
    """True for 1, 2, 4, 8, ..."""
    return n > 0 and (n & (n - 1)) == 0


@dataclass(frozen=True)
class EngineConfig:
    """Tunable parameters of the feature engine."""

    fft_size: int = 4096

    # Levels (dBFS RMS)
    silence_gate_db: float = -55.0   # frames below this yield no features
    onset_silence_db: float = -50.0  # silent <-> rising boundary
    onset_sound_db: float = -35.0    # rising -> sustain boundary

    # Pitch
    yin_threshold: float = 0.15
    f0_min_hz: float = 180.0
    f0_max_hz: float = 4800.0
    out_of_range_confidence_scale: float = 0.3

    # Harmonics
    max_harmonics: int = 20
    n_partial_levels: int = 8
    hnr_ceiling_db: float = 40.0

    # Spectral shape
    slope_band_hz: Tuple[float, float] = (100.0, 10000.0)
    rolloff_fractions: Tuple[float, ...] = (0.85, 0.95)

    # Bands
    bands: Dict[str, Tuple[float, float]] = field(default_factory=_default_bands)
    band_floor_db: float = -60.0
    low_freq_cutoff_hz: float = 100.0

    # Rolling stability window length in seconds
    stability_window_sec: float = 0.5

    def __post_init__(self):
        if not is_power_of_two(self.fft_size) or self.fft_size < 4:
            raise ValueError(
                f"fft_size must be a power of two >= 4, got {self.fft_size}"
            )
        if self.onset_silence_db >= self.onset_sound_db:
            raise ValueError(
                "onset_silence_db must be below onset_sound_db "
                f"({self.onset_silence_db} >= {self.onset_sound_db})"
            )
        if not 0.0 < self.f0_min_hz < self.f0_max_hz:
            raise ValueError(
                f"invalid f0 range ({self.f0_min_hz}, {self.f0_max_hz})"
            )
        if not 0.0 < self.yin_threshold < 1.0:
            raise ValueError(f"yin_threshold must be in (0, 1), got {self.yin_threshold}")
        if self.max_harmonics < 2:
            raise ValueError("max_harmonics must be at least 2")
        low, high = self.slope_band_hz
        if not 0.0 <= low < high:
            raise ValueError(f"invalid slope band {self.slope_band_hz}")
        for p in self.rolloff_fractions:
            if not 0.0 < p <= 1.0:
                raise ValueError(f"rolloff fraction must be in (0, 1], got {p}")
        for name, (lo, hi) in self.bands.items():
            if not 0.0 <= lo < hi:
                raise ValueError(f"band {name!r} has low >= high ({lo}, {hi})")
        if self.stability_window_sec <= 0:
            raise ValueError("stability_window_sec must be positive")

    def window_capacity(self, sample_rate: int, hop_size: int) -> int:
        """Number of frames covering ``stability_window_sec`` at this frame rate."""
        frames = round(self.stability_window_sec * sample_rate / hop_size)
        return max(2, int(frames))
