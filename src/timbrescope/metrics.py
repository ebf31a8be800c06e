"""
Metric registry.

Describes each FeatureVector key for presentation and comparison layers:
human label, unit, category, a typical display range and the playing
adjustment that usually moves the value down ("hint_when_high") or up
("hint_when_low"). Ranges are tuned for violin-family instruments.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

CATEGORIES = {
    "spectrum": "Spectral shape",
    "harmonic": "Harmonic structure",
    "band": "Frequency bands",
    "temporal": "Level, pitch and timing",
}


@dataclass(frozen=True)
class Metric:
    key: str
    label: str
    unit: str
    category: str
    value_range: Tuple[float, float]
    hint_when_high: str = ""
    hint_when_low: str = ""

    @property
    def span(self) -> float:
        lo, hi = self.value_range
        return hi - lo

    def normalize(self, value: float) -> float:
        """Position of ``value`` within the display range, clipped to [0, 1]."""
        if self.span == 0:
            return 0.0
        lo, _ = self.value_range
        return min(1.0, max(0.0, (value - lo) / self.span))


def _partial(n: int) -> Metric:
    return Metric(f"partial_{n}_db", f"Partial {n} level", "dB", "harmonic", (-80.0, 0.0))


METRICS: List[Metric] = [
    # Spectral shape
    Metric("spectral_centroid", "Brightness", "Hz", "spectrum", (500.0, 4000.0),
           "lighter bow pressure / move away from the bridge",
           "more bow pressure / move toward the bridge"),
    Metric("spectral_spread", "Spectral width", "Hz", "spectrum", (200.0, 2000.0),
           "steady the contact point", "vary the contact point"),
    Metric("spectral_slope", "Spectral tilt", "dB/Hz", "spectrum", (-0.01, 0.0),
           "lighter bow pressure", "slightly more bow pressure"),
    Metric("spectral_flatness", "Noisiness", "", "spectrum", (0.0, 0.3),
           "lighter bow pressure"),
    Metric("spectral_flux", "Spectral change", "dB", "spectrum", (0.0, 10.0),
           "steady the bow"),
    Metric("spectral_rolloff_85", "Rolloff 85%", "Hz", "spectrum", (500.0, 8000.0)),
    Metric("spectral_rolloff_95", "Rolloff 95%", "Hz", "spectrum", (1000.0, 12000.0)),
    Metric("spectral_irregularity", "Smoothness", "", "spectrum", (0.0, 0.8),
           "more even bow pressure"),

    # Harmonic structure
    Metric("t1", "Fundamental strength", "", "harmonic", (0.0, 0.6),
           "move away from the bridge", "move toward the bridge"),
    Metric("t2", "Low harmonics", "", "harmonic", (0.0, 0.6),
           "adjust bow speed", "faster bow"),
    Metric("t3", "High harmonics", "", "harmonic", (0.0, 0.5),
           "lighter bow pressure", "slightly more bow pressure"),
    Metric("odd_even_ratio", "Odd/even balance", "", "harmonic", (0.5, 2.0),
           "fine-tune the contact point", "fine-tune the contact point"),
    Metric("hnr", "Clarity", "dB", "harmonic", (0.0, 40.0),
           "", "balance bow pressure and speed"),
    Metric("harmonic_slope", "Harmonic decay", "dB/partial", "harmonic", (-10.0, 0.0),
           "adjust bow pressure", "adjust bow pressure"),
    Metric("aperiodicity", "Aperiodicity", "", "harmonic", (0.0, 0.5),
           "balance bow pressure and speed"),
    *[_partial(n) for n in range(1, 9)],

    # Bands
    Metric("richness", "Richness", "dB", "band", (-20.0, 10.0),
           "", "faster bow / slightly away from the bridge"),
    Metric("nasality", "Nasality", "dB", "band", (-20.0, 10.0),
           "adjust the contact point"),
    Metric("brilliance", "Brilliance", "dB", "band", (-20.0, 10.0),
           "lighter bow pressure", "more bow pressure"),
    Metric("harshness", "Harshness", "dB", "band", (-20.0, 10.0),
           "lighter bow pressure / away from the bridge"),
    Metric("low_freq_ratio", "Low-frequency rumble", "", "band", (0.0, 0.2),
           "check for handling or bow noise"),

    # Level, pitch and timing
    Metric("rms_db", "Level", "dB", "temporal", (-50.0, 0.0),
           "slower bow", "faster bow"),
    Metric("f0_hz", "Pitch", "Hz", "temporal", (196.0, 880.0),
           "lower the pitch", "raise the pitch"),
    Metric("f0_confidence", "Pitch confidence", "", "temporal", (0.0, 1.0)),
    Metric("pitch_stability", "Pitch stability", "cents", "temporal", (0.0, 50.0),
           "steady the left hand"),
    Metric("centroid_stability", "Tone stability", "Hz", "temporal", (0.0, 500.0),
           "keep the bow consistent"),
    Metric("time_since_onset", "Time since onset", "s", "temporal", (0.0, 10.0)),
]

_BY_KEY: Dict[str, Metric] = {m.key: m for m in METRICS}


def get_metric(key: str) -> Metric:
    """Look up a metric by FeatureVector key."""
    try:
        return _BY_KEY[key]
    except KeyError:
        raise KeyError(f"unknown metric {key!r}") from None


def metrics_in_category(category: str) -> List[Metric]:
    if category not in CATEGORIES:
        raise KeyError(f"unknown category {category!r}")
    return [m for m in METRICS if m.category == category]
