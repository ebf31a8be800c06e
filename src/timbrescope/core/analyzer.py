"""
Per-frame feature extraction.

:class:`FeatureAnalyzer` owns every piece of session state (previous
spectrum, rolling windows, onset detector) and turns one :class:`Frame`
into one :class:`FeatureVector`:

    Frame
      ├─► RMS level ──► silence gate (returns None below it)
      ├─► SpectralTransform ──► Spectrum
      ├─► PitchEstimator ──► F0Estimate
      ├─► extract_partials ──► PartialSet (shared by all harmonic descriptors)
      ├─► shape / harmonic / band descriptors
      └─► OnsetDetector, RollingWindow updates

Absent descriptors are None in the vector; they are never replaced by 0
or NaN.
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Dict, Iterator, List, Optional

import numpy as np

from timbrescope.config import EngineConfig
from timbrescope.core import bands, harmonic, shape
from timbrescope.core.frame import Frame
from timbrescope.core.partials import extract_partials
from timbrescope.core.pitch import F0Estimate, PitchEstimator
from timbrescope.core.spectrum import FLOOR_DB, SpectralTransform, Spectrum
from timbrescope.core.temporal import (
    OnsetDetector,
    OnsetEvent,
    RollingWindow,
    pitch_stability_cents,
)

logger = logging.getLogger(__name__)


def rms_db(samples: np.ndarray) -> float:
    """RMS level of a time-domain buffer in dBFS (``FLOOR_DB`` for silence)."""
    x = np.asarray(samples, dtype=np.float64)
    if len(x) == 0:
        return FLOOR_DB
    rms = float(np.sqrt(np.mean(x * x)))
    return 20.0 * np.log10(rms) if rms > 0 else FLOOR_DB


# ---------------------------------------------------------------------------
# Output vector
# ---------------------------------------------------------------------------

@dataclass
class FeatureVector:
    """
    Descriptors of one non-silent frame.

    Every metric field is Optional; None means the descriptor is undefined
    for this frame (no pitch, too few partials, zero energy).
    """

    timestamp: float
    sequence: Optional[int] = None

    # Level and pitch
    rms_db: Optional[float] = None
    f0_hz: Optional[float] = None
    f0_confidence: Optional[float] = None

    # Spectral shape
    spectral_centroid: Optional[float] = None
    spectral_spread: Optional[float] = None
    spectral_slope: Optional[float] = None
    spectral_flatness: Optional[float] = None
    spectral_flux: Optional[float] = None
    spectral_rolloff_85: Optional[float] = None
    spectral_rolloff_95: Optional[float] = None

    # Harmonic structure
    t1: Optional[float] = None
    t2: Optional[float] = None
    t3: Optional[float] = None
    odd_even_ratio: Optional[float] = None
    hnr: Optional[float] = None
    harmonic_slope: Optional[float] = None
    aperiodicity: Optional[float] = None
    spectral_irregularity: Optional[float] = None
    partial_1_db: Optional[float] = None
    partial_2_db: Optional[float] = None
    partial_3_db: Optional[float] = None
    partial_4_db: Optional[float] = None
    partial_5_db: Optional[float] = None
    partial_6_db: Optional[float] = None
    partial_7_db: Optional[float] = None
    partial_8_db: Optional[float] = None

    # Bands
    richness: Optional[float] = None
    nasality: Optional[float] = None
    brilliance: Optional[float] = None
    harshness: Optional[float] = None
    low_freq_ratio: Optional[float] = None

    # Temporal
    pitch_stability: Optional[float] = None
    centroid_stability: Optional[float] = None
    time_since_onset: Optional[float] = None

    # Metrics produced by non-default configurations (custom bands, rolloffs)
    extra_metrics: Dict[str, Optional[float]] = field(default_factory=dict)

    METADATA_FIELDS = ("timestamp", "sequence", "extra_metrics")

    @classmethod
    def metric_keys(cls) -> List[str]:
        """Names of all metric fields, in declaration order."""
        return [f.name for f in fields(cls) if f.name not in cls.METADATA_FIELDS]

    def metrics(self) -> Dict[str, Optional[float]]:
        """Mapping of metric key to value (None when absent)."""
        out = {key: getattr(self, key) for key in self.metric_keys()}
        out.update(self.extra_metrics)
        return out

    def to_dict(self) -> dict:
        return asdict(self)

    def __getitem__(self, key: str) -> Optional[float]:
        if key in self.extra_metrics:
            return self.extra_metrics[key]
        if key in self.METADATA_FIELDS or key not in self.metric_keys():
            raise KeyError(key)
        return getattr(self, key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.metrics())

    def present(self) -> Dict[str, float]:
        """Only the metrics that have a value."""
        return {k: v for k, v in self.metrics().items() if v is not None}


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class FeatureAnalyzer:
    """
    Stateful per-frame feature engine for one capture stream.

    Call :meth:`configure` once before processing and :meth:`reset` at the
    start of every capture session. Not thread-safe; one instance serves
    exactly one ordered stream of frames.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        cfg = self.config

        self.sample_rate: Optional[int] = None
        self.hop_size: Optional[int] = None
        self.transform: Optional[SpectralTransform] = None

        self.pitch = PitchEstimator(
            threshold=cfg.yin_threshold,
            fmin=cfg.f0_min_hz,
            fmax=cfg.f0_max_hz,
            out_of_range_scale=cfg.out_of_range_confidence_scale,
        )
        self.flux = shape.SpectralFluxTracker()
        self.onsets = OnsetDetector(cfg.onset_silence_db, cfg.onset_sound_db)
        self.pitch_window = RollingWindow()
        self.centroid_window = RollingWindow()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_configured(self) -> bool:
        return self.transform is not None

    def configure(self, sample_rate: int, hop_size: int) -> None:
        """
        Size the transform and rolling windows for a capture stream.

        Args:
            sample_rate: Sample rate in Hz.
            hop_size: Samples between consecutive frames.

        Raises:
            ValueError: On non-positive rates or hop sizes.
        """
        if int(sample_rate) != sample_rate or sample_rate <= 0:
            raise ValueError(f"sample_rate must be a positive integer, got {sample_rate}")
        if int(hop_size) != hop_size or hop_size <= 0:
            raise ValueError(f"hop_size must be a positive integer, got {hop_size}")

        self.sample_rate = int(sample_rate)
        self.hop_size = int(hop_size)
        self.transform = SpectralTransform(self.config.fft_size, self.sample_rate)

        capacity = self.config.window_capacity(self.sample_rate, self.hop_size)
        self.pitch_window.resize(capacity)
        self.centroid_window.resize(capacity)
        self.reset()

        logger.info(
            "configured: sr=%d hop=%d fft=%d stability window=%d frames",
            self.sample_rate, self.hop_size, self.config.fft_size, capacity,
        )

    def reset(self) -> None:
        """Clear flux memory, rolling windows and onset state."""
        self.flux.reset()
        self.pitch_window.reset()
        self.centroid_window.reset()
        self.onsets.reset()
        logger.debug("session state reset")

    @property
    def onset_events(self) -> List[OnsetEvent]:
        return self.onsets.events

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def _check_frame(self, frame: Frame) -> None:
        if not self.is_configured:
            raise RuntimeError("FeatureAnalyzer.configure() must be called before process()")
        if len(frame) != self.config.fft_size:
            raise ValueError(
                f"frame has {len(frame)} samples, expected {self.config.fft_size}"
            )
        if frame.sample_rate != self.sample_rate:
            raise ValueError(
                f"frame sample rate {frame.sample_rate} != configured {self.sample_rate}"
            )

    def process(self, frame: Frame) -> Optional[FeatureVector]:
        """
        Extract all descriptors from one frame.

        Returns:
            A FeatureVector, or None when the frame is below the silence gate.
        """
        self._check_frame(frame)
        cfg = self.config
        now = frame.timestamp

        level = rms_db(frame.samples)
        if level < cfg.silence_gate_db:
            # Keeps the onset detector able to fall back to silence
            self.onsets.update(level, now)
            return None

        spectrum = self.transform.transform(frame.samples)
        f0 = self.pitch.estimate(frame.samples, self.sample_rate)
        partials = extract_partials(f0.frequency, spectrum, cfg.max_harmonics)

        vector = FeatureVector(
            timestamp=now,
            sequence=frame.sequence,
            rms_db=level,
            f0_hz=f0.frequency,
            f0_confidence=f0.confidence,
        )
        self._shape(vector, spectrum)
        self._harmonic(vector, partials, spectrum)
        self._bands(vector, spectrum)
        self._temporal(vector, level, now, f0)
        return vector

    def _shape(self, vector: FeatureVector, spectrum: Spectrum) -> None:
        cfg = self.config
        centroid = shape.spectral_centroid(spectrum)
        vector.spectral_centroid = centroid
        vector.spectral_spread = (
            shape.spectral_spread(spectrum, centroid) if centroid is not None else None
        )
        vector.spectral_slope = shape.spectral_slope(spectrum, cfg.slope_band_hz)
        vector.spectral_flatness = shape.spectral_flatness(spectrum)
        vector.spectral_flux = self.flux.update(spectrum)

        for p in cfg.rolloff_fractions:
            key = f"spectral_rolloff_{int(round(p * 100))}"
            value = shape.spectral_rolloff(spectrum, p)
            if hasattr(vector, key):
                setattr(vector, key, value)
            else:
                vector.extra_metrics[key] = value

    def _harmonic(self, vector: FeatureVector, partials, spectrum: Spectrum) -> None:
        cfg = self.config
        tri = harmonic.tristimulus(partials)
        if tri is not None:
            vector.t1, vector.t2, vector.t3 = tri.t1, tri.t2, tri.t3
        vector.odd_even_ratio = harmonic.odd_even_ratio(partials)
        vector.harmonic_slope = harmonic.harmonic_slope(partials)
        vector.spectral_irregularity = harmonic.spectral_irregularity(partials)

        energy = harmonic.harmonic_energy(partials, spectrum) if partials is not None else None
        vector.hnr = harmonic.harmonic_to_noise_ratio(energy, cfg.hnr_ceiling_db)
        vector.aperiodicity = harmonic.aperiodicity(energy)

        for i, level in enumerate(harmonic.partial_levels(partials, cfg.n_partial_levels), start=1):
            key = f"partial_{i}_db"
            if hasattr(vector, key):
                setattr(vector, key, level)
            else:
                vector.extra_metrics[key] = level

    def _bands(self, vector: FeatureVector, spectrum: Spectrum) -> None:
        cfg = self.config
        for name, value in bands.band_levels(spectrum, cfg.bands, cfg.band_floor_db).items():
            if name in vector.metric_keys():
                setattr(vector, name, value)
            else:
                vector.extra_metrics[name] = value
        vector.low_freq_ratio = bands.low_frequency_ratio(spectrum, cfg.low_freq_cutoff_hz)

    def _temporal(self, vector: FeatureVector, level: float, now: float, f0: F0Estimate) -> None:
        self.onsets.update(level, now)
        self.pitch_window.push(f0.frequency)
        self.centroid_window.push(vector.spectral_centroid)

        vector.pitch_stability = pitch_stability_cents(self.pitch_window, f0.frequency)
        vector.centroid_stability = (
            self.centroid_window.std() if len(self.centroid_window) else None
        )
        vector.time_since_onset = self.onsets.time_since_onset(now)
