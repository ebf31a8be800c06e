"""Core per-frame analysis modules."""

from timbrescope.core.analyzer import FeatureAnalyzer, FeatureVector
from timbrescope.core.frame import Frame
from timbrescope.core.pitch import F0Estimate, PitchEstimator
from timbrescope.core.spectrum import SpectralTransform, Spectrum
from timbrescope.core.temporal import OnsetDetector, OnsetEvent, RollingWindow

__all__ = [
    "FeatureAnalyzer",
    "FeatureVector",
    "Frame",
    "F0Estimate",
    "PitchEstimator",
    "SpectralTransform",
    "Spectrum",
    "OnsetDetector",
    "OnsetEvent",
    "RollingWindow",
]
