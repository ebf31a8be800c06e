"""Per-frame timbre analysis for live bowed-string practice."""

from timbrescope.config import EngineConfig
from timbrescope.core.analyzer import FeatureAnalyzer, FeatureVector
from timbrescope.core.frame import Frame
from timbrescope.core.stream import RealtimeAnalyzer
from timbrescope.pipeline import AudioPipeline, SessionResult
from timbrescope.reference import ReferenceProfile

__version__ = "0.1.0"
__all__ = [
    "EngineConfig",
    "FeatureAnalyzer",
    "FeatureVector",
    "Frame",
    "RealtimeAnalyzer",
    "AudioPipeline",
    "SessionResult",
    "ReferenceProfile",
]
