"""
Offline sessions.

Runs a recorded signal through the same hop-based framing as live capture,
so a file analysed here yields the vectors a live session would have.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import librosa
import numpy as np

from timbrescope.config import EngineConfig
from timbrescope.core.analyzer import FeatureVector
from timbrescope.core.stream import RealtimeAnalyzer
from timbrescope.core.temporal import OnsetEvent
from timbrescope.reference import ReferenceProfile

logger = logging.getLogger(__name__)


@dataclass
class SessionResult:
    """Everything one capture session produced."""

    sample_rate: int
    hop_size: int
    n_frames: int
    vectors: List[FeatureVector] = field(default_factory=list)
    onsets: List[OnsetEvent] = field(default_factory=list)

    @property
    def n_silent(self) -> int:
        return self.n_frames - len(self.vectors)

    @property
    def n_voiced(self) -> int:
        return sum(1 for v in self.vectors if v.f0_hz is not None)

    def series(self, key: str) -> np.ndarray:
        """Per-vector values of one metric, NaN where absent (for plotting)."""
        return np.array(
            [np.nan if v[key] is None else v[key] for v in self.vectors],
            dtype=float,
        )

    def summary(self) -> Dict[str, Tuple[float, float]]:
        """
        Population mean and SD of every metric over the session.

        Absent values are skipped; a metric absent in every vector is left out.
        """
        out: Dict[str, Tuple[float, float]] = {}
        rows = [v.metrics() for v in self.vectors]
        keys: List[str] = []
        for row in rows:
            keys.extend(k for k in row if k not in keys)
        for key in keys:
            values = np.array([row[key] for row in rows if row.get(key) is not None], dtype=float)
            if len(values) == 0:
                continue
            out[key] = (float(values.mean()), float(values.std()))
        return out

    def build_reference(self, min_frames: int = ReferenceProfile.MIN_FRAMES) -> ReferenceProfile:
        return ReferenceProfile.from_vectors(self.vectors, min_frames=min_frames)


class AudioPipeline:
    """
    Analyse complete signals or audio files one session at a time.

    Args:
        hop_size: Samples between frames.
        config: Engine configuration.
        chunk_size: Size of the blocks the signal is fed in, mimicking the
            capture callback.
    """

    def __init__(
        self,
        hop_size: int = 512,
        config: Optional[EngineConfig] = None,
        chunk_size: int = 128,
    ):
        self.hop_size = hop_size
        self.config = config or EngineConfig()
        self.chunk_size = chunk_size
        self._realtime: Optional[RealtimeAnalyzer] = None

    def _stream_for(self, sample_rate: int) -> RealtimeAnalyzer:
        rt = self._realtime
        if rt is None or rt.sample_rate != sample_rate:
            rt = RealtimeAnalyzer(sample_rate, self.hop_size, self.config)
            self._realtime = rt
        else:
            rt.reset()
        return rt

    def process_signal(self, y: np.ndarray, sr: int) -> SessionResult:
        """
        Analyse a mono signal as one fresh session.

        Args:
            y: Audio time series.
            sr: Sample rate.

        Returns:
            SessionResult with one vector per non-silent frame.
        """
        y = np.asarray(y, dtype=np.float64)
        if y.ndim != 1:
            raise ValueError(f"expected a mono signal, got shape {y.shape}")

        rt = self._stream_for(sr)
        n_frames = 0
        vectors: List[FeatureVector] = []
        for start in range(0, len(y), self.chunk_size):
            for result in rt.process_chunk(y[start:start + self.chunk_size]):
                n_frames += 1
                if result is not None:
                    vectors.append(result)

        session = SessionResult(
            sample_rate=sr,
            hop_size=self.hop_size,
            n_frames=n_frames,
            vectors=vectors,
            onsets=rt.onset_events,
        )
        logger.info(
            "session: %d frames, %d with features, %d voiced, %d onsets",
            session.n_frames, len(session.vectors), session.n_voiced, len(session.onsets),
        )
        return session

    def load_audio(
        self,
        audio_path: Union[str, Path],
        sr: Optional[int] = None,
    ) -> tuple:
        """
        Load a file as mono.

        Args:
            audio_path: Path to audio file (wav, flac, mp3, ...).
            sr: Target sample rate. None preserves the file's rate.

        Returns:
            Tuple of (audio_signal, sample_rate).
        """
        y, sr_out = librosa.load(audio_path, sr=sr, mono=True)
        logger.info("loaded %s: %.2fs at %d Hz", audio_path, len(y) / sr_out, sr_out)
        return y, sr_out

    def process_file(self, audio_path: Union[str, Path], sr: Optional[int] = None) -> SessionResult:
        """Load and analyse an audio file in one step."""
        y, sr_out = self.load_audio(audio_path, sr=sr)
        return self.process_signal(y, int(sr_out))
