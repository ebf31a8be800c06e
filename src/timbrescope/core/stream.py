"""
Real-time framing for live capture.

Architecture Overview
---------------------
::

    Audio Device (capture layer, not part of this package)
        │
        ▼  (arbitrary-size chunks, e.g. 128 samples)
    RealtimeAnalyzer.process_chunk(chunk)
        │
        ├─► ring buffer of fft_size samples
        │
        ├─► every hop_size samples: time-ordered Frame (timestamp, sequence)
        │
        └─► FeatureAnalyzer.process(frame) ──► FeatureVector | None

Design Goals
------------
* **Bounded latency**: one frame of analysis per hop; no buffering beyond
  the analysis window.
* **Single stream**: process_chunk() is not reentrant. Call it from one
  thread, in capture order.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from timbrescope.config import EngineConfig
from timbrescope.core.analyzer import FeatureAnalyzer, FeatureVector
from timbrescope.core.frame import Frame

logger = logging.getLogger(__name__)


class RealtimeAnalyzer:
    """
    Hop-based framing around a :class:`FeatureAnalyzer`.

    Parameters
    ----------
    sample_rate:
        Audio sample rate in Hz (default: 48 000).
    hop_size:
        Samples between emitted frames (default: 512).
    config:
        Engine configuration; ``config.fft_size`` sets the frame length.
    """

    def __init__(
        self,
        sample_rate: int = 48000,
        hop_size: int = 512,
        config: Optional[EngineConfig] = None,
    ):
        self.analyzer = FeatureAnalyzer(config)
        self.analyzer.configure(sample_rate, hop_size)
        self.sample_rate = self.analyzer.sample_rate
        self.hop_size = self.analyzer.hop_size
        self.fft_size = self.analyzer.config.fft_size

        self._buffer: np.ndarray = np.zeros(self.fft_size, dtype=np.float64)
        self.reset()

    @property
    def onset_events(self):
        return self.analyzer.onset_events

    def reset(self) -> None:
        """Start a new capture session."""
        self._buffer[:] = 0.0
        self._write_pos = 0
        self._since_hop = 0
        self._samples_seen = 0
        self._sequence = 0
        self._last_external_sequence: Optional[int] = None
        self.analyzer.reset()

    def _write(self, samples: np.ndarray) -> None:
        n = len(samples)
        self._samples_seen += n
        if n >= self.fft_size:
            self._buffer[:] = samples[-self.fft_size:]
            self._write_pos = 0
            return
        end = self._write_pos + n
        if end <= self.fft_size:
            self._buffer[self._write_pos:end] = samples
        else:
            split = self.fft_size - self._write_pos
            self._buffer[self._write_pos:] = samples[:split]
            self._buffer[: n - split] = samples[split:]
        self._write_pos = end % self.fft_size

    def _ordered(self) -> np.ndarray:
        """Ring buffer contents, oldest sample first."""
        return np.roll(self._buffer, -self._write_pos)

    def process_chunk(self, chunk: np.ndarray) -> List[Optional[FeatureVector]]:
        """
        Feed captured samples and analyse every completed hop.

        Parameters
        ----------
        chunk:
            1-D audio samples of any length.

        Returns
        -------
        list
            One entry per frame emitted by this chunk (possibly empty): the
            FeatureVector, or None for a frame below the silence gate.
        """
        chunk = np.asarray(chunk, dtype=np.float64).ravel()
        results: List[Optional[FeatureVector]] = []
        pos = 0
        while pos < len(chunk):
            take = min(self.hop_size - self._since_hop, len(chunk) - pos)
            self._write(chunk[pos:pos + take])
            self._since_hop += take
            pos += take
            if self._since_hop >= self.hop_size:
                self._since_hop = 0
                results.append(self._emit())
        return results

    def _emit(self) -> Optional[FeatureVector]:
        frame = Frame(
            samples=self._ordered(),
            sample_rate=self.sample_rate,
            timestamp=self._samples_seen / self.sample_rate,
            sequence=self._sequence,
        )
        self._sequence += 1
        return self.analyzer.process(frame)

    def process_frame(self, frame: Frame) -> Optional[FeatureVector]:
        """
        Analyse a frame that was framed elsewhere (e.g. by an audio worklet).

        A gap in ``frame.sequence`` means the capture side dropped frames;
        it is logged and processing continues.
        """
        if frame.sequence is not None:
            last = self._last_external_sequence
            if last is not None and frame.sequence > last + 1:
                logger.warning(
                    "dropped %d frame(s) before sequence %d",
                    frame.sequence - last - 1, frame.sequence,
                )
            self._last_external_sequence = frame.sequence
        return self.analyzer.process(frame)
