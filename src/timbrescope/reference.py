"""
Reference capture and comparison.

A reference profile is the per-metric average of the feature vectors
captured while the player records a model sound. Live vectors are then
compared against it metric by metric.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import librosa
import numpy as np

from timbrescope.core.analyzer import FeatureVector
from timbrescope.metrics import METRICS, get_metric

logger = logging.getLogger(__name__)

# |diff| below this share of a metric's display range counts as a match
MATCH_TOLERANCE = 0.02
MODERATE_RELATIVE = 0.15
LARGE_RELATIVE = 0.30


@dataclass(frozen=True)
class MetricDeviation:
    """Difference between a live value and the reference for one metric."""

    key: str
    current: float
    reference: float
    difference: float           # current - reference
    normalized: float           # |difference| / display range
    severity: str               # "match" | "minor" | "moderate" | "large"

    @property
    def direction(self) -> str:
        return "up" if self.difference > 0 else "down"

    @property
    def hint(self) -> str:
        """Playing adjustment that moves the value back toward the reference."""
        metric = get_metric(self.key)
        return metric.hint_when_high if self.difference > 0 else metric.hint_when_low


def _severity(difference: float, reference: float, span: float) -> str:
    if abs(difference) < span * MATCH_TOLERANCE:
        return "match"
    relative = abs(difference) / (abs(reference) or 1.0)
    if relative > LARGE_RELATIVE:
        return "large"
    if relative > MODERATE_RELATIVE:
        return "moderate"
    return "minor"


class ReferenceProfile:
    """
    Averaged metrics of a reference capture.

    Args:
        values: Mean value per metric key; None where the metric was absent
            in every captured frame.
        n_frames: Number of vectors the averages were computed from.
    """

    MIN_FRAMES = 5

    def __init__(self, values: Dict[str, Optional[float]], n_frames: int):
        self.values = dict(values)
        self.n_frames = n_frames

    @classmethod
    def from_vectors(
        cls,
        vectors: Iterable[Optional[FeatureVector]],
        min_frames: int = MIN_FRAMES,
    ) -> "ReferenceProfile":
        """
        Average a reference capture, ignoring silent frames and absent values.

        Raises:
            ValueError: If fewer than ``min_frames`` non-silent vectors were captured.
        """
        captured = [v for v in vectors if v is not None]
        if len(captured) < min_frames:
            logger.warning(
                "reference capture too short: %d frames (need %d)", len(captured), min_frames
            )
            raise ValueError(
                f"reference needs at least {min_frames} non-silent frames, got {len(captured)}"
            )

        rows = [v.metrics() for v in captured]
        keys: List[str] = []
        for row in rows:
            keys.extend(k for k in row if k not in keys)

        values: Dict[str, Optional[float]] = {}
        for key in keys:
            samples = [row[key] for row in rows if row.get(key) is not None]
            values[key] = float(np.mean(samples)) if samples else None
        return cls(values, len(captured))

    def __getitem__(self, key: str) -> Optional[float]:
        return self.values.get(key)

    @property
    def f0_hz(self) -> Optional[float]:
        return self.values.get("f0_hz")

    @property
    def note_name(self) -> Optional[str]:
        """Nearest equal-tempered note of the mean pitch, e.g. ``"A4"``."""
        if self.f0_hz is None or self.f0_hz <= 0:
            return None
        return librosa.hz_to_note(self.f0_hz)

    def compare(self, vector: FeatureVector) -> List[MetricDeviation]:
        """
        Deviation of every registered metric present in both vector and profile.

        Returned in registry order.
        """
        current = vector.metrics()
        deviations = []
        for metric in METRICS:
            cur = current.get(metric.key)
            ref = self.values.get(metric.key)
            if cur is None or ref is None or metric.span == 0:
                continue
            diff = cur - ref
            deviations.append(
                MetricDeviation(
                    key=metric.key,
                    current=cur,
                    reference=ref,
                    difference=diff,
                    normalized=abs(diff) / metric.span,
                    severity=_severity(diff, ref, metric.span),
                )
            )
        return deviations

    def top_deviations(self, vector: FeatureVector, n: int = 3) -> List[MetricDeviation]:
        """
        The ``n`` metrics furthest from the reference, largest first.

        Empty when even the largest deviation is within the match tolerance.
        """
        ranked = sorted(self.compare(vector), key=lambda d: d.normalized, reverse=True)
        if not ranked or ranked[0].normalized < MATCH_TOLERANCE:
            return []
        return ranked[:n]
