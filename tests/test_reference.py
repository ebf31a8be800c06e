"""Tests for reference capture and comparison."""

import logging

import pytest

from timbrescope.core.analyzer import FeatureVector
from timbrescope.reference import MetricDeviation, ReferenceProfile


def _vector(i=0, **metrics):
    return FeatureVector(timestamp=i * 0.01, sequence=i, **metrics)


@pytest.fixture
def profile():
    vectors = [
        _vector(i, spectral_centroid=1000.0, hnr=20.0, t1=0.3, f0_hz=440.0)
        for i in range(5)
    ]
    return ReferenceProfile.from_vectors(vectors)


class TestCapture:
    def test_needs_enough_frames(self, caplog):
        vectors = [_vector(i, spectral_centroid=1000.0) for i in range(4)] + [None, None]
        with caplog.at_level(logging.WARNING, logger="timbrescope.reference"):
            with pytest.raises(ValueError, match="at least 5"):
                ReferenceProfile.from_vectors(vectors)
        assert "too short" in caplog.text

    def test_averages_ignore_absent_values(self):
        centroids = [900.0, 1100.0, 1000.0, 1000.0, 1000.0]
        vectors = [_vector(i, spectral_centroid=c) for i, c in enumerate(centroids)]
        vectors[0].hnr = 10.0
        vectors[1].hnr = 20.0
        ref = ReferenceProfile.from_vectors(vectors + [None])
        assert ref.n_frames == 5
        assert ref["spectral_centroid"] == pytest.approx(1000.0)
        assert ref["hnr"] == pytest.approx(15.0)
        assert ref["t1"] is None

    def test_note_name(self, profile):
        assert profile.f0_hz == pytest.approx(440.0)
        assert profile.note_name == "A4"

    def test_note_name_absent_without_pitch(self):
        ref = ReferenceProfile({"spectral_centroid": 1000.0}, n_frames=5)
        assert ref.note_name is None


class TestCompare:
    @pytest.mark.parametrize(
        "centroid, severity",
        [(1050.0, "match"), (1100.0, "minor"), (1200.0, "moderate"), (1500.0, "large")],
    )
    def test_severity(self, profile, centroid, severity):
        deviations = {d.key: d for d in profile.compare(_vector(spectral_centroid=centroid))}
        assert list(deviations) == ["spectral_centroid"]
        assert deviations["spectral_centroid"].severity == severity

    def test_deviation_fields(self, profile):
        (dev,) = profile.compare(_vector(hnr=10.0))
        assert isinstance(dev, MetricDeviation)
        assert dev.difference == pytest.approx(-10.0)
        assert dev.normalized == pytest.approx(0.25)
        assert dev.direction == "down"
        assert dev.hint == "balance bow pressure and speed"

    def test_top_deviations_ranked(self, profile):
        vector = _vector(spectral_centroid=1500.0, hnr=10.0, t1=0.3)
        top = profile.top_deviations(vector, n=2)
        assert [d.key for d in top] == ["hnr", "spectral_centroid"]
        assert top[1].direction == "up"
        assert top[1].hint.startswith("lighter bow pressure")

    def test_top_deviations_empty_when_matching(self, profile):
        vector = _vector(spectral_centroid=1010.0, hnr=20.0, t1=0.3, f0_hz=440.0)
        assert profile.top_deviations(vector) == []
