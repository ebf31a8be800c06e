"""Tests for the metric registry."""

import pytest

from timbrescope.core.analyzer import FeatureVector
from timbrescope.metrics import CATEGORIES, METRICS, get_metric, metrics_in_category


def test_registry_covers_every_vector_field():
    keys = [m.key for m in METRICS]
    assert len(keys) == len(set(keys))
    assert set(keys) == set(FeatureVector.metric_keys())


def test_categories_and_ranges_are_valid():
    for metric in METRICS:
        assert metric.category in CATEGORIES
        assert metric.span > 0, metric.key


def test_get_metric():
    metric = get_metric("spectral_centroid")
    assert metric.unit == "Hz"
    with pytest.raises(KeyError, match="unknown metric"):
        get_metric("loudness")


def test_normalize_clips():
    metric = get_metric("hnr")
    assert metric.normalize(20.0) == pytest.approx(0.5)
    assert metric.normalize(-5.0) == 0.0
    assert metric.normalize(100.0) == 1.0


def test_metrics_in_category():
    keys = [m.key for m in metrics_in_category("band")]
    assert keys == ["richness", "nasality", "brilliance", "harshness", "low_freq_ratio"]
    with pytest.raises(KeyError):
        metrics_in_category("colour")
