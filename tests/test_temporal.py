"""Tests for onset detection and rolling stability windows."""

import numpy as np
import pytest

from timbrescope.core.temporal import (
    OnsetDetector,
    OnsetEvent,
    OnsetState,
    RollingWindow,
    pitch_stability_cents,
)


def _feed(detector, levels):
    """Feed (time, level) pairs, returning every completed event."""
    events = []
    for now, level in levels:
        event = detector.update(level, now)
        if event is not None:
            events.append(event)
    return events


# ---------------------------------------------------------------------------
# OnsetDetector
# ---------------------------------------------------------------------------

class TestOnsetDetector:
    def test_single_attack(self):
        det = OnsetDetector(silence_db=-50.0, sound_db=-35.0)
        events = _feed(det, [(0.0, -60.0), (0.2, -45.0), (0.3, -40.0), (0.4, -30.0), (0.5, -20.0)])
        assert len(events) == 1
        assert events[0].time == pytest.approx(0.2)
        assert events[0].rise_time == pytest.approx(0.2)
        assert det.state is OnsetState.SUSTAIN

    def test_sustain_dip_does_not_retrigger(self):
        det = OnsetDetector()
        events = _feed(det, [(0.0, -20.0), (0.1, -45.0), (0.2, -20.0)])
        assert len(events) == 1
        assert det.state is OnsetState.SUSTAIN

    def test_straight_to_loud(self):
        det = OnsetDetector()
        event = det.update(-10.0, 1.0)
        assert event == OnsetEvent(time=1.0, rise_time=0.0)

    def test_new_note_after_silence(self):
        det = OnsetDetector()
        events = _feed(det, [(0.0, -20.0), (0.5, -70.0), (1.0, -30.0)])
        assert [e.time for e in events] == pytest.approx([0.0, 1.0])
        assert det.last_onset.time == pytest.approx(1.0)

    def test_aborted_rise_restarts(self):
        det = OnsetDetector()
        events = _feed(det, [(0.1, -45.0), (0.2, -60.0), (0.3, -45.0), (0.5, -30.0)])
        assert len(events) == 1
        assert events[0].time == pytest.approx(0.3)
        assert events[0].rise_time == pytest.approx(0.2)

    def test_silence_threshold_is_inclusive(self):
        det = OnsetDetector(silence_db=-50.0, sound_db=-35.0)
        det.update(-50.0, 0.0)
        assert det.state is OnsetState.SILENT
        det.update(-49.9, 0.1)
        assert det.state is OnsetState.RISING
        det.update(-50.0, 0.2)
        assert det.state is OnsetState.SILENT
        assert det.events == []

    def test_time_since_onset(self):
        det = OnsetDetector()
        assert det.time_since_onset(1.0) is None
        det.update(-20.0, 1.0)
        assert det.time_since_onset(1.25) == pytest.approx(0.25)

    def test_events_is_a_copy(self):
        det = OnsetDetector()
        det.update(-20.0, 0.0)
        det.events.clear()
        assert len(det.events) == 1

    def test_reset(self):
        det = OnsetDetector()
        det.update(-20.0, 0.0)
        det.reset()
        assert det.state is OnsetState.SILENT
        assert det.events == []
        assert det.last_onset is None


# ---------------------------------------------------------------------------
# RollingWindow
# ---------------------------------------------------------------------------

class TestRollingWindow:
    def test_empty(self):
        window = RollingWindow(4)
        assert len(window) == 0
        assert window.mean() == 0.0
        assert window.std() == 0.0

    def test_single_value_has_zero_std(self):
        window = RollingWindow(4)
        window.push(3.0)
        assert window.mean() == 3.0
        assert window.std() == 0.0

    def test_population_statistics(self):
        window = RollingWindow(10)
        for v in (2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0):
            window.push(v)
        assert window.mean() == pytest.approx(5.0)
        assert window.std() == pytest.approx(2.0)

    def test_evicts_oldest(self):
        window = RollingWindow(3)
        for v in (100.0, 1.0, 2.0, 3.0):
            window.push(v)
        assert len(window) == 3
        assert window.mean() == pytest.approx(2.0)

    def test_ignores_absent_values(self):
        window = RollingWindow(3)
        window.push(1.0)
        window.push(None)
        assert len(window) == 1

    def test_resize_keeps_newest(self):
        window = RollingWindow(5)
        for v in (1.0, 2.0, 3.0, 4.0):
            window.push(v)
        window.resize(2)
        assert window.capacity == 2
        assert window.mean() == pytest.approx(3.5)

    def test_reset(self):
        window = RollingWindow(3)
        window.push(1.0)
        window.reset()
        assert len(window) == 0
        assert window.capacity == 3

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            RollingWindow(0)


class TestPitchStability:
    def test_steady_pitch_is_zero(self):
        window = RollingWindow(5)
        for _ in range(5):
            window.push(440.0)
        assert pitch_stability_cents(window, 440.0) == pytest.approx(0.0)

    def test_cents_above_mean(self):
        window = RollingWindow(5)
        window.push(430.0)
        window.push(450.0)
        expected = 1200.0 * np.log2(450.0 / 440.0)
        assert pitch_stability_cents(window, 450.0) == pytest.approx(expected)

    def test_absent(self):
        window = RollingWindow(5)
        assert pitch_stability_cents(window, 440.0) is None
        window.push(440.0)
        assert pitch_stability_cents(window, None) is None
