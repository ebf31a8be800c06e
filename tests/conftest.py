"""Shared synthetic signals for the test suite."""

import librosa
import numpy as np
import pytest

from timbrescope.core.frame import Frame

SR = 48000
N_FFT = 4096
HOP = 512


def sine(freq: float, length: int = N_FFT, amp: float = 0.5, sr: int = SR) -> np.ndarray:
    return amp * librosa.tone(freq, sr=sr, length=length)


def harmonic_tone(f0: float, length: int = N_FFT, n_harmonics: int = 10, amp: float = 0.3) -> np.ndarray:
    """Sawtooth-like tone: harmonic h at amplitude 1/h."""
    t = np.arange(length) / SR
    y = sum(np.sin(2 * np.pi * f0 * h * t) / h for h in range(1, n_harmonics + 1))
    return amp * y


def noise(length: int = N_FFT, amp: float = 0.1, seed: int = 0) -> np.ndarray:
    return amp * np.random.default_rng(seed).standard_normal(length)


def make_frame(samples: np.ndarray, timestamp: float = 0.0, sequence=None) -> Frame:
    return Frame(samples=samples, sample_rate=SR, timestamp=timestamp, sequence=sequence)


def framed(signal: np.ndarray, start_time: float = 0.0):
    """Split a long signal into hop-spaced analysis frames."""
    frames = []
    for i, start in enumerate(range(0, len(signal) - N_FFT + 1, HOP)):
        frames.append(
            make_frame(signal[start:start + N_FFT], start_time + (start + N_FFT) / SR, i)
        )
    return frames


@pytest.fixture
def pure_sine():
    """One frame-length 440 Hz sine at half scale."""
    return sine(440.0), SR


@pytest.fixture
def bowed_tone():
    """Harmonic-rich G3-ish tone."""
    return harmonic_tone(196.0), SR


@pytest.fixture
def white_noise():
    return noise(), SR
