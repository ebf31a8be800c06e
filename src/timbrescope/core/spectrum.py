"""
Spectral transform.

Hann-windowed radix-2 Cooley-Tukey FFT producing a decibel magnitude
spectrum of ``fft_size // 2 + 1`` bins. The window, bit-reversal
permutation, per-stage twiddle factors and the complex scratch buffer are
all built once by :class:`SpectralTransform` and reused for every frame.
"""

from dataclasses import dataclass, field
from functools import cached_property
from typing import List

import librosa
import numpy as np
from scipy import signal as scipy_signal

from timbrescope.config import is_power_of_two

FLOOR_DB = -100.0
FLOOR_AMPLITUDE = 1e-10


@dataclass
class Spectrum:
    """Magnitude spectrum of one frame, in dB (floor ``FLOOR_DB``)."""

    db: np.ndarray
    sample_rate: int
    fft_size: int
    _freqs: np.ndarray = field(default=None, repr=False)

    @property
    def n_bins(self) -> int:
        return len(self.db)

    @property
    def bin_width(self) -> float:
        """Frequency spacing between bins in Hz."""
        return self.sample_rate / self.fft_size

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2.0

    @property
    def frequencies(self) -> np.ndarray:
        """Centre frequency of each bin."""
        if self._freqs is None:
            self._freqs = librosa.fft_frequencies(sr=self.sample_rate, n_fft=self.fft_size)
        return self._freqs

    @cached_property
    def magnitudes(self) -> np.ndarray:
        """Linear magnitudes; bins at the dB floor count as zero energy."""
        linear = librosa.db_to_amplitude(self.db)
        linear[self.db <= FLOOR_DB] = 0.0
        return linear

    @cached_property
    def power(self) -> np.ndarray:
        return self.magnitudes ** 2

    def freq_to_bin(self, freq: float) -> int:
        """Nearest bin index for a frequency (not clipped)."""
        return int(round(freq / self.bin_width))


def amplitude_to_db(magnitude: np.ndarray) -> np.ndarray:
    """Convert linear magnitude to dB with a hard floor at ``FLOOR_DB``."""
    safe = np.maximum(magnitude, FLOOR_AMPLITUDE)
    return np.where(magnitude > FLOOR_AMPLITUDE, 20.0 * np.log10(safe), FLOOR_DB)


class SpectralTransform:
    """
    Windowed FFT of a fixed, power-of-two frame length.

    Args:
        fft_size: Frame length N. Must be a power of two.
        sample_rate: Sample rate of incoming frames (only stamped on the output).
    """

    def __init__(self, fft_size: int, sample_rate: int):
        if not is_power_of_two(fft_size) or fft_size < 2:
            raise ValueError(f"fft_size must be a power of two, got {fft_size}")
        self.fft_size = fft_size
        self.sample_rate = sample_rate
        self.n_bins = fft_size // 2 + 1

        # Symmetric Hann: 0.5 * (1 - cos(2*pi*n / (N - 1)))
        self.window = scipy_signal.get_window("hann", fft_size, fftbins=False)
        self._bitrev = self._bit_reversal_indices(fft_size)
        self._twiddles = self._stage_twiddles(fft_size)
        self._scratch = np.zeros(fft_size, dtype=np.complex128)
        self._freqs = librosa.fft_frequencies(sr=sample_rate, n_fft=fft_size)

    @staticmethod
    def _bit_reversal_indices(n: int) -> np.ndarray:
        bits = n.bit_length() - 1
        idx = np.arange(n)
        rev = np.zeros(n, dtype=np.int64)
        for b in range(bits):
            rev |= ((idx >> b) & 1) << (bits - 1 - b)
        return rev

    @staticmethod
    def _stage_twiddles(n: int) -> List[np.ndarray]:
        twiddles = []
        length = 2
        while length <= n:
            half = length // 2
            twiddles.append(np.exp(-2j * np.pi * np.arange(half) / length))
            length *= 2
        return twiddles

    def _fft_in_place(self, buf: np.ndarray) -> None:
        """Iterative radix-2 decimation-in-time FFT over ``buf``."""
        n = len(buf)
        buf[:] = buf[self._bitrev]
        length = 2
        for tw in self._twiddles:
            half = length // 2
            blocks = buf.reshape(n // length, length)
            top = blocks[:, :half]
            bottom = blocks[:, half:]
            t = bottom * tw
            bottom[:] = top - t
            top += t
            length *= 2

    def magnitude(self, samples: np.ndarray) -> np.ndarray:
        """Linear magnitude spectrum scaled by 2/N."""
        if len(samples) != self.fft_size:
            raise ValueError(
                f"expected {self.fft_size} samples, got {len(samples)}"
            )
        buf = self._scratch
        buf.real[:] = samples * self.window
        buf.imag[:] = 0.0
        self._fft_in_place(buf)
        return np.abs(buf[: self.n_bins]) * (2.0 / self.fft_size)

    def transform(self, samples: np.ndarray) -> Spectrum:
        """Window, transform and convert one frame to a dB spectrum."""
        db = amplitude_to_db(self.magnitude(samples))
        return Spectrum(
            db=db,
            sample_rate=self.sample_rate,
            fft_size=self.fft_size,
            _freqs=self._freqs,
        )
