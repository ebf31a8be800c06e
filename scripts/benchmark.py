"""
Timbrescope per-frame benchmark + FFT parity validation.

Usage:
    python scripts/benchmark.py [--quick]

Modes:
    default: 4096-point frames, 3 warm-up + 20 timed runs per stage
    --quick: 2048-point frames, 2 warm-up + 5 timed runs (CI-friendly)

Output: timing table + parity report printed to stdout.

Parity check: compares the radix-2 transform's linear magnitudes against
numpy.fft.rfft of the same windowed frame. The two must agree to within
1e-9 relative to the peak.
"""

import argparse
import os
import sys
import time
from typing import List

import librosa
import numpy as np

# Make sure the installed package is on the path when run from repo root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from timbrescope.config import EngineConfig
from timbrescope.core.analyzer import FeatureAnalyzer
from timbrescope.core.frame import Frame
from timbrescope.core.pitch import PitchEstimator
from timbrescope.core.spectrum import SpectralTransform

_SEP = "─" * 72
SR = 48000
HOP = 512


def _hdr(title: str) -> None:
    print(f"\n{_SEP}")
    print(f"  {title}")
    print(_SEP)


def _timeit(fn, *args, warmup: int = 2, runs: int = 5, **kwargs) -> List[float]:
    """Run fn(*args, **kwargs), discard warmup iterations, return timed samples."""
    for _ in range(warmup):
        fn(*args, **kwargs)
    times = []
    for _ in range(runs):
        t0 = time.perf_counter()
        fn(*args, **kwargs)
        times.append(time.perf_counter() - t0)
    return times


def _stats(times: List[float]) -> str:
    arr = np.array(times)
    return f"mean={arr.mean()*1000:.2f} ms  min={arr.min()*1000:.2f} ms  max={arr.max()*1000:.2f} ms"


def _test_frame(n: int) -> np.ndarray:
    """Sawtooth-like bowed tone at A4 with a little noise."""
    t = np.arange(n) / SR
    y = sum(np.sin(2 * np.pi * 440.0 * h * t) / h for h in range(1, 12))
    y = 0.2 * y + 0.002 * np.random.RandomState(0).randn(n)
    return y


def _parity_fft(n: int) -> dict:
    transform = SpectralTransform(n, SR)
    x = _test_frame(n)
    ours = transform.magnitude(x)
    ref = np.abs(np.fft.rfft(x * transform.window)) * (2.0 / n)
    diff = np.abs(ours - ref)
    return {
        "max_diff": float(diff.max()),
        "rel_diff": float(diff.max() / ref.max()),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Timbrescope per-frame benchmark")
    parser.add_argument(
        "--quick",
        action="store_true",
        help="Use 2048-point frames and fewer runs for fast CI runs",
    )
    args = parser.parse_args()

    if args.quick:
        N, WARMUP, RUNS = 2048, 2, 5
        label = "2048-point frames (quick mode)"
    else:
        N, WARMUP, RUNS = 4096, 3, 20
        label = "4096-point frames (full mode)"

    hop_budget_ms = HOP / SR * 1000
    print(f"\nTimbrescope Benchmark: {label}")
    print(f"librosa {librosa.__version__}  |  hop budget: {hop_budget_ms:.1f} ms")
    print(f"Warm-up runs: {WARMUP}  |  Timed runs: {RUNS}")

    x = _test_frame(N)
    results = {}

    _hdr("1. SpectralTransform.transform")
    transform = SpectralTransform(N, SR)
    t = _timeit(transform.transform, x, warmup=WARMUP, runs=RUNS)
    results["transform"] = t
    print(f"  {_stats(t)}")

    _hdr("2. PitchEstimator.estimate")
    estimator = PitchEstimator()
    t = _timeit(estimator.estimate, x, SR, warmup=WARMUP, runs=RUNS)
    results["pitch"] = t
    print(f"  {_stats(t)}")
    print(f"  f0 = {estimator.estimate(x, SR).frequency:.2f} Hz")

    _hdr("3. FeatureAnalyzer.process (full frame)")
    analyzer = FeatureAnalyzer(EngineConfig(fft_size=N))
    analyzer.configure(SR, HOP)
    frames = [Frame(x, SR, timestamp=i * HOP / SR, sequence=i) for i in range(WARMUP + RUNS)]
    it = iter(frames)
    t = _timeit(lambda: analyzer.process(next(it)), warmup=WARMUP, runs=RUNS)
    results["frame"] = t
    print(f"  {_stats(t)}")

    _hdr("4. FFT parity vs numpy.fft.rfft")
    parity = _parity_fft(N)
    ok = parity["rel_diff"] < 1e-9
    print(f"  max_diff={parity['max_diff']:.3e}  rel_diff={parity['rel_diff']:.3e}  "
          f"{'OK' if ok else 'MISMATCH'}")

    _hdr("Summary")
    for name, times in results.items():
        mean_ms = np.mean(times) * 1000
        print(f"  {name:<10} {mean_ms:8.2f} ms  ({mean_ms / hop_budget_ms * 100:5.1f}% of hop)")

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
