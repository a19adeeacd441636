# transform.py
"""Radix-2 discrete Fourier transform and frequency-bin helpers.

All arithmetic is double precision. Only the inverse transform applies the
1/N normalization.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import UnsupportedFormat


@dataclass(frozen=True)
class FrequencyBin:
    index: int
    hz: float


def is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


def next_power_of_two(n: int) -> int:
    if n <= 1:
        return 1
    return 1 << (int(n) - 1).bit_length()


def _check_length(n: int):
    if not is_power_of_two(n):
        raise ValueError(f"Transform length must be a power of two, got {n}")


def _bit_reverse_indices(n: int) -> np.ndarray:
    bits = n.bit_length() - 1
    idx = np.arange(n, dtype=np.int64)
    rev = np.zeros(n, dtype=np.int64)
    for _ in range(bits):
        rev = (rev << 1) | (idx & 1)
        idx >>= 1
    return rev


def fft(x) -> np.ndarray:
    """N-point DFT of ``x`` (iterative Cooley-Tukey, decimation in time)."""
    a = np.asarray(x, dtype=np.complex128).ravel()
    n = a.shape[0]
    _check_length(n)

    a = a[_bit_reverse_indices(n)]
    size = 2
    while size <= n:
        half = size // 2
        twiddle = np.exp(-2j * np.pi * np.arange(half) / size)
        groups = a.reshape(-1, size)
        even = groups[:, :half].copy()
        odd = groups[:, half:] * twiddle
        groups[:, :half] = even + odd
        groups[:, half:] = even - odd
        a = groups.reshape(n)
        size *= 2
    return a


def ifft(spectrum) -> np.ndarray:
    """Inverse of :func:`fft`."""
    X = np.asarray(spectrum, dtype=np.complex128).ravel()
    n = X.shape[0]
    _check_length(n)
    return np.conj(fft(np.conj(X))) / n


def fit_length(samples, n: int | None = None) -> np.ndarray:
    """Truncate or zero-pad a real slice to ``n`` samples.

    ``n`` defaults to the next power of two that holds every sample.
    """
    x = np.asarray(samples, dtype=np.float64).ravel()
    if n is None:
        n = next_power_of_two(x.size)
    _check_length(n)
    if x.size >= n:
        return x[:n].copy()
    out = np.zeros(n, dtype=np.float64)
    out[:x.size] = x
    return out


def bin_frequencies(n: int, sample_rate: float) -> np.ndarray:
    """Frequency in Hz of every bin; bins from N/2 upward are negative."""
    _check_length(n)
    idx = np.arange(n, dtype=np.float64)
    idx[n // 2:] -= n
    return idx * float(sample_rate) / n


def bin_frequency(index: int, n: int, sample_rate: float) -> FrequencyBin:
    _check_length(n)
    if not 0 <= index < n:
        raise IndexError(f"bin {index} out of range for a {n}-point transform")
    signed_index = index if index < n // 2 else index - n
    return FrequencyBin(index=index, hz=signed_index * float(sample_rate) / n)


def nearest_bin(frequency: float, n: int, sample_rate: float) -> FrequencyBin:
    """Positive-frequency bin closest to ``frequency``."""
    _check_length(n)
    nyquist = sample_rate / 2.0
    if not 0.0 < frequency < nyquist:
        raise UnsupportedFormat(
            f"{frequency:.0f} Hz cannot be represented at {sample_rate:.0f} Hz (Nyquist {nyquist:.0f} Hz)"
        )
    index = int(round(frequency * n / sample_rate))
    index = min(max(index, 1), n // 2 - 1)
    return bin_frequency(index, n, sample_rate)


def magnitudes(spectrum) -> np.ndarray:
    return np.abs(np.asarray(spectrum, dtype=np.complex128))
