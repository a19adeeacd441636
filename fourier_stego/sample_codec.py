# sample_codec.py
"""Conversion between raw PCM bytes and normalized float samples.

Samples are scaled by the largest positive code of their width, so a decoded
value lies in [-1.0, 1.0] (the most negative code maps just below -1.0).
Encoding rounds to the nearest code and clips, which makes
``encode_samples(decode_samples(raw)) == raw`` for every input.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from .errors import UnsupportedFormat


class SampleWidth(IntEnum):
    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4

    @property
    def bits(self) -> int:
        return 8 * int(self)

    @property
    def max_value(self) -> int:
        return (1 << (self.bits - 1)) - 1

    @property
    def min_value(self) -> int:
        return -(1 << (self.bits - 1))

    @classmethod
    def of(cls, nbytes) -> "SampleWidth":
        try:
            return cls(int(nbytes))
        except ValueError:
            raise UnsupportedFormat(f"Unsupported sample size: {nbytes} bytes") from None

    def sign_extend(self, codes: np.ndarray) -> np.ndarray:
        """Interpret unsigned codes of this width as two's-complement integers."""
        if self is SampleWidth.FOUR:
            return codes.astype(np.uint32).view(np.int32).astype(np.int64)
        if self in (SampleWidth.ONE, SampleWidth.TWO, SampleWidth.THREE):
            return np.where(codes > self.max_value, codes - (1 << self.bits), codes)
        raise UnsupportedFormat(f"Unsupported sample size: {int(self)} bytes")


@dataclass(frozen=True)
class SampleFormat:
    channels: int
    sample_rate: int
    width: SampleWidth
    big_endian: bool = False
    signed: bool = True

    def __post_init__(self):
        if self.channels < 1:
            raise UnsupportedFormat(f"Invalid channel count: {self.channels}")
        object.__setattr__(self, "width", SampleWidth.of(self.width))

    @property
    def bits(self) -> int:
        return self.width.bits

    @property
    def frame_bytes(self) -> int:
        return int(self.width) * self.channels


def unpack_codes(raw: bytes, width, big_endian: bool = False, signed: bool = True) -> np.ndarray:
    """Integer sample values (int64, zero-centred) of a whole number of samples."""
    width = SampleWidth.of(width)
    buf = np.frombuffer(bytes(raw), dtype=np.uint8)
    if buf.size % int(width):
        raise ValueError(f"{buf.size} bytes is not a whole number of {int(width)}-byte samples")

    grouped = buf.reshape(-1, int(width)).astype(np.int64)
    if big_endian:
        grouped = grouped[:, ::-1]

    codes = np.zeros(grouped.shape[0], dtype=np.int64)
    for i in range(int(width)):
        codes |= grouped[:, i] << (8 * i)

    if signed:
        return width.sign_extend(codes)
    # offset binary, e.g. 8-bit WAV
    return codes - (1 << (width.bits - 1))


def pack_codes(values, width, big_endian: bool = False, signed: bool = True) -> bytes:
    """Inverse of :func:`unpack_codes`; ``values`` must already be in range."""
    width = SampleWidth.of(width)
    values = np.asarray(values, dtype=np.int64).ravel()
    if signed:
        codes = values & ((1 << width.bits) - 1)
    else:
        codes = values + (1 << (width.bits - 1))

    shifts = 8 * np.arange(int(width), dtype=np.int64)
    out = ((codes[:, None] >> shifts) & 0xFF).astype(np.uint8)
    if big_endian:
        out = out[:, ::-1]
    return out.tobytes()


def decode_samples(raw: bytes, width, big_endian: bool = False, signed: bool = True) -> np.ndarray:
    """Decode a whole number of samples into float64 values."""
    width = SampleWidth.of(width)
    return unpack_codes(raw, width, big_endian, signed).astype(np.float64) / width.max_value


def encode_samples(samples, width, big_endian: bool = False, signed: bool = True) -> bytes:
    """Quantize float samples to ``width``-byte PCM codes."""
    width = SampleWidth.of(width)
    x = np.asarray(samples, dtype=np.float64).ravel()
    values = np.clip(np.rint(x * width.max_value), width.min_value, width.max_value).astype(np.int64)
    return pack_codes(values, width, big_endian, signed)


class SampleDecoder:
    """Streaming decoder that carries incomplete samples over to the next call."""

    def __init__(self, fmt: SampleFormat):
        self.format = fmt
        self._extra = b""

    @property
    def pending(self) -> int:
        """Number of buffered bytes that do not yet form a sample."""
        return len(self._extra)

    def feed(self, data: bytes) -> np.ndarray:
        buf = self._extra + bytes(data)
        usable = len(buf) - len(buf) % int(self.format.width)
        self._extra = buf[usable:]
        return decode_samples(buf[:usable], self.format.width, self.format.big_endian, self.format.signed)

    def reset(self):
        self._extra = b""


class SampleEncoder:
    """Streaming encoder that only emits whole frames.

    Samples that do not complete a frame are kept until the next ``feed``.
    """

    def __init__(self, fmt: SampleFormat):
        self.format = fmt
        self._extra = np.empty(0, dtype=np.float64)

    @property
    def pending(self) -> int:
        """Number of buffered samples waiting for the rest of their frame."""
        return int(self._extra.size)

    def feed(self, samples) -> bytes:
        buf = np.concatenate([self._extra, np.asarray(samples, dtype=np.float64).ravel()])
        usable = buf.size - buf.size % self.format.channels
        self._extra = buf[usable:]
        return encode_samples(buf[:usable], self.format.width, self.format.big_endian, self.format.signed)

    def reset(self):
        self._extra = np.empty(0, dtype=np.float64)
