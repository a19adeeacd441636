# streams.py
"""Pull-based sample streams over PCM WAV, AIFF and AU containers.

WAV frames come straight from the standard ``wave`` module as raw bytes.
AIFF and AU go through soundfile (libsndfile): its left-justified int32
samples are packed back into the container's big-endian byte layout, so both
paths hand the same kind of raw frame bytes to
:mod:`fourier_stego.sample_codec`. A stream owns its remainder buffers and the
underlying file handle until it is closed.
"""

from __future__ import annotations

import logging
import wave
from pathlib import Path

import numpy as np
import soundfile as sf

from .errors import UnsupportedFormat
from .sample_codec import (
    SampleDecoder,
    SampleEncoder,
    SampleFormat,
    SampleWidth,
    pack_codes,
    unpack_codes,
)

logger = logging.getLogger(__name__)

# largest number of samples all() will materialise at once
MAX_IN_MEMORY_SAMPLES = 2**31 - 1

# extension -> (soundfile container name, big-endian sample data)
CONTAINERS = {
    ".wav": ("WAV", False),
    ".aif": ("AIFF", True),
    ".aiff": ("AIFF", True),
    ".au": ("AU", True),
}
SUPPORTED_EXTENSIONS = tuple(CONTAINERS)

SUBTYPE_WIDTHS = {"PCM_S8": 1, "PCM_U8": 1, "PCM_16": 2, "PCM_24": 3, "PCM_32": 4}


def check_extension(path) -> str:
    ext = Path(path).suffix.lower()
    if ext not in CONTAINERS:
        raise UnsupportedFormat(f"Unrecognised file format for {Path(path).name}")
    return ext


def container_format(ext: str, channels: int, sample_rate: int, width) -> SampleFormat:
    """Sample layout a container stores: WAV is little-endian with unsigned
    8-bit data, AIFF and AU are big-endian and always signed."""
    width = SampleWidth.of(width)
    _, big_endian = CONTAINERS[ext]
    return SampleFormat(
        channels=channels,
        sample_rate=sample_rate,
        width=width,
        big_endian=big_endian,
        signed=big_endian or width is not SampleWidth.ONE,
    )


def wav_format(channels: int, sample_rate: int, width) -> SampleFormat:
    return container_format(".wav", channels, sample_rate, width)


class _WaveSource:

    def __init__(self, path: Path):
        try:
            self._wav = wave.open(str(path), "rb")
        except (wave.Error, EOFError) as exc:
            raise UnsupportedFormat(f"{path.name} is not a PCM WAV file: {exc}") from exc
        self.channels = self._wav.getnchannels()
        self.sample_rate = self._wav.getframerate()
        self.width = self._wav.getsampwidth()
        self.frames = self._wav.getnframes()
        self.signed = self.width != 1

    def read(self, frames: int) -> bytes:
        return self._wav.readframes(frames)

    def close(self):
        self._wav.close()


class _SoundFileSource:

    def __init__(self, path: Path):
        try:
            self._sf = sf.SoundFile(str(path))
        except RuntimeError as exc:
            raise UnsupportedFormat(f"{path.name} could not be opened: {exc}") from exc
        self.width = SUBTYPE_WIDTHS.get(self._sf.subtype)
        if self.width is None:
            self._sf.close()
            raise UnsupportedFormat(f"{path.name} holds {self._sf.subtype} data, not integer PCM")
        self.channels = self._sf.channels
        self.sample_rate = self._sf.samplerate
        self.frames = self._sf.frames
        # libsndfile centres unsigned data; packing with signed=False restores the offset
        self.signed = self._sf.subtype != "PCM_U8"

    def read(self, frames: int) -> bytes:
        left = np.frombuffer(self._sf.buffer_read(frames, dtype='int32'), dtype=np.int32)
        codes = left.astype(np.int64) >> (32 - 8 * self.width)
        return pack_codes(codes, self.width, big_endian=True, signed=self.signed)

    def close(self):
        self._sf.close()


class _WaveSink:

    def __init__(self, path: Path, fmt: SampleFormat):
        self._wav = wave.open(str(path), "wb")
        self._wav.setnchannels(fmt.channels)
        self._wav.setsampwidth(int(fmt.width))
        self._wav.setframerate(fmt.sample_rate)

    def write(self, raw: bytes):
        self._wav.writeframes(raw)

    def close(self):
        self._wav.close()


class _SoundFileSink:

    def __init__(self, path: Path, fmt: SampleFormat, container: str):
        subtype = "PCM_S8" if fmt.width is SampleWidth.ONE else f"PCM_{fmt.bits}"
        self._format = fmt
        self._sf = sf.SoundFile(
            str(path), 'w', samplerate=fmt.sample_rate, channels=fmt.channels,
            subtype=subtype, endian='BIG', format=container,
        )

    def write(self, raw: bytes):
        fmt = self._format
        codes = unpack_codes(raw, fmt.width, big_endian=True, signed=True)
        left = (codes << (32 - fmt.bits)).astype(np.int32)
        self._sf.buffer_write(left.tobytes(), dtype='int32')

    def close(self):
        self._sf.close()


class SampleStream:
    """Reads normalized, channel-interleaved samples from an audio file."""

    def __init__(self, path):
        self.path = Path(path)
        ext = check_extension(self.path)
        source = _WaveSource(self.path) if ext == ".wav" else _SoundFileSource(self.path)
        try:
            self.format = container_format(ext, source.channels, source.sample_rate, source.width)
        except UnsupportedFormat:
            source.close()
            raise
        if self.format.signed != source.signed:
            self.format = SampleFormat(
                channels=self.format.channels,
                sample_rate=self.format.sample_rate,
                width=self.format.width,
                big_endian=self.format.big_endian,
                signed=source.signed,
            )
        self._source = source
        self._decoder = SampleDecoder(self.format)
        self._pending = np.empty(0, dtype=np.float64)
        self._consumed = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        return f"SampleStream({str(self.path)!r}, {self.format})"

    @property
    def closed(self) -> bool:
        return self._source is None

    @property
    def length(self) -> int:
        """Length of the stream in sample frames."""
        self._ensure_open()
        return self._source.frames

    @property
    def remaining(self) -> int:
        """Samples (not frames) left according to the header."""
        return max(self.length * self.format.channels - self._consumed, 0)

    def _ensure_open(self):
        if self._source is None:
            raise ValueError("I/O operation on closed stream")

    def read(self, n: int) -> np.ndarray:
        """Return up to ``n`` samples; a short or empty array means end of stream."""
        self._ensure_open()
        if n < 0:
            raise ValueError(f"sample count must be >= 0, got {n}")
        need = n - self._pending.size
        if need > 0:
            frames = -(-need // self.format.channels)
            raw = self._source.read(frames)
            if raw:
                self._pending = np.concatenate([self._pending, self._decoder.feed(raw)])
        out = self._pending[:n]
        self._pending = self._pending[n:]
        self._consumed += out.size
        return out

    def read_frames(self, n: int) -> np.ndarray:
        """Return up to ``n`` whole frames as an array of shape (frames, channels)."""
        channels = self.format.channels
        samples = self.read(n * channels)
        whole = samples.size - samples.size % channels
        if whole < samples.size:
            # incomplete trailing frame stays buffered
            self._pending = np.concatenate([samples[whole:], self._pending])
            self._consumed -= samples.size - whole
        return samples[:whole].reshape(-1, channels)

    def next(self) -> float:
        sample = self.read(1)
        if sample.size == 0:
            raise EOFError("Reached end of stream")
        return float(sample[0])

    def all(self) -> np.ndarray:
        """Read every remaining sample.

        Raises OverflowError when the rest of the stream is longer than
        MAX_IN_MEMORY_SAMPLES.
        """
        remaining = self.remaining
        if remaining > MAX_IN_MEMORY_SAMPLES:
            raise OverflowError("Audio stream too long to fit in array")
        return self.read(remaining)

    def blocks(self, frames_per_block: int):
        while True:
            frames = self.read_frames(frames_per_block)
            if frames.shape[0] == 0:
                return
            yield frames

    def close(self):
        if self._source is None:
            return
        leftover = self._pending.size + self._decoder.pending
        if leftover:
            logger.warning("%s: dropping %d samples/bytes of an incomplete trailing frame", self.path.name, leftover)
        self._source.close()
        self._source = None
        self._pending = np.empty(0, dtype=np.float64)
        self._decoder.reset()


class SampleWriter:
    """Writes normalized, channel-interleaved samples to an audio file."""

    def __init__(self, path, fmt: SampleFormat):
        self.path = Path(path)
        ext = check_extension(self.path)
        container, _ = CONTAINERS[ext]
        if fmt != container_format(ext, fmt.channels, fmt.sample_rate, fmt.width):
            raise UnsupportedFormat(f"{container} cannot store {fmt}")
        self.format = fmt
        self.frames_written = 0
        self._encoder = SampleEncoder(fmt)
        if ext == ".wav":
            self._sink = _WaveSink(self.path, fmt)
        else:
            self._sink = _SoundFileSink(self.path, fmt, container)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def closed(self) -> bool:
        return self._sink is None

    def write(self, samples) -> int:
        """Write interleaved samples; returns the number of whole frames written."""
        if self._sink is None:
            raise ValueError("I/O operation on closed stream")
        raw = self._encoder.feed(samples)
        if raw:
            self._sink.write(raw)
        frames = len(raw) // self.format.frame_bytes
        self.frames_written += frames
        return frames

    def write_frames(self, frames: np.ndarray) -> int:
        frames = np.asarray(frames, dtype=np.float64)
        if frames.ndim != 2 or frames.shape[1] != self.format.channels:
            raise ValueError(f"expected frames of shape (n, {self.format.channels}), got {frames.shape}")
        return self.write(frames.ravel())

    def close(self):
        if self._sink is None:
            return
        if self._encoder.pending:
            logger.warning("%s: dropping %d samples of an incomplete frame", self.path.name, self._encoder.pending)
            self._encoder.reset()
        self._sink.close()
        self._sink = None


def output_format(path, fmt: SampleFormat) -> SampleFormat:
    """``fmt`` re-targeted to the container implied by ``path``."""
    return container_format(check_extension(path), fmt.channels, fmt.sample_rate, fmt.width)


def describe(path) -> dict:
    """Container metadata of an audio file, in the shape the CLI prints it."""
    with SampleStream(path) as stream:
        fmt = stream.format
        frames = stream.length
    return {
        "path": str(path),
        "channels": fmt.channels,
        "sample_rate": fmt.sample_rate,
        "bits": fmt.bits,
        "byte_order": "big" if fmt.big_endian else "little",
        "signed": fmt.signed,
        "frames": frames,
        "samples": frames * fmt.channels,
        "duration_s": frames / float(fmt.sample_rate) if fmt.sample_rate else 0.0,
    }
