# encoder.py
"""Embed a bit payload into the high-frequency content of a PCM audio file.

One bit is carried by every full, non-silent block of the reference channel:
a 1 forces the magnitude of the bin nearest ``embed_frequency`` to
``embed_magnitude``, a 0 leaves the block as it is. Silent blocks and the
final partial block never carry a bit.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import numpy as np

from .classifier import REFERENCE_CHANNEL, analyse_block
from .errors import InsufficientCapacity
from .framing import bytes_to_bits, text_to_bits
from .protocol import DEFAULT_PARAMS, StegoParams
from .streams import SampleStream, SampleWriter, check_extension, output_format
from .transform import ifft

logger = logging.getLogger(__name__)


class EncoderState(Enum):
    STREAMING = "streaming"
    PASSTHROUGH = "passthrough"
    DONE = "done"


@dataclass
class EncodeReport:
    out_path: str
    bits_embedded: int
    blocks_total: int = 0
    blocks_active: int = 0
    blocks_silent: int = 0
    blocks_passthrough: int = 0
    frames: int = 0
    states: list[EncoderState] = field(default_factory=list)


def default_output_path(source) -> Path:
    source = Path(source)
    return source.with_name(f"{source.stem}-Encoded.wav")


class Encoder:
    def __init__(self, params: StegoParams = DEFAULT_PARAMS):
        self.params = params

    def estimate_capacity(self, stream: SampleStream) -> int:
        """Upper bound on the payload size: the number of full blocks."""
        return stream.length // self.params.block_size

    def capacity(self, source, needed: int | None = None) -> int:
        """Count full ACTIVE blocks, stopping early once ``needed`` are found."""
        count = 0
        with SampleStream(source) as stream:
            rate = stream.format.sample_rate
            for frames in stream.blocks(self.params.block_size):
                if frames.shape[0] < self.params.block_size:
                    break
                if analyse_block(frames, self.params, rate).is_active:
                    count += 1
                    if needed is not None and count >= needed:
                        break
        return count

    def check_capacity(self, source, n_bits: int) -> int:
        with SampleStream(source) as stream:
            estimate = self.estimate_capacity(stream)
        if estimate < n_bits:
            raise InsufficientCapacity(n_bits, estimate)
        if n_bits == 0:
            return estimate
        available = self.capacity(source, needed=n_bits)
        if available < n_bits:
            raise InsufficientCapacity(n_bits, available)
        return available

    def embed_bit(self, frames: np.ndarray, analysis) -> np.ndarray:
        """Return a copy of ``frames`` whose reference channel carries a 1."""
        n = self.params.block_size
        k = analysis.embed_bin.index
        spectrum = analysis.spectrum.copy()
        spectrum[k] = self.params.embed_magnitude
        spectrum[n - k] = self.params.embed_magnitude
        rebuilt = ifft(spectrum).real[:frames.shape[0]]
        out = np.array(frames, dtype=np.float64, copy=True)
        out[:, REFERENCE_CHANNEL] = rebuilt
        return out

    def encode(self, source, bits, out_path=None) -> EncodeReport:
        """Write ``source`` to ``out_path`` with ``bits`` embedded.

        Capacity is verified before anything is written; the output appears
        only once the whole file has been produced.
        """
        bits = np.asarray(bits, dtype=bool).ravel()
        out_path = Path(out_path) if out_path is not None else default_output_path(source)
        check_extension(out_path)
        self.check_capacity(source, int(bits.size))

        fd, tmp_name = tempfile.mkstemp(suffix=out_path.suffix, prefix=f".{out_path.stem}-", dir=out_path.parent)
        os.close(fd)
        try:
            report = self._encode_stream(source, bits, tmp_name)
            os.replace(tmp_name, out_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise

        report.out_path = str(out_path)
        logger.info(
            "Embedded %d bits into %s (%d blocks, %d active, %d silent)",
            report.bits_embedded, out_path, report.blocks_total, report.blocks_active, report.blocks_silent,
        )
        return report

    def _encode_stream(self, source, bits: np.ndarray, tmp_path) -> EncodeReport:
        block_size = self.params.block_size
        report = EncodeReport(out_path=str(tmp_path), bits_embedded=0)
        state = EncoderState.STREAMING if bits.size else EncoderState.PASSTHROUGH
        report.states.append(state)
        current = 0

        with SampleStream(source) as stream, SampleWriter(tmp_path, output_format(tmp_path, stream.format)) as writer:
            rate = stream.format.sample_rate
            for frames in stream.blocks(block_size):
                report.blocks_total += 1
                report.frames += frames.shape[0]

                if state is EncoderState.PASSTHROUGH or frames.shape[0] < block_size:
                    report.blocks_passthrough += 1
                    writer.write_frames(frames)
                    continue

                analysis = analyse_block(frames, self.params, rate)
                if not analysis.is_active:
                    report.blocks_silent += 1
                    writer.write_frames(frames)
                    continue

                report.blocks_active += 1
                if bits[current]:
                    frames = self.embed_bit(frames, analysis)
                writer.write_frames(frames)
                current += 1
                if current == bits.size:
                    state = EncoderState.PASSTHROUGH
                    report.states.append(state)

        if current < bits.size:
            # the capacity scan guarantees this does not happen
            raise InsufficientCapacity(int(bits.size), current)
        report.bits_embedded = current
        report.states.append(EncoderState.DONE)
        return report

    def encode_bytes(self, source, payload: bytes, out_path=None) -> EncodeReport:
        return self.encode(source, bytes_to_bits(payload), out_path)

    def encode_text(self, source, message: str, out_path=None, terminate: bool = True) -> EncodeReport:
        return self.encode(source, text_to_bits(message, terminate=terminate), out_path)
