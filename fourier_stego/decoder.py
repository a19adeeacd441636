# decoder.py
"""Recover a payload written by :mod:`fourier_stego.encoder`. Read-only, one pass."""

from __future__ import annotations

import logging
from itertools import islice

import numpy as np

from .classifier import analyse_block
from .errors import PrematureEnd
from .framing import TERMINATOR, bits_to_bytes
from .protocol import DEFAULT_PARAMS, StegoParams
from .streams import SampleStream

logger = logging.getLogger(__name__)


class Decoder:
    def __init__(self, params: StegoParams = DEFAULT_PARAMS):
        self.params = params

    def iter_bits(self, source):
        """Yield one bit per full ACTIVE block, in stream order."""
        block_size = self.params.block_size
        with SampleStream(source) as stream:
            rate = stream.format.sample_rate
            for frames in stream.blocks(block_size):
                if frames.shape[0] < block_size:
                    return
                analysis = analyse_block(frames, self.params, rate)
                if analysis.is_active:
                    yield analysis.embed_magnitude > self.params.detect_threshold

    def decode_bits(self, source, count: int) -> np.ndarray:
        walk = self.iter_bits(source)
        try:
            bits = np.fromiter(islice(walk, count), dtype=bool)
        finally:
            walk.close()
        if bits.size < count:
            raise PrematureEnd(count, int(bits.size))
        logger.info("Recovered %d bits from %s", bits.size, source)
        return bits

    def decode_bytes(self, source, n_bytes: int) -> bytes:
        return bits_to_bytes(self.decode_bits(source, 8 * n_bytes))

    def decode_text(self, source, length: int | None = None) -> str:
        """Decode UTF-8 text.

        With ``length`` (in bytes) exactly that many bytes are read; otherwise
        bytes are read up to the NUL terminator written by ``encode_text``.
        """
        if length is not None:
            return self.decode_bytes(source, length).decode("utf-8")

        data = bytearray()
        recovered = 0
        bits = self.iter_bits(source)
        try:
            while True:
                byte_bits = list(islice(bits, 8))
                recovered += len(byte_bits)
                if len(byte_bits) < 8:
                    raise PrematureEnd(recovered - len(byte_bits) + 8, recovered)
                value = bits_to_bytes(byte_bits)
                if value == TERMINATOR:
                    break
                data += value
        finally:
            bits.close()
        logger.info("Recovered %d bytes of text from %s", len(data), source)
        return data.decode("utf-8")
