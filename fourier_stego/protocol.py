# protocol.py
"""Constants shared by the encoder and the decoder.

These values are the wire format of the scheme: a file written with one set of
parameters can only be read back with the same set. Bump ``version`` whenever
one of them changes.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StegoParams:
    version: int = 1
    # frames per analysis block, also the transform length
    block_size: int = 4096
    embed_frequency: float = 20000.0
    embed_magnitude: float = 15.0
    silence_threshold: float = 0.05
    detect_threshold: float = 7.5

    def __post_init__(self):
        if self.block_size < 2 or self.block_size & (self.block_size - 1):
            raise ValueError("block_size must be a power of two >= 2")
        if not 0.0 < self.detect_threshold < self.embed_magnitude:
            raise ValueError("detect_threshold must lie between 0 and embed_magnitude")
        if self.silence_threshold < 0.0:
            raise ValueError("silence_threshold must be >= 0")


DEFAULT_PARAMS = StegoParams()
