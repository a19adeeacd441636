# errors.py
"""Exceptions raised by the sample codec, the streams and the stego pipeline."""


class StegoError(Exception):
    """Base class for every failure surfaced by fourier_stego."""


class UnsupportedFormat(StegoError, ValueError):
    """Unknown container, non-PCM data or a sample width outside 8/16/24/32 bits."""


class InsufficientCapacity(StegoError):
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"The audio file is too short for the message to fit: "
            f"{required} bits needed, {available} eligible blocks available."
        )


class PrematureEnd(StegoError, EOFError):
    def __init__(self, expected: int, recovered: int):
        self.expected = expected
        self.recovered = recovered
        super().__init__(
            f"Stream ended after {recovered} of {expected} bits were recovered."
        )
