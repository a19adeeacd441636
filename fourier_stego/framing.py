# framing.py
# Payload <-> bit array helpers. Bits are MSB first within each byte.
from pathlib import Path

import numpy as np

TERMINATOR = b"\x00"


def bytes_to_bits(b: bytes) -> np.ndarray:
    return np.unpackbits(np.frombuffer(bytes(b), dtype=np.uint8)).astype(bool)


def bits_to_bytes(bits) -> bytes:
    bits = np.asarray(bits, dtype=np.uint8).ravel()
    if bits.size % 8:
        raise ValueError(f"{bits.size} bits is not a whole number of bytes")
    return np.packbits(bits).tobytes()


def text_to_bits(text: str, terminate: bool = False) -> np.ndarray:
    """UTF-8 encode ``text``; ``terminate`` appends a NUL byte so a reader can find the end."""
    data = text.encode("utf-8")
    if TERMINATOR in data:
        raise ValueError("text must not contain NUL characters")
    if terminate:
        data += TERMINATOR
    return bytes_to_bits(data)


def bits_to_text(bits) -> str:
    data = bits_to_bytes(bits)
    end = data.find(TERMINATOR)
    if end != -1:
        data = data[:end]
    return data.decode("utf-8")


def file_to_bits(path) -> np.ndarray:
    # binary payloads (images etc.); the reader needs the byte count out of band
    return bytes_to_bits(Path(path).read_bytes())
