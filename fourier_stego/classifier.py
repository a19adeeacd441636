# classifier.py
"""Silence detection on the reference channel of a block."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .protocol import StegoParams
from .transform import FrequencyBin, fft, fit_length, magnitudes, nearest_bin

logger = logging.getLogger(__name__)

REFERENCE_CHANNEL = 0


class Classification(Enum):
    SILENT = "silent"
    ACTIVE = "active"


@dataclass
class BlockAnalysis:
    spectrum: np.ndarray
    embed_bin: FrequencyBin
    verdict: Classification

    @property
    def is_active(self) -> bool:
        return self.verdict is Classification.ACTIVE

    @property
    def embed_magnitude(self) -> float:
        return float(np.abs(self.spectrum[self.embed_bin.index]))


def block_statistic(spectrum: np.ndarray, embed_index: int) -> float:
    """Mean magnitude of the positive-frequency bins, DC and the embedding bin excluded.

    Leaving the embedding bin out keeps the statistic unchanged by embedding, so
    a block reads the same before and after a bit is written into it.
    """
    mags = magnitudes(spectrum)
    half = mags.shape[0] // 2
    keep = np.ones(half, dtype=bool)
    keep[0] = False
    if 0 < embed_index < half:
        keep[embed_index] = False
    if not keep.any():
        return 0.0
    return float(np.mean(mags[:half][keep]))


def classify(spectrum: np.ndarray, embed_index: int, threshold: float) -> Classification:
    if block_statistic(spectrum, embed_index) > threshold:
        return Classification.ACTIVE
    return Classification.SILENT


def reference_samples(frames: np.ndarray) -> np.ndarray:
    frames = np.asarray(frames, dtype=np.float64)
    if frames.ndim == 1:
        return frames
    return frames[:, REFERENCE_CHANNEL]


def analyse_block(frames: np.ndarray, params: StegoParams, sample_rate: float) -> BlockAnalysis:
    """Pad, transform and classify the reference channel of one block.

    Encoder and decoder both go through here so bin indices and verdicts agree.
    """
    spectrum = fft(fit_length(reference_samples(frames), params.block_size))
    embed_bin = nearest_bin(params.embed_frequency, params.block_size, sample_rate)
    verdict = classify(spectrum, embed_bin.index, params.silence_threshold)
    logger.debug("block verdict=%s embed_mag=%.4f", verdict.value, abs(spectrum[embed_bin.index]))
    return BlockAnalysis(spectrum=spectrum, embed_bin=embed_bin, verdict=verdict)
