"""Unit tests for block silence classification."""

import numpy as np

from fourier_stego.classifier import (
    Classification,
    analyse_block,
    block_statistic,
    classify,
)
from fourier_stego.protocol import DEFAULT_PARAMS
from fourier_stego.transform import fft

from conftest import BLOCK, SAMPLE_RATE, sine


def test_digital_silence_is_silent():
    analysis = analyse_block(np.zeros((BLOCK, 1)), DEFAULT_PARAMS, SAMPLE_RATE)
    assert analysis.verdict is Classification.SILENT
    assert not analysis.is_active


def test_sine_is_active():
    analysis = analyse_block(sine(BLOCK)[:, None], DEFAULT_PARAMS, SAMPLE_RATE)
    assert analysis.verdict is Classification.ACTIVE
    assert analysis.embed_bin.index == 1858
    assert analysis.embed_magnitude < DEFAULT_PARAMS.detect_threshold


def test_quiet_noise_floor_is_silent():
    # +-1 LSB of 16-bit dither
    rng = np.random.default_rng(0)
    block = rng.integers(-1, 2, size=BLOCK) / 32767.0
    assert analyse_block(block, DEFAULT_PARAMS, SAMPLE_RATE).verdict is Classification.SILENT


def test_classification_is_idempotent():
    block = sine(BLOCK, freq=1000.0, amplitude=0.01)[:, None]
    first = analyse_block(block, DEFAULT_PARAMS, SAMPLE_RATE)
    second = analyse_block(block, DEFAULT_PARAMS, SAMPLE_RATE)
    assert first.verdict is second.verdict
    np.testing.assert_array_equal(first.spectrum, second.spectrum)


def test_only_reference_channel_counts():
    frames = np.column_stack([np.zeros(BLOCK), sine(BLOCK)])
    assert analyse_block(frames, DEFAULT_PARAMS, SAMPLE_RATE).verdict is Classification.SILENT
    frames = frames[:, ::-1]
    assert analyse_block(frames, DEFAULT_PARAMS, SAMPLE_RATE).verdict is Classification.ACTIVE


def test_statistic_ignores_embedding_bin():
    spectrum = fft(sine(BLOCK))
    k = 1858
    before = block_statistic(spectrum, k)
    spectrum[k] = DEFAULT_PARAMS.embed_magnitude
    spectrum[BLOCK - k] = DEFAULT_PARAMS.embed_magnitude
    assert block_statistic(spectrum, k) == before


def test_embedding_bin_alone_does_not_make_a_block_active():
    spectrum = np.zeros(BLOCK, dtype=np.complex128)
    spectrum[1858] = spectrum[BLOCK - 1858] = 15.0
    assert classify(spectrum, 1858, DEFAULT_PARAMS.silence_threshold) is Classification.SILENT


def test_short_block_is_zero_padded():
    analysis = analyse_block(sine(1000)[:, None], DEFAULT_PARAMS, SAMPLE_RATE)
    assert analysis.spectrum.size == BLOCK
    assert analysis.is_active
