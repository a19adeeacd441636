# Shared fixtures: synthetic cover audio written to tmp_path

import numpy as np
import pytest
import soundfile as sf

from fourier_stego.protocol import DEFAULT_PARAMS
from fourier_stego.streams import SampleWriter, container_format, check_extension

SAMPLE_RATE = 44100
BLOCK = DEFAULT_PARAMS.block_size


def sine(n_frames, freq=440.0, amplitude=0.5, sr=SAMPLE_RATE):
    t = np.arange(n_frames) / sr
    return amplitude * np.sin(2 * np.pi * freq * t)


def write_pcm(path, data, sr=SAMPLE_RATE, width=2):
    """Write float samples (1-D mono or (frames, channels)) with the project's own writer."""
    data = np.asarray(data, dtype=np.float64)
    if data.ndim == 1:
        data = data[:, None]
    fmt = container_format(check_extension(path), data.shape[1], sr, width)
    with SampleWriter(path, fmt) as writer:
        writer.write_frames(data)
    return path


@pytest.fixture
def sine_wav(tmp_path):
    """Mono, 16-bit, 44100 Hz, 5 second 440 Hz sine."""
    path = tmp_path / "sine.wav"
    sf.write(str(path), sine(5 * SAMPLE_RATE), SAMPLE_RATE, subtype='PCM_16')
    return path


@pytest.fixture
def silent_wav(tmp_path):
    path = tmp_path / "silence.wav"
    sf.write(str(path), np.zeros(2 * SAMPLE_RATE), SAMPLE_RATE, subtype='PCM_16')
    return path


@pytest.fixture
def stereo_wav(tmp_path):
    path = tmp_path / "stereo.wav"
    n = 3 * SAMPLE_RATE
    data = np.column_stack([sine(n), sine(n, freq=660.0, amplitude=0.3)])
    sf.write(str(path), data, SAMPLE_RATE, subtype='PCM_16')
    return path
