from pathlib import Path
from typing import Optional

import numpy as np
import soundfile as sf
import matplotlib.pyplot as plt
from scipy.signal import spectrogram

from .classifier import analyse_block
from .metrics import compute_sample_change_stats
from .protocol import DEFAULT_PARAMS, StegoParams
from .streams import SampleStream


def _read_reference_channel(path: str):
    data, sr = sf.read(path, dtype='float64', always_2d=True)
    return data[:, 0], sr


def _ensure_dir(p: Path):
    p.parent.mkdir(parents=True, exist_ok=True)


def _finish(fig, save_path: Optional[str]):
    if save_path:
        _ensure_dir(Path(save_path))
        fig.savefig(save_path, dpi=150)
        plt.close(fig)
    else:
        plt.show()


def print_change_report(original_wav: str, stego_wav: str, label: str):
    stats = compute_sample_change_stats(original_wav, stego_wav)
    frac = stats["fraction_changed"] * 100.0
    print(f"[{label}] Sample change metrics:")
    print(f"  Samples changed: {stats['samples_changed']} ({frac:.4f}%)")
    print(f"  Changed per channel: {stats['changed_per_channel']}")
    print(f"  Max abs diff: {stats['max_abs_diff']} (32-bit units)")
    print(f"  SNR: {stats['snr_db']:.2f} dB")


def block_embed_magnitudes(audio_wav: str, params: StegoParams = DEFAULT_PARAMS):
    """Per full block: (embedding-bin magnitude, is_active)."""
    mags = []
    active = []
    with SampleStream(audio_wav) as stream:
        rate = stream.format.sample_rate
        for frames in stream.blocks(params.block_size):
            if frames.shape[0] < params.block_size:
                break
            analysis = analyse_block(frames, params, rate)
            mags.append(analysis.embed_magnitude)
            active.append(analysis.is_active)
    return np.array(mags, dtype=np.float64), np.array(active, dtype=bool)


def plot_spectrogram_comparison(
    original_wav: str,
    stego_wav: str,
    params: StegoParams = DEFAULT_PARAMS,
    nperseg: int = 1024,
    noverlap: int = 512,
    save_path: Optional[str] = None,
    report_stats: bool = False,
):
    x, sr = _read_reference_channel(original_wav)
    y, _ = _read_reference_channel(stego_wav)
    n = min(x.size, y.size)
    x = x[:n]
    y = y[:n]
    f1, t1, Sx = spectrogram(x, fs=sr, nperseg=nperseg, noverlap=noverlap)
    f2, t2, Sy = spectrogram(y, fs=sr, nperseg=nperseg, noverlap=noverlap)

    Sx_db = 10 * np.log10(Sx + 1e-12)
    Sy_db = 10 * np.log10(Sy + 1e-12)
    vmin = min(Sx_db.min(), Sy_db.min())
    vmax = max(Sx_db.max(), Sy_db.max())

    fig, ax = plt.subplots(1, 2, figsize=(12, 4), sharey=True, constrained_layout=True)
    fig.suptitle(
        f"Spectrogram Comparison\nCover: {Path(original_wav).name} | Stego: {Path(stego_wav).name}"
    )
    ax[0].pcolormesh(t1, f1, Sx_db, shading='gouraud', cmap='magma', vmin=vmin, vmax=vmax)
    ax[0].set_title('Original Spectrogram')
    ax[0].set_xlabel('Time [s]')
    ax[0].set_ylabel('Frequency [Hz]')
    im1 = ax[1].pcolormesh(t2, f2, Sy_db, shading='gouraud', cmap='magma', vmin=vmin, vmax=vmax)
    ax[1].set_title('Stego Spectrogram')
    ax[1].set_xlabel('Time [s]')
    for a in ax:
        a.axhline(params.embed_frequency, color='cyan', linestyle='--', linewidth=0.8)
    fig.colorbar(im1, ax=ax.ravel().tolist(), shrink=0.8, label='dB')
    _finish(fig, save_path)

    if report_stats:
        print_change_report(original_wav, stego_wav, label="Spectrogram")


def plot_block_magnitudes(
    stego_wav: str,
    params: StegoParams = DEFAULT_PARAMS,
    save_path: Optional[str] = None,
):
    mags, active = block_embed_magnitudes(stego_wav, params)
    idx = np.arange(mags.size)

    fig, ax = plt.subplots(figsize=(12, 4), constrained_layout=True)
    ax.bar(idx[active], mags[active], color='tab:blue', label='active block')
    ax.bar(idx[~active], mags[~active], color='lightgray', label='silent block')
    ax.axhline(params.detect_threshold, color='red', linestyle='--', label='detection threshold')
    ax.set_title(f'Magnitude at {params.embed_frequency:.0f} Hz per block')
    ax.set_xlabel('Block')
    ax.set_ylabel('|X[k]|')
    ax.legend(loc='upper right')
    _finish(fig, save_path)
