import numpy as np
import soundfile as sf


def _read_pair(original_wav: str, stego_wav: str, dtype: str):
    x, _ = sf.read(original_wav, dtype=dtype, always_2d=True)
    y, _ = sf.read(stego_wav, dtype=dtype, always_2d=True)
    if x.shape[1] != y.shape[1]:
        raise ValueError("Cover and stego have a different channel count.")
    n = min(x.shape[0], y.shape[0])
    return x[:n], y[:n]


def compute_snr_db(original_wav: str, stego_wav: str, channel: int = 0) -> float:
    x, y = _read_pair(original_wav, stego_wav, 'float64')
    x = x[:, channel]
    y = y[:, channel]

    # Normalize to a common peak to avoid scale bias
    peak = max(np.max(np.abs(x), initial=0.0), np.max(np.abs(y), initial=0.0), 1e-12)
    x = x / peak
    y = y / peak

    noise = y - x
    p_sig = np.mean(x * x) + 1e-12
    p_noise = np.mean(noise * noise) + 1e-12
    return 10.0 * np.log10(p_sig / p_noise)


def compute_ber(bits_a: np.ndarray, bits_b: np.ndarray) -> float:
    bits_a = np.asarray(bits_a)
    bits_b = np.asarray(bits_b)
    if bits_a.size != bits_b.size:
        raise ValueError("Bit arrays must be same length for BER.")
    if bits_a.size == 0:
        return 0.0
    return float(np.sum(bits_a.astype(np.uint8) != bits_b.astype(np.uint8))) / bits_a.size


def compute_sample_change_stats(original_wav: str, stego_wav: str) -> dict:
    """
    Compare cover and stego sample by sample, per channel.
    Differences are in 32-bit full-scale units as returned by soundfile.
    """
    x, y = _read_pair(original_wav, stego_wav, 'int32')
    n = x.shape[0]
    if n == 0:
        return {
            "frames_total": 0,
            "samples_changed": 0,
            "fraction_changed": 0.0,
            "changed_per_channel": [0] * x.shape[1],
            "max_abs_diff": 0,
            "snr_db": 0.0,
        }

    diff = y.astype(np.int64) - x.astype(np.int64)
    changed = diff != 0
    samples_changed = int(np.sum(changed))
    return {
        "frames_total": n,
        "samples_changed": samples_changed,
        "fraction_changed": float(samples_changed) / float(diff.size),
        "changed_per_channel": [int(c) for c in np.sum(changed, axis=0)],
        "max_abs_diff": int(np.max(np.abs(diff))),
        "snr_db": float(compute_snr_db(original_wav, stego_wav)),
    }
